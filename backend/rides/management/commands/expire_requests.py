import logging

from django.core.management.base import BaseCommand

from rides.services import expire_stale

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Cancel expired pending requests and expire stale offers"

    def handle(self, *args, **options):
        expired_requests, expired_offers = expire_stale()
        logger.info(f"Expired {expired_requests} requests and {expired_offers} offers")
        self.stdout.write(self.style.SUCCESS(
            f"Expired {expired_requests} requests, {expired_offers} offers"
        ))
