"""
Demo accounts for local development.

    python manage.py seed --password demo1234
"""

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from users.models import DriverVehicle, User

SEED_LAT = 19.432608
SEED_LNG = -99.133209

SEED_USERS = [
    {"email": "admin@movix.app", "full_name": "Admin MoVix", "role": User.Roles.ADMIN},
    {"email": "cliente@movix.app", "full_name": "Cliente Demo", "role": User.Roles.CLIENTE},
    {
        "email": "taxi@movix.app",
        "full_name": "Taxista Demo",
        "role": User.Roles.TAXI,
        "vehicle": {"brand": "Nissan", "model": "Tsuru", "color": "Blanco", "plate_number": "ABC-123", "taxi_number": "042"},
    },
    {
        "email": "mandadito@movix.app",
        "full_name": "Mandadito Demo",
        "role": User.Roles.MANDADITO,
        "vehicle": {"brand": "Italika", "model": "FT150", "color": "Rojo", "plate_number": "M-789"},
    },
]


class Command(BaseCommand):
    help = "Seed admin, cliente, taxi and mandadito demo users"

    def add_arguments(self, parser):
        parser.add_argument('--password', default="movix123")

    def handle(self, *args, **options):
        now = timezone.now()
        for seed_user in SEED_USERS:
            role = seed_user["role"]
            is_driver = role in (User.Roles.TAXI, User.Roles.MANDADITO)

            user, created = User.objects.get_or_create(
                email=seed_user["email"],
                defaults={"username": seed_user["email"], "full_name": seed_user["full_name"], "role": role},
            )
            user.set_password(options['password'])
            user.role = role
            user.is_approved = True
            user.is_staff = role == User.Roles.ADMIN
            user.municipio = settings.MOVIX_DEFAULT_MUNICIPIO

            if is_driver:
                user.kyc_status = User.KycStatus.APPROVED
                user.kyc_reviewed_at = now
                user.is_available = True
                user.current_lat = SEED_LAT
                user.current_lng = SEED_LNG
                user.location_updated_at = now

            user.save()

            if seed_user.get("vehicle"):
                DriverVehicle.objects.update_or_create(user=user, defaults=seed_user["vehicle"])

            self.stdout.write(f"{'Created' if created else 'Updated'} {user.email} ({role})")

        self.stdout.write(self.style.SUCCESS("Seed complete"))
