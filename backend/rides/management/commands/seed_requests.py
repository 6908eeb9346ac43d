from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from rides import services
from rides.demo_data import generate_demo_requests
from users.management.commands.seed import SEED_LAT, SEED_LNG
from users.models import User


class Command(BaseCommand):
    help = "Create pending demo requests around the seed location"

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=20)
        parser.add_argument('--client', default="cliente@movix.app")
        parser.add_argument('--seed', type=int, default=None)
        parser.add_argument('--csv', default=None, help="Also write the generated rows to this CSV file")

    def handle(self, *args, **options):
        client = User.objects.filter(email__iexact=options['client']).first()
        if client is None:
            raise CommandError(f"Client {options['client']} not found, run `seed` first")

        df = generate_demo_requests(options['count'], center=(SEED_LAT, SEED_LNG), seed=options['seed'])
        if options['csv']:
            df.to_csv(options['csv'], index=False)

        created = 0
        for row in df.to_dict(orient="records"):
            data = {**row, "municipio": settings.MOVIX_DEFAULT_MUNICIPIO}
            if row["service_type"] == "mandadito":
                services.create_mandadito(client, {
                    **data,
                    "stops": [{
                        "name": "Tienda de la esquina",
                        "lat": row["origin_lat"],
                        "lng": row["origin_lng"],
                        "items": [{"description": "Artículo de prueba", "quantity": 1}],
                    }],
                })
            else:
                services.create_ride(client, row["service_type"], data)
            created += 1

        self.stdout.write(self.style.SUCCESS(f"Created {created} demo requests"))
