from django.core.management.base import BaseCommand, CommandError

from users.models import User


class Command(BaseCommand):
    help = "Create an admin account, or promote an existing user to admin"

    def add_arguments(self, parser):
        parser.add_argument('email')
        parser.add_argument('--password', default=None)
        parser.add_argument('--name', default="Administrador")

    def handle(self, *args, **options):
        email = options['email'].lower()
        user = User.objects.filter(email__iexact=email).first()

        if user is None:
            if not options['password']:
                raise CommandError("--password is required to create a new admin")
            user = User.objects.create_user(
                username=email,
                email=email,
                password=options['password'],
                full_name=options['name'],
            )
            created = True
        else:
            created = False
            if options['password']:
                user.set_password(options['password'])

        user.role = User.Roles.ADMIN
        user.is_approved = True
        user.is_staff = True
        user.save()

        verb = "Created" if created else "Promoted"
        self.stdout.write(self.style.SUCCESS(f"{verb} admin {user.email}"))
