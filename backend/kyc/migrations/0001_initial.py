import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="KycSubmission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("drive_folder_id", models.CharField(max_length=128)),
                ("drive_folder_url", models.URLField(blank=True)),
                ("ine_front_file_id", models.CharField(max_length=128)),
                ("ine_front_url", models.URLField(blank=True)),
                ("ine_back_file_id", models.CharField(max_length=128)),
                ("ine_back_url", models.URLField(blank=True)),
                ("selfie_file_id", models.CharField(max_length=128)),
                ("selfie_url", models.URLField(blank=True)),
                ("submitted_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="kyc_submission",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-submitted_at"],
            },
        ),
    ]
