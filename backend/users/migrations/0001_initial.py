from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
import phonenumber_field.modelfields
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, verbose_name="superuser status")),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("is_staff", models.BooleanField(default=False, verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                (
                    "role",
                    models.CharField(
                        choices=[("cliente", "Cliente"), ("taxi", "Taxi"), ("mandadito", "Mandadito"), ("admin", "Admin")],
                        default="cliente",
                        max_length=20,
                    ),
                ),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("full_name", models.CharField(max_length=255)),
                ("phone_number", phonenumber_field.modelfields.PhoneNumberField(blank=True, max_length=128, null=True, region="MX")),
                ("avatar", models.FileField(blank=True, null=True, upload_to="avatars/")),
                ("is_approved", models.BooleanField(default=False)),
                ("is_available", models.BooleanField(default=False)),
                ("current_lat", models.FloatField(blank=True, null=True)),
                ("current_lng", models.FloatField(blank=True, null=True)),
                ("current_heading", models.FloatField(blank=True, null=True)),
                ("location_updated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "kyc_status",
                    models.CharField(
                        choices=[
                            ("not_submitted", "Not submitted"),
                            ("pending", "Pending review"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        default="not_submitted",
                        max_length=20,
                    ),
                ),
                ("kyc_submitted_at", models.DateTimeField(blank=True, null=True)),
                ("kyc_reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("kyc_rejection_reason", models.TextField(blank=True, null=True)),
                (
                    "commission_status",
                    models.CharField(choices=[("ok", "Ok"), ("blocked", "Blocked")], default="ok", max_length=20),
                ),
                ("balance", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("rating_avg", models.DecimalField(decimal_places=2, default=Decimal("5.00"), max_digits=3)),
                ("rating_count", models.PositiveIntegerField(default=0)),
                ("municipio", models.CharField(blank=True, max_length=120, null=True)),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.AddField(
            model_name="user",
            name="kyc_reviewed_by",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="kyc_reviews",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.CreateModel(
            name="DriverVehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("brand", models.CharField(max_length=80)),
                ("model", models.CharField(max_length=80)),
                ("color", models.CharField(max_length=40)),
                ("plate_number", models.CharField(blank=True, max_length=20, null=True)),
                ("taxi_number", models.CharField(blank=True, max_length=20, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="vehicle", to=settings.AUTH_USER_MODEL
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="OtpCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("email", models.EmailField(db_index=True, max_length=254)),
                ("code", models.CharField(max_length=6)),
                (
                    "type",
                    models.CharField(
                        choices=[("registration", "Registration"), ("password_reset", "Password reset")],
                        default="registration",
                        max_length=20,
                    ),
                ),
                ("expires_at", models.DateTimeField()),
                ("verified", models.BooleanField(default=False)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ClientAddress",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("label", models.CharField(max_length=80)),
                ("address", models.TextField()),
                ("lat", models.FloatField()),
                ("lng", models.FloatField()),
                ("references", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="addresses", to=settings.AUTH_USER_MODEL
                    ),
                ),
            ],
            options={
                "ordering": ["label"],
            },
        ),
    ]
