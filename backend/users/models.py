from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.conf import settings
from phonenumber_field.modelfields import PhoneNumberField

from drivers.models import DriverSnapshot


class User(AbstractUser):
    class Roles(models.TextChoices):
        CLIENTE = "cliente", "Cliente"
        TAXI = "taxi", "Taxi"
        MANDADITO = "mandadito", "Mandadito"
        ADMIN = "admin", "Admin"

    class KycStatus(models.TextChoices):
        NOT_SUBMITTED = "not_submitted", "Not submitted"
        PENDING = "pending", "Pending review"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    class CommissionStatus(models.TextChoices):
        OK = "ok", "Ok"
        BLOCKED = "blocked", "Blocked"

    # Role fields define permissions in the app
    # CLIENTE: requests taxi, moto rides and mandaditos
    # TAXI / MANDADITO: drivers, see the radar and send offers once KYC is approved
    # ADMIN: reviews KYC, commissions and users
    role = models.CharField(max_length=20, choices=Roles.choices, default=Roles.CLIENTE)

    # Login is by email, username mirrors it for AbstractUser
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255)
    phone_number = PhoneNumberField(blank=True, null=True, region="MX")
    avatar = models.FileField(upload_to="avatars/", blank=True, null=True)

    # Clients are auto-approved, drivers wait for an admin
    is_approved = models.BooleanField(default=False)

    # Driver specific fields
    # is_available: toggles driver visibility on the radar
    is_available = models.BooleanField(default=False)
    current_lat = models.FloatField(blank=True, null=True)
    current_lng = models.FloatField(blank=True, null=True)
    current_heading = models.FloatField(blank=True, null=True)
    location_updated_at = models.DateTimeField(blank=True, null=True)

    kyc_status = models.CharField(max_length=20, choices=KycStatus.choices, default=KycStatus.NOT_SUBMITTED)
    kyc_submitted_at = models.DateTimeField(blank=True, null=True)
    kyc_reviewed_at = models.DateTimeField(blank=True, null=True)
    kyc_reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="kyc_reviews"
    )
    kyc_rejection_reason = models.TextField(blank=True, null=True)

    commission_status = models.CharField(
        max_length=20, choices=CommissionStatus.choices, default=CommissionStatus.OK
    )
    balance = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))

    rating_avg = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal("5.00"))
    rating_count = models.PositiveIntegerField(default=0)

    municipio = models.CharField(max_length=120, blank=True, null=True)

    REQUIRED_FIELDS = ["email"]

    @property
    def is_driver(self):
        return self.role in (self.Roles.TAXI, self.Roles.MANDADITO)

    @property
    def is_admin_role(self):
        return self.role == self.Roles.ADMIN

    @property
    def location(self):
        if self.current_lat is None or self.current_lng is None:
            return None
        return (self.current_lat, self.current_lng)

    def snapshot(self) -> DriverSnapshot:
        """
        Plain view of the user for the driver rules in drivers.selection.
        """
        return DriverSnapshot.new(
            driver_id=self.pk,
            role=self.role,
            lat=self.current_lat,
            lon=self.current_lng,
            is_available=self.is_available,
            is_approved=self.is_approved,
            kyc_status=self.kyc_status,
            commission_status=self.commission_status,
            municipio=self.municipio,
        )

    def __str__(self):
        return f"{self.full_name or self.username} ({self.get_role_display()})"


class DriverVehicle(models.Model):
    """
    Vehicle a driver registered with. Taxis carry the municipal taxi number.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="vehicle")
    brand = models.CharField(max_length=80)
    model = models.CharField(max_length=80)
    color = models.CharField(max_length=40)
    plate_number = models.CharField(max_length=20, blank=True, null=True)
    taxi_number = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.brand} {self.model} ({self.color})"


class OtpCode(models.Model):
    """
    6 digit code mailed before registration. Lives 10 minutes.
    """
    class Types(models.TextChoices):
        REGISTRATION = "registration", "Registration"
        PASSWORD_RESET = "password_reset", "Password reset"

    email = models.EmailField(db_index=True)
    code = models.CharField(max_length=6)
    type = models.CharField(max_length=20, choices=Types.choices, default=Types.REGISTRATION)
    expires_at = models.DateTimeField()
    verified = models.BooleanField(default=False)
    used_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"OTP {self.email} ({self.type})"


class ClientAddress(models.Model):
    """
    Saved places ("Casa", "Trabajo") a client can reuse in request wizards.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="addresses")
    label = models.CharField(max_length=80)
    address = models.TextField()
    lat = models.FloatField()
    lng = models.FloatField()
    references = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["label"]

    def __str__(self):
        return f"{self.label}: {self.address}"
