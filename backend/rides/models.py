from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from dispatch.state_machines import offer_state, request_state


class ServiceRequest(models.Model):
    """
    A taxi ride, moto ride or mandadito (errand) requested by a client.
    Status changes go through dispatch.state_machines.request_state.
    """
    class ServiceType(models.TextChoices):
        TAXI = "taxi", "Taxi"
        MOTO_RIDE = "moto_ride", "Moto ride"
        MANDADITO = "mandadito", "Mandadito"

    class MandaditoType(models.TextChoices):
        SHOPPING = "shopping", "Compras"
        DELIVERY = "delivery", "Entrega"
        PAYMENT = "payment", "Pago de servicio"

    class Status(models.TextChoices):
        PENDING = request_state.PENDING, "Pending"
        ASSIGNED = request_state.ASSIGNED, "Assigned"
        IN_PROGRESS = request_state.IN_PROGRESS, "In progress"
        COMPLETED = request_state.COMPLETED, "Completed"
        CANCELLED = request_state.CANCELLED, "Cancelled"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Efectivo"
        TRANSFER = "transfer", "Transferencia"

    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="service_requests")
    assigned_driver = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="assigned_services"
    )

    service_type = models.CharField(max_length=20, choices=ServiceType.choices)
    mandadito_type = models.CharField(max_length=20, choices=MandaditoType.choices, blank=True, null=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    tracking_step = models.CharField(max_length=20, blank=True, null=True)

    origin_lat = models.FloatField(blank=True, null=True)
    origin_lng = models.FloatField(blank=True, null=True)
    origin_address = models.TextField(blank=True)
    destination_lat = models.FloatField(blank=True, null=True)
    destination_lng = models.FloatField(blank=True, null=True)
    destination_address = models.TextField(blank=True)
    delivery_references = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    municipio = models.CharField(max_length=120, blank=True, null=True)

    offered_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    estimated_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    final_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)

    boarding_pin = models.CharField(max_length=4, blank=True, null=True)
    delivery_pin = models.CharField(max_length=4, blank=True, null=True)
    boarding_pin_verified_at = models.DateTimeField(blank=True, null=True)
    delivery_pin_verified_at = models.DateTimeField(blank=True, null=True)

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, blank=True, null=True)
    payment_amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    payment_confirmed_at = models.DateTimeField(blank=True, null=True)

    # Bumped on every assignment, offer acceptance checks it
    version = models.PositiveIntegerField(default=1)

    request_expires_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    assigned_at = models.DateTimeField(blank=True, null=True)
    started_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        ordering = ["-created_at"]

    def remaining_seconds(self, now):
        if self.status != self.Status.PENDING or self.request_expires_at is None:
            return None
        return max(0, int((self.request_expires_at - now).total_seconds()))

    def __str__(self):
        return f"{self.get_service_type_display()} #{self.pk} ({self.status})"


class RequestStop(models.Model):
    """
    Errand stop of a mandadito: a shop to buy at, or a pickup point.
    """
    request = models.ForeignKey(ServiceRequest, on_delete=models.CASCADE, related_name="stops")
    order = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    lat = models.FloatField(blank=True, null=True)
    lng = models.FloatField(blank=True, null=True)
    instructions = models.TextField(blank=True)
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self):
        return f"Stop {self.order} of request {self.request_id}"


class StopItem(models.Model):
    stop = models.ForeignKey(RequestStop, on_delete=models.CASCADE, related_name="items")
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    is_checked = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.quantity} x {self.description}"


class Offer(models.Model):
    """
    Driver price proposal (initial) or client counter proposal (counter).
    """
    class Status(models.TextChoices):
        PENDING = offer_state.PENDING, "Pending"
        ACCEPTED = offer_state.ACCEPTED, "Accepted"
        REJECTED = offer_state.REJECTED, "Rejected"
        EXPIRED = offer_state.EXPIRED, "Expired"

    class OfferType(models.TextChoices):
        INITIAL = offer_state.INITIAL, "Initial"
        COUNTER = offer_state.COUNTER, "Counter"

    request = models.ForeignKey(ServiceRequest, on_delete=models.CASCADE, related_name="offers")
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="offers")
    offer_type = models.CharField(max_length=20, choices=OfferType.choices, default=OfferType.INITIAL)
    offered_price = models.DecimalField(max_digits=10, decimal_places=2)
    message = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    expires_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["offered_price", "created_at"]

    def __str__(self):
        return f"Offer {self.pk} ${self.offered_price} ({self.status})"


class ServiceLocation(models.Model):
    """
    Breadcrumb of the driver position while serving a request.
    """
    service = models.ForeignKey(ServiceRequest, on_delete=models.CASCADE, related_name="locations")
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="+")
    lat = models.FloatField()
    lng = models.FloatField()
    heading = models.FloatField(blank=True, null=True)
    speed = models.FloatField(blank=True, null=True)
    accuracy = models.FloatField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]


class DriverRating(models.Model):
    request = models.OneToOneField(ServiceRequest, on_delete=models.CASCADE, related_name="rating")
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ratings_received")
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ratings_given")
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.rating}* for driver {self.driver_id}"
