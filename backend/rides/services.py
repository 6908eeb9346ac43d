"""
Marketplace operations on service requests.

Views stay thin: they validate input and call these functions. Everything
that touches more than one row runs in a transaction, and the request row is
locked with select_for_update() before a state change so two drivers can
never end up assigned to the same request.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count, Q
from django.db.models.functions import TruncMonth
from django.utils import timezone

from dispatch.pins import generate_pin, pin_length_for, pins_match
from dispatch.pricing import (
    MANDADITO_DRIVER_EARNINGS,
    MOTO_RIDE_FIXED_PRICE,
    client_total,
    driver_earnings,
)
from dispatch.state_machines import offer_state, request_state
from drivers.policy import DriverPolicy
from drivers.selection import can_operate, service_types_for_role
from movix_backend.errors import ConflictError, ServiceError

from .models import DriverRating, Offer, RequestStop, ServiceRequest, StopItem

logger = logging.getLogger(__name__)


def driver_policy():
    policy = DriverPolicy(default_municipio=settings.MOVIX_DEFAULT_MUNICIPIO)
    policy.validate()
    return policy


def _locked(request_id):
    return ServiceRequest.objects.select_for_update().get(pk=request_id)


def _require_driver_of(service, driver):
    if service.assigned_driver_id != driver.pk:
        raise ServiceError("No eres el conductor asignado", code="NOT_ASSIGNED_DRIVER", status_code=403)


def _require_client_of(service, client):
    if service.client_id != client.pk:
        raise ServiceError("No eres el cliente de esta solicitud", code="NOT_OWNER", status_code=403)


# --- Creation ---

def create_ride(client, service_type, data, now=None, policy=None):
    """
    Taxi or moto ride from origin to destination. The client proposes a price,
    moto rides default to the fixed price.
    """
    now = now or timezone.now()
    policy = policy or driver_policy()

    offered_price = data.get('offered_price')
    if offered_price is None and service_type == ServiceRequest.ServiceType.MOTO_RIDE:
        offered_price = MOTO_RIDE_FIXED_PRICE

    service = ServiceRequest.objects.create(
        client=client,
        service_type=service_type,
        origin_lat=data['origin_lat'],
        origin_lng=data['origin_lng'],
        origin_address=data.get('origin_address', ''),
        destination_lat=data.get('destination_lat'),
        destination_lng=data.get('destination_lng'),
        destination_address=data.get('destination_address', ''),
        notes=data.get('notes', ''),
        offered_price=offered_price,
        estimated_price=offered_price,
        municipio=data.get('municipio') or client.municipio or policy.default_municipio,
        boarding_pin=generate_pin(pin_length_for(service_type)),
        request_expires_at=now + timedelta(seconds=policy.expiry_for(service_type)),
    )
    logger.info(f"Created {service_type} request {service.pk} for client {client.pk}")
    return service


@transaction.atomic
def create_mandadito(client, data, now=None, policy=None):
    """
    Errand request. shopping carries N stops with items, delivery a pickup
    stop, payment stores the pay-on-behalf details in delivery_references.
    """
    now = now or timezone.now()
    policy = policy or driver_policy()
    mandadito_type = data['mandadito_type']
    stops = data.get('stops') or []

    references = data.get('delivery_references', '')
    if mandadito_type == ServiceRequest.MandaditoType.PAYMENT:
        payment = data.get('payment') or {}
        references = "\n".join(
            line for line in (
                f"Monto a pagar: ${payment.get('amount')}" if payment.get('amount') is not None else "",
                f"Referencia: {payment['reference']}" if payment.get('reference') else "",
                f"Instrucciones: {payment['instructions']}" if payment.get('instructions') else "",
                references,
            ) if line
        )

    # Origin is the first stop when there is one, otherwise the delivery point
    first = stops[0] if stops else {}
    origin_lat = first.get('lat', data.get('destination_lat'))
    origin_lng = first.get('lng', data.get('destination_lng'))

    price = data.get('offered_price')
    if price is None:
        price = client_total(MANDADITO_DRIVER_EARNINGS, ServiceRequest.ServiceType.MANDADITO)

    service = ServiceRequest.objects.create(
        client=client,
        service_type=ServiceRequest.ServiceType.MANDADITO,
        mandadito_type=mandadito_type,
        origin_lat=origin_lat,
        origin_lng=origin_lng,
        origin_address=first.get('address', ''),
        destination_lat=data.get('destination_lat'),
        destination_lng=data.get('destination_lng'),
        destination_address=data.get('destination_address', ''),
        delivery_references=references,
        notes=data.get('notes', ''),
        offered_price=price,
        estimated_price=price,
        municipio=data.get('municipio') or client.municipio or policy.default_municipio,
        delivery_pin=generate_pin(pin_length_for(ServiceRequest.ServiceType.MANDADITO)),
        request_expires_at=now + timedelta(seconds=policy.expiry_for(ServiceRequest.ServiceType.MANDADITO)),
    )

    for index, stop_data in enumerate(stops):
        stop = RequestStop.objects.create(
            request=service,
            order=index,
            name=stop_data.get('name', ''),
            address=stop_data.get('address', ''),
            lat=stop_data.get('lat'),
            lng=stop_data.get('lng'),
            instructions=stop_data.get('instructions', ''),
        )
        for item in stop_data.get('items') or []:
            StopItem.objects.create(stop=stop, description=item['description'], quantity=item.get('quantity', 1))

    logger.info(f"Created mandadito ({mandadito_type}) request {service.pk} with {len(stops)} stops")
    return service


# --- Queries ---

def requests_for_user(user):
    if user.role == user.Roles.ADMIN:
        return ServiceRequest.objects.all()
    if user.is_driver:
        return ServiceRequest.objects.filter(assigned_driver=user)
    return ServiceRequest.objects.filter(client=user)


def active_requests_for_user(user):
    return requests_for_user(user).exclude(status__in=request_state.FINAL_STATUSES)


def radar_candidates(driver, now=None):
    """
    Queryset prefilter for the radar; drivers.selection.build_radar applies
    the exact rules.
    """
    now = now or timezone.now()
    return ServiceRequest.objects.filter(
        status=ServiceRequest.Status.PENDING,
        service_type__in=service_types_for_role(driver.role),
        request_expires_at__gt=now,
    ).exclude(client=driver)


# --- Offers ---

def create_offer(service_id, driver, price, message="", now=None, policy=None):
    now = now or timezone.now()
    policy = policy or driver_policy()

    if not can_operate(driver.snapshot()):
        raise ServiceError("Tu cuenta no puede enviar ofertas", code="NOT_ALLOWED", status_code=403)
    if Decimal(price) <= 0:
        raise ServiceError("El precio debe ser mayor a 0", code="INVALID_PRICE")

    with transaction.atomic():
        service = _locked(service_id)
        if service.status != ServiceRequest.Status.PENDING:
            raise ConflictError("La solicitud ya no está disponible", code="REQUEST_NOT_AVAILABLE")
        if service.request_expires_at is not None and service.request_expires_at <= now:
            raise ServiceError("Solicitud expirada", code="REQUEST_EXPIRED")
        if service.service_type not in service_types_for_role(driver.role):
            raise ServiceError("Tipo de servicio no compatible con tu rol", code="INVALID_ROLE", status_code=403)
        if service.offers.filter(driver=driver, status=Offer.Status.PENDING).exists():
            raise ConflictError("Ya enviaste una oferta para esta solicitud", code="DUPLICATE_OFFER")

        offer = Offer.objects.create(
            request=service,
            driver=driver,
            offer_type=Offer.OfferType.INITIAL,
            offered_price=price,
            message=message,
            expires_at=offer_state.offer_expiry(now, policy.offer_expiry_seconds),
        )

    logger.info(f"Driver {driver.pk} offered ${price} on request {service_id}")
    return offer


def reject_offer(offer_id, client):
    with transaction.atomic():
        offer = Offer.objects.select_for_update().select_related('request').get(pk=offer_id)
        _require_client_of(offer.request, client)
        offer_state.reject_offer(offer)
        offer.save(update_fields=['status'])
    return offer


def counter_offer(offer_id, client, price, message="", now=None, policy=None):
    """
    Client answers a driver offer with another price. The original offer is
    closed and a counter offer addressed to the same driver is opened.
    """
    now = now or timezone.now()
    policy = policy or driver_policy()
    if Decimal(price) <= 0:
        raise ServiceError("El precio debe ser mayor a 0", code="INVALID_PRICE")

    with transaction.atomic():
        offer = Offer.objects.select_for_update().select_related('request').get(pk=offer_id)
        _require_client_of(offer.request, client)
        if offer.request.status != ServiceRequest.Status.PENDING:
            raise ConflictError("La solicitud ya no está disponible", code="REQUEST_NOT_AVAILABLE")
        offer_state.reject_offer(offer)
        offer.save(update_fields=['status'])

        counter = Offer.objects.create(
            request=offer.request,
            driver=offer.driver,
            offer_type=Offer.OfferType.COUNTER,
            offered_price=price,
            message=message,
            expires_at=offer_state.offer_expiry(now, policy.offer_expiry_seconds),
        )
    return counter


def _assign_from_offer(service, offer, now):
    if service.status != ServiceRequest.Status.PENDING:
        raise ConflictError("La solicitud ya fue asignada", code="ALREADY_ASSIGNED")
    if offer.status == Offer.Status.PENDING and offer_state.is_offer_expired(offer, now):
        raise ServiceError("La oferta expiró", code="OFFER_EXPIRED")

    offer_state.accept_offer(offer, now)
    offer.save(update_fields=['status'])

    request_state.assign_driver(service, offer.driver_id, offer.offered_price, now)
    service.version += 1
    service.save()

    service.offers.filter(status=Offer.Status.PENDING).exclude(pk=offer.pk).update(
        status=Offer.Status.REJECTED
    )
    logger.info(f"Request {service.pk} assigned to driver {offer.driver_id} at ${offer.offered_price}")


def accept_offer(service_id, offer_id, client, expected_version=None, now=None):
    """
    Assigns the offering driver. The request row is locked and its version
    compared, a concurrent acceptance gets a conflict instead of a second
    assignment. Every other pending offer is rejected.
    """
    now = now or timezone.now()

    with transaction.atomic():
        service = _locked(service_id)
        _require_client_of(service, client)

        if expected_version is not None and service.version != int(expected_version):
            raise ConflictError(
                "La solicitud cambió, actualiza e intenta de nuevo",
                code="VERSION_CONFLICT",
                current_version=service.version,
            )

        offer = Offer.objects.select_for_update().get(pk=offer_id, request=service)
        if offer.offer_type != Offer.OfferType.INITIAL:
            raise ServiceError("La contraoferta la acepta el conductor", code="INVALID_OFFER")
        _assign_from_offer(service, offer, now)

    return service


def accept_counter_offer(offer_id, driver, now=None):
    """
    Driver agrees to the price the client countered with.
    """
    now = now or timezone.now()

    with transaction.atomic():
        service_id = Offer.objects.values_list('request_id', flat=True).get(pk=offer_id)
        service = _locked(service_id)
        offer = Offer.objects.select_for_update().get(pk=offer_id)
        if offer.driver_id != driver.pk or offer.offer_type != Offer.OfferType.COUNTER:
            raise ServiceError("Esta contraoferta no es para ti", code="INVALID_OFFER", status_code=403)
        _assign_from_offer(service, offer, now)

    return service


# --- Tracking ---

def advance_step(service_id, driver, now=None):
    now = now or timezone.now()
    with transaction.atomic():
        service = _locked(service_id)
        _require_driver_of(service, driver)
        request_state.advance_tracking(service, now)
        service.save()
    return service


def verify_boarding_pin(service_id, driver, pin, now=None):
    """
    Taxi and moto ride: the client tells the PIN to the driver on boarding,
    which starts the trip. The PIN is accepted once, before pickup.
    """
    now = now or timezone.now()
    with transaction.atomic():
        service = _locked(service_id)
        _require_driver_of(service, driver)
        if not request_state.requires_boarding_pin(service.service_type):
            raise ServiceError("Este servicio no usa PIN de abordaje", code="PIN_NOT_REQUIRED")
        if (
            service.boarding_pin_verified_at is not None
            or service.status == ServiceRequest.Status.IN_PROGRESS
            or service.tracking_step in (request_state.STEP_PICKED_UP, request_state.STEP_IN_TRANSIT)
        ):
            raise ConflictError(
                "El PIN ya fue verificado", code="PIN_ALREADY_VERIFIED", tracking_step=service.tracking_step
            )
        if service.status != ServiceRequest.Status.ASSIGNED:
            raise request_state.RequestStateException(f"Request {service.pk} is not active")
        if not pins_match(service.boarding_pin, pin, pin_length_for(service.service_type)):
            raise ServiceError("PIN incorrecto", code="INVALID_PIN")

        request_state.start_trip(service, now)
        service.boarding_pin_verified_at = now
        service.save()
    return service


def complete_stop(stop_id, driver, now=None):
    now = now or timezone.now()
    stop = RequestStop.objects.select_related('request').get(pk=stop_id)
    _require_driver_of(stop.request, driver)
    stop.is_completed = True
    stop.completed_at = now
    stop.save(update_fields=['is_completed', 'completed_at'])
    return stop


def check_item(item_id, driver, checked=True):
    item = StopItem.objects.select_related('stop__request').get(pk=item_id)
    _require_driver_of(item.stop.request, driver)
    item.is_checked = bool(checked)
    item.save(update_fields=['is_checked'])
    return item


def confirm_payment(service_id, driver, method, amount, now=None):
    now = now or timezone.now()
    if method not in ServiceRequest.PaymentMethod.values:
        raise ServiceError("Método de pago inválido", code="INVALID_PAYMENT_METHOD")
    if amount is None or Decimal(amount) <= 0:
        raise ServiceError("El monto debe ser mayor a 0", code="INVALID_AMOUNT")

    with transaction.atomic():
        service = _locked(service_id)
        _require_driver_of(service, driver)
        service.payment_method = method
        service.payment_amount = amount
        service.payment_confirmed_at = now
        service.save(update_fields=['payment_method', 'payment_amount', 'payment_confirmed_at', 'updated_at'])
    return service


def complete_ride(service_id, driver, now=None):
    """
    Taxi / moto ride completion, allowed once the trip is in transit.
    """
    now = now or timezone.now()
    with transaction.atomic():
        service = _locked(service_id)
        _require_driver_of(service, driver)
        if service.service_type == ServiceRequest.ServiceType.MANDADITO:
            raise ServiceError("Los mandaditos se completan con el PIN de entrega", code="DELIVERY_PIN_REQUIRED")
        if service.tracking_step != request_state.STEP_IN_TRANSIT:
            raise request_state.RequestStateException("The trip has not started yet")
        request_state.complete(service, now)
        service.save()
    return service


def verify_delivery_pin(service_id, driver, pin, now=None):
    """
    Mandadito completion. Returns (service, driver_earnings).
    """
    now = now or timezone.now()
    with transaction.atomic():
        service = _locked(service_id)
        _require_driver_of(service, driver)
        if service.service_type != ServiceRequest.ServiceType.MANDADITO:
            raise ServiceError("Solo los mandaditos usan PIN de entrega", code="PIN_NOT_REQUIRED")
        if not pins_match(service.delivery_pin, pin, pin_length_for(service.service_type)):
            raise ServiceError("PIN incorrecto", code="INVALID_PIN")
        if service.status == ServiceRequest.Status.ASSIGNED:
            request_state.start_trip(service, now)
        request_state.complete(service, now)
        service.delivery_pin_verified_at = now
        service.save()

    return service, driver_earnings(service.final_price, service.service_type)


def cancel_by_client(service_id, client, now=None):
    now = now or timezone.now()
    with transaction.atomic():
        service = _locked(service_id)
        _require_client_of(service, client)
        if service.status not in (ServiceRequest.Status.PENDING, ServiceRequest.Status.ASSIGNED):
            raise ServiceError("Ya no se puede cancelar esta solicitud", code="CANNOT_CANCEL")
        request_state.cancel(service, request_state.CLIENT_CANCEL_REASON, now, cancelled_by=client)
        service.save()
        service.offers.filter(status=Offer.Status.PENDING).update(status=Offer.Status.REJECTED)
    return service


def cancel_by_driver(service_id, driver, reason_code, now=None):
    now = now or timezone.now()
    if reason_code not in request_state.DRIVER_CANCELLATION_REASONS:
        raise ServiceError("Motivo de cancelación inválido", code="INVALID_REASON")

    with transaction.atomic():
        service = _locked(service_id)
        _require_driver_of(service, driver)
        if service.status not in (ServiceRequest.Status.ASSIGNED, ServiceRequest.Status.IN_PROGRESS):
            raise ServiceError("Ya no se puede cancelar esta solicitud", code="CANNOT_CANCEL")
        request_state.cancel(service, request_state.driver_cancellation_reason(reason_code), now, cancelled_by=driver)
        service.save()

    logger.info(f"Driver {driver.pk} cancelled request {service_id}: {reason_code}")
    return service


# --- Ratings ---

def rate_driver(service_id, client, rating, comment=""):
    if not 1 <= int(rating) <= 5:
        raise ServiceError("La calificación debe estar entre 1 y 5", code="INVALID_RATING")

    with transaction.atomic():
        service = _locked(service_id)
        _require_client_of(service, client)
        if service.status != ServiceRequest.Status.COMPLETED or service.assigned_driver_id is None:
            raise ServiceError("Solo puedes calificar servicios completados", code="NOT_COMPLETED")
        if DriverRating.objects.filter(request=service).exists():
            raise ConflictError("Ya calificaste este servicio", code="ALREADY_RATED")

        result = DriverRating.objects.create(
            request=service,
            driver_id=service.assigned_driver_id,
            client=client,
            rating=int(rating),
            comment=comment or "",
        )

        driver = service.assigned_driver
        aggregate = DriverRating.objects.filter(driver=driver).aggregate(avg=Avg('rating'), count=Count('id'))
        driver.rating_avg = Decimal(str(round(aggregate['avg'] or 5, 2)))
        driver.rating_count = aggregate['count']
        driver.save(update_fields=['rating_avg', 'rating_count'])

    return result


def rating_distribution(driver):
    counts = dict(
        DriverRating.objects.filter(driver=driver).values_list('rating').annotate(total=Count('id'))
    )
    return {star: counts.get(star, 0) for star in range(1, 6)}


def monthly_rating_stats(driver, months=6, now=None):
    now = now or timezone.now()
    since = (now - timedelta(days=31 * months)).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    rows = (
        DriverRating.objects.filter(driver=driver, created_at__gte=since)
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(avg=Avg('rating'), count=Count('id'))
        .order_by('month')
    )
    return [
        {"month": row['month'].strftime("%Y-%m"), "avg": round(row['avg'], 2), "count": row['count']}
        for row in rows
    ]


# --- Cleanup ---

def expire_stale(now=None, policy=None):
    """
    Pending requests past their expiry (or older than the cleanup age) are
    cancelled; pending offers past expires_at are expired.
    Returns (expired_requests, expired_offers).
    """
    now = now or timezone.now()
    policy = policy or driver_policy()
    stale_before = now - timedelta(seconds=policy.stale_request_seconds)

    expired_requests = 0
    stale = ServiceRequest.objects.filter(
        Q(request_expires_at__lte=now) | Q(created_at__lt=stale_before),
        status=ServiceRequest.Status.PENDING,
    )
    for service in list(stale):
        with transaction.atomic():
            service = _locked(service.pk)
            if service.status != ServiceRequest.Status.PENDING:
                continue
            request_state.cancel(service, request_state.EXPIRED_REASON, now)
            service.save()
            service.offers.filter(status=Offer.Status.PENDING).update(status=Offer.Status.EXPIRED)
            expired_requests += 1

    expired_offers = Offer.objects.filter(status=Offer.Status.PENDING, expires_at__lte=now).update(
        status=Offer.Status.EXPIRED
    )
    return expired_requests, expired_offers
