"""
Weekly commission settlement and driver balances.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from dispatch.pricing import PERIOD_CURRENT, PERIOD_PREVIOUS, commission_for, period_bounds
from movix_backend.errors import ServiceError
from rides.models import ServiceRequest
from users.models import User

from .models import BalanceTransaction, CommissionPeriod

logger = logging.getLogger(__name__)


def commission_report(service_type, period_filter, now=None):
    """
    One row per driver with completed services of service_type in the
    period: services x rate, merged with the stored period row so paid
    weeks stay paid. Blocked drivers show as overdue.
    """
    now = now or timezone.now()
    try:
        start, end = period_bounds(period_filter, now)
    except ValueError as e:
        raise ServiceError(str(e), code="INVALID_PERIOD")
    rate = commission_for(service_type)

    rows = (
        ServiceRequest.objects.filter(
            service_type=service_type,
            status=ServiceRequest.Status.COMPLETED,
            completed_at__gte=start,
            completed_at__lte=end,
            assigned_driver__isnull=False,
        )
        .values('assigned_driver')
        .annotate(total_services=Count('id'))
    )
    counts = {row['assigned_driver']: row['total_services'] for row in rows}

    stored = {}
    periods = CommissionPeriod.objects.filter(
        service_type=service_type, period_start__gte=start, period_end__lte=end
    ).order_by('period_start')
    for period in periods:
        # latest paid week wins over unpaid ones in a multi week window
        kept = stored.get(period.driver_id)
        if kept is None or kept.status != CommissionPeriod.Status.PAID or period.status == CommissionPeriod.Status.PAID:
            stored[period.driver_id] = period

    drivers = User.objects.filter(pk__in=set(counts) | set(stored)).select_related('vehicle')
    report = []
    for driver in drivers:
        total_services = counts.get(driver.pk, 0)
        period = stored.get(driver.pk)

        if period is not None and period.status == CommissionPeriod.Status.PAID:
            status = CommissionPeriod.Status.PAID
        elif driver.commission_status == User.CommissionStatus.BLOCKED:
            status = CommissionPeriod.Status.OVERDUE
        else:
            status = CommissionPeriod.Status.PENDING

        report.append({
            "driver_id": driver.pk,
            "driver_name": driver.full_name,
            "driver_email": driver.email,
            "commission_status": driver.commission_status,
            "service_type": service_type,
            "period_start": start,
            "period_end": end,
            "total_services": total_services,
            "commission_rate": rate,
            "total_amount": rate * total_services,
            "status": status,
            "paid_at": period.paid_at if period is not None else None,
        })

    report.sort(key=lambda row: row["total_amount"], reverse=True)
    return report


def mark_period_paid(driver, service_type, period_filter, admin, now=None):
    """
    Upsert of the driver's period as paid. Paying also lifts a commission
    block.
    """
    now = now or timezone.now()
    if period_filter not in (PERIOD_CURRENT, PERIOD_PREVIOUS):
        raise ServiceError("Solo se pueden pagar semanas completas", code="INVALID_PERIOD")
    start, end = period_bounds(period_filter, now)
    rate = commission_for(service_type)
    total_services = ServiceRequest.objects.filter(
        assigned_driver=driver,
        service_type=service_type,
        status=ServiceRequest.Status.COMPLETED,
        completed_at__gte=start,
        completed_at__lte=end,
    ).count()

    with transaction.atomic():
        period, _ = CommissionPeriod.objects.update_or_create(
            driver=driver,
            service_type=service_type,
            period_start=start,
            defaults={
                "period_end": end,
                "total_services": total_services,
                "total_amount": rate * total_services,
                "status": CommissionPeriod.Status.PAID,
                "paid_at": now,
                "marked_paid_by": admin,
            },
        )
        if driver.commission_status != User.CommissionStatus.OK:
            driver.commission_status = User.CommissionStatus.OK
            driver.save(update_fields=["commission_status"])

    logger.info(f"Commission {service_type} {start:%Y-%m-%d} of driver {driver.pk} marked paid by {admin.pk}")
    return period


def toggle_block(driver):
    if driver.commission_status == User.CommissionStatus.BLOCKED:
        driver.commission_status = User.CommissionStatus.OK
    else:
        driver.commission_status = User.CommissionStatus.BLOCKED
        # A blocked driver leaves the radar right away
        driver.is_available = False
    driver.save(update_fields=["commission_status", "is_available"])
    return driver


def add_balance(driver, amount, description, admin):
    amount = Decimal(amount)
    if amount == 0:
        raise ServiceError("El monto no puede ser 0", code="INVALID_AMOUNT")
    if not description:
        raise ServiceError("Agrega una descripción", code="MISSING_DESCRIPTION")

    with transaction.atomic():
        driver = User.objects.select_for_update().get(pk=driver.pk)
        driver.balance = driver.balance + amount
        driver.save(update_fields=["balance"])
        entry = BalanceTransaction.objects.create(
            driver=driver,
            amount=amount,
            description=description,
            balance_after=driver.balance,
            created_by=admin,
        )
    return entry


def dashboard_summary():
    users_by_role = dict(User.objects.values_list('role').annotate(total=Count('id')))
    requests_by_status = dict(ServiceRequest.objects.values_list('status').annotate(total=Count('id')))

    completed = ServiceRequest.objects.filter(status=ServiceRequest.Status.COMPLETED)
    revenue = completed.aggregate(total=Sum('final_price'))['total'] or Decimal("0")
    commissions = sum(
        (commission_for(service_type) * total
         for service_type, total in completed.values_list('service_type').annotate(total=Count('id'))),
        Decimal("0"),
    )

    return {
        "users_by_role": {role: users_by_role.get(role, 0) for role in User.Roles.values},
        "pending_kyc": User.objects.filter(kyc_status=User.KycStatus.PENDING).count(),
        "requests_by_status": {
            value: requests_by_status.get(value, 0) for value in ServiceRequest.Status.values
        },
        "completed_revenue": revenue,
        "commission_total": commissions,
        "blocked_drivers": User.objects.filter(commission_status=User.CommissionStatus.BLOCKED).count(),
    }


def delete_user(target, admin):
    if target.pk == admin.pk:
        raise ServiceError("No puedes eliminar tu propia cuenta", code="CANNOT_DELETE_SELF", status_code=403)
    if target.role == User.Roles.ADMIN:
        raise ServiceError("No puedes eliminar a otro administrador", code="CANNOT_DELETE_ADMIN", status_code=403)
    logger.warning(f"Admin {admin.pk} deleted user {target.pk} ({target.email})")
    target.delete()
