import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from rides.models import ServiceRequest
from users.models import User

pytestmark = pytest.mark.django_db


def test_seed_is_idempotent():
    call_command("seed", "--password", "demo1234")
    call_command("seed", "--password", "demo1234")

    assert User.objects.count() == 4
    taxi = User.objects.get(email="taxi@movix.app")
    assert taxi.kyc_status == User.KycStatus.APPROVED
    assert taxi.is_available
    assert taxi.vehicle.taxi_number == "042"
    assert taxi.check_password("demo1234")


def test_seed_requests(tmp_path):
    call_command("seed")
    csv_file = tmp_path / "demo.csv"

    call_command("seed_requests", "--count", "12", "--seed", "5", "--csv", str(csv_file))

    assert ServiceRequest.objects.filter(status="pending").count() == 12
    assert csv_file.exists()
    mandaditos = ServiceRequest.objects.filter(service_type="mandadito")
    assert all(service.stops.count() == 1 for service in mandaditos)


def test_seed_requests_needs_client():
    with pytest.raises(CommandError):
        call_command("seed_requests", "--client", "nadie@movix.app")


def test_create_admin_promotes(cliente):
    call_command("create_admin", cliente.email)

    cliente.refresh_from_db()
    assert cliente.role == User.Roles.ADMIN
    assert cliente.is_staff


def test_create_admin_requires_password_for_new_user():
    with pytest.raises(CommandError):
        call_command("create_admin", "jefe@movix.app")

    call_command("create_admin", "jefe@movix.app", "--password", "secreto")
    assert User.objects.get(email="jefe@movix.app").role == User.Roles.ADMIN


def test_expire_requests(cliente):
    ServiceRequest.objects.create(client=cliente, service_type="taxi", request_expires_at="2020-01-01T00:00:00Z")

    call_command("expire_requests")

    assert ServiceRequest.objects.get().status == "cancelled"
