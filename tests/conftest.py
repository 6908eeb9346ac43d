import pytest
from rest_framework.test import APIClient

CLIENT_LOCATION = (19.4200, -99.1100)
ZOCALO = (19.432608, -99.133209)


def make_user(django_user_model, email, role, **kwargs):
    fields = dict(
        username=email,
        email=email,
        password="movix123",
        full_name=email.split("@")[0].title(),
        role=role,
    )
    fields.update(kwargs)
    return django_user_model.objects.create_user(**fields)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def cliente(django_user_model):
    return make_user(django_user_model, "cliente@movix.test", "cliente", is_approved=True)


@pytest.fixture
def other_cliente(django_user_model):
    return make_user(django_user_model, "otro@movix.test", "cliente", is_approved=True)


def _approved_driver(django_user_model, email, role):
    return make_user(
        django_user_model, email, role,
        is_approved=True,
        is_available=True,
        kyc_status="approved",
        current_lat=CLIENT_LOCATION[0] + 0.005,
        current_lng=CLIENT_LOCATION[1],
    )


@pytest.fixture
def taxi_driver(django_user_model):
    return _approved_driver(django_user_model, "taxi@movix.test", "taxi")


@pytest.fixture
def second_taxi_driver(django_user_model):
    return _approved_driver(django_user_model, "taxi2@movix.test", "taxi")


@pytest.fixture
def mandadito_driver(django_user_model):
    return _approved_driver(django_user_model, "moto@movix.test", "mandadito")


@pytest.fixture
def admin_user(django_user_model):
    return make_user(django_user_model, "admin@movix.test", "admin", is_approved=True, is_staff=True)


@pytest.fixture
def as_user(api_client):
    """
    Returns a function that authenticates the shared client as a user.
    """
    def _as(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _as


@pytest.fixture
def taxi_payload():
    return {
        "service_type": "taxi",
        "origin_lat": CLIENT_LOCATION[0],
        "origin_lng": CLIENT_LOCATION[1],
        "origin_address": "Calle Norte 17, Moctezuma",
        "destination_lat": ZOCALO[0],
        "destination_lng": ZOCALO[1],
        "destination_address": "Zócalo",
        "offered_price": "80.00",
    }
