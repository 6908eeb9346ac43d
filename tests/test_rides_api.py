from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest import mock

import pytest
import requests
from django.utils import timezone

from rides import routes, services
from rides.models import DriverRating, Offer, ServiceRequest, StopItem

pytestmark = pytest.mark.django_db

REQUESTS_URL = "/api/v1/requests/"


def create_taxi_request(as_user, cliente, taxi_payload):
    response = as_user(cliente).post(REQUESTS_URL, taxi_payload, format="json")
    assert response.status_code == 201
    return ServiceRequest.objects.get(pk=response.data["id"])


def offer_on(as_user, driver, service, price="90.00"):
    return as_user(driver).post(f"{REQUESTS_URL}{service.pk}/offers/", {"offered_price": price}, format="json")


def assigned_taxi(cliente, taxi_driver, taxi_payload, as_user):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer = Offer.objects.get(pk=offer_on(as_user, taxi_driver, service).data["id"])
    services.accept_offer(service.pk, offer.pk, cliente)
    service.refresh_from_db()
    return service


def test_create_taxi_request(as_user, cliente, taxi_payload):
    response = as_user(cliente).post(REQUESTS_URL, taxi_payload, format="json")

    assert response.status_code == 201
    assert response.data["status"] == "pending"
    assert len(response.data["boarding_pin"]) == 4
    assert 0 < response.data["remaining_seconds"] <= 40


def test_taxi_request_needs_price(as_user, cliente, taxi_payload):
    taxi_payload.pop("offered_price")
    response = as_user(cliente).post(REQUESTS_URL, taxi_payload, format="json")
    assert response.status_code == 400


def test_moto_ride_fixed_price_and_short_pin(as_user, cliente, taxi_payload):
    taxi_payload["service_type"] = "moto_ride"
    taxi_payload.pop("offered_price")

    response = as_user(cliente).post(REQUESTS_URL, taxi_payload, format="json")

    assert Decimal(response.data["offered_price"]) == Decimal("25")
    assert len(response.data["boarding_pin"]) == 3


def test_drivers_cannot_create_requests(as_user, taxi_driver, taxi_payload):
    response = as_user(taxi_driver).post(REQUESTS_URL, taxi_payload, format="json")
    assert response.status_code == 403


def test_create_shopping_mandadito(as_user, cliente):
    payload = {
        "mandadito_type": "shopping",
        "destination_lat": 19.42,
        "destination_lng": -99.11,
        "destination_address": "Calle Norte 17",
        "stops": [
            {
                "name": "Farmacia",
                "address": "Av. Oceanía 30",
                "lat": 19.43,
                "lng": -99.10,
                "items": [{"description": "Paracetamol", "quantity": 2}],
            },
            {"name": "Tortillería", "lat": 19.425, "lng": -99.105},
        ],
    }

    response = as_user(cliente).post(f"{REQUESTS_URL}mandadito/", payload, format="json")

    assert response.status_code == 201
    service = ServiceRequest.objects.get(pk=response.data["id"])
    assert service.offered_price == Decimal("28")
    assert (service.origin_lat, service.origin_lng) == (19.43, -99.10)
    assert [stop.name for stop in service.stops.all()] == ["Farmacia", "Tortillería"]
    assert service.stops.first().items.get().quantity == 2
    assert len(service.delivery_pin) == 4
    assert service.boarding_pin is None


def test_payment_mandadito_needs_details(as_user, cliente):
    payload = {"mandadito_type": "payment", "destination_lat": 19.42, "destination_lng": -99.11}
    response = as_user(cliente).post(f"{REQUESTS_URL}mandadito/", payload, format="json")
    assert response.status_code == 400

    payload["payment"] = {"amount": "350.00", "reference": "CFE-123"}
    response = as_user(cliente).post(f"{REQUESTS_URL}mandadito/", payload, format="json")
    assert response.status_code == 201
    assert "Referencia: CFE-123" in ServiceRequest.objects.get(pk=response.data["id"]).delivery_references


def test_radar_lists_nearby_requests(as_user, cliente, taxi_driver, mandadito_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)

    response = as_user(taxi_driver).get(f"{REQUESTS_URL}radar/")
    assert response.status_code == 200
    assert [item["id"] for item in response.data] == [service.pk]
    assert response.data[0]["distance_km"] == pytest.approx(0.56, abs=0.05)
    assert "boarding_pin" not in response.data[0]

    # taxi requests are not for mandadito drivers
    assert as_user(mandadito_driver).get(f"{REQUESTS_URL}radar/").data == []


def test_radar_requires_availability(as_user, taxi_driver):
    taxi_driver.is_available = False
    taxi_driver.save()

    response = as_user(taxi_driver).get(f"{REQUESTS_URL}radar/")

    assert response.status_code == 403
    assert response.data["error"] == "NOT_AVAILABLE"


def test_offer_rules(as_user, cliente, taxi_driver, mandadito_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)

    assert offer_on(as_user, taxi_driver, service).status_code == 201

    duplicate = offer_on(as_user, taxi_driver, service)
    assert duplicate.status_code == 409
    assert duplicate.data["error"] == "DUPLICATE_OFFER"

    wrong_role = offer_on(as_user, mandadito_driver, service)
    assert wrong_role.status_code == 403
    assert wrong_role.data["error"] == "INVALID_ROLE"

    assert offer_on(as_user, taxi_driver, service, price="0").data["error"] == "INVALID_PRICE"


def test_blocked_driver_cannot_offer(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    taxi_driver.commission_status = "blocked"
    taxi_driver.save()

    response = offer_on(as_user, taxi_driver, service)

    assert response.status_code == 403
    assert response.data["error"] == "NOT_ALLOWED"


def test_client_sees_offers_cheapest_first(as_user, cliente, taxi_driver, second_taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer_on(as_user, taxi_driver, service, price="95.00")
    offer_on(as_user, second_taxi_driver, service, price="85.00")

    response = as_user(cliente).get(f"{REQUESTS_URL}{service.pk}/offers/")

    assert [Decimal(offer["offered_price"]) for offer in response.data] == [Decimal("85"), Decimal("95")]
    assert response.data[0]["driver"]["id"] == second_taxi_driver.pk


def test_accept_offer_assigns_and_rejects_others(as_user, cliente, taxi_driver, second_taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    winner = offer_on(as_user, taxi_driver, service).data["id"]
    loser = offer_on(as_user, second_taxi_driver, service, price="100.00").data["id"]

    response = as_user(cliente).post(
        f"{REQUESTS_URL}{service.pk}/accept-offer/", {"offer_id": winner, "version": 1}, format="json"
    )

    assert response.status_code == 200
    request_data = response.data["request"]
    assert request_data["status"] == "assigned"
    assert request_data["tracking_step"] == "accepted"
    assert request_data["assigned_driver"]["id"] == taxi_driver.pk
    assert Decimal(request_data["final_price"]) == Decimal("90")
    assert request_data["version"] == 2
    assert Offer.objects.get(pk=winner).status == "accepted"
    assert Offer.objects.get(pk=loser).status == "rejected"


def test_accept_with_stale_version(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer_id = offer_on(as_user, taxi_driver, service).data["id"]

    response = as_user(cliente).post(
        f"{REQUESTS_URL}{service.pk}/accept-offer/", {"offer_id": offer_id, "version": 7}, format="json"
    )

    assert response.status_code == 409
    assert response.data["error"] == "VERSION_CONFLICT"
    assert response.data["current_version"] == 1
    service.refresh_from_db()
    assert service.status == "pending"


def test_second_acceptance_conflicts(as_user, cliente, taxi_driver, second_taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    first = offer_on(as_user, taxi_driver, service).data["id"]
    second = offer_on(as_user, second_taxi_driver, service).data["id"]
    services.accept_offer(service.pk, first, cliente)

    response = as_user(cliente).post(f"{REQUESTS_URL}{service.pk}/accept-offer/", {"offer_id": second}, format="json")

    assert response.status_code == 409
    assert response.data["error"] == "ALREADY_ASSIGNED"


def test_counter_offer_accepted_by_driver(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer_id = offer_on(as_user, taxi_driver, service, price="120.00").data["id"]

    counter = as_user(cliente).post(f"/api/v1/offers/{offer_id}/counter/", {"offered_price": "100.00"}, format="json")
    assert counter.status_code == 201
    assert counter.data["offer_type"] == "counter"
    assert Offer.objects.get(pk=offer_id).status == "rejected"

    # the client cannot accept their own counter
    response = as_user(cliente).post(
        f"{REQUESTS_URL}{service.pk}/accept-offer/", {"offer_id": counter.data["id"]}, format="json"
    )
    assert response.data["error"] == "INVALID_OFFER"

    response = as_user(taxi_driver).post(f"/api/v1/offers/{counter.data['id']}/accept-counter/", {}, format="json")
    assert response.status_code == 200
    assert Decimal(response.data["request"]["final_price"]) == Decimal("100")


def test_expired_offer_cannot_be_accepted(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer_id = offer_on(as_user, taxi_driver, service).data["id"]
    Offer.objects.filter(pk=offer_id).update(expires_at=timezone.now() - timedelta(seconds=1))

    response = as_user(cliente).post(f"{REQUESTS_URL}{service.pk}/accept-offer/", {"offer_id": offer_id}, format="json")

    assert response.data["error"] == "OFFER_EXPIRED"
    service.refresh_from_db()
    assert service.status == "pending"


def test_taxi_trip_with_boarding_pin(as_user, cliente, taxi_driver, taxi_payload):
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)
    driver = as_user(taxi_driver)
    url = f"{REQUESTS_URL}{service.pk}"

    for expected in ("on_the_way", "nearby", "arrived"):
        assert driver.post(f"{url}/advance/").data["tracking_step"] == expected

    # picked_up needs the PIN
    assert driver.post(f"{url}/advance/").data["error"] == "INVALID_STATE"

    wrong = "0000" if service.boarding_pin != "0000" else "1111"
    assert driver.post(f"{url}/boarding-pin/", {"pin": wrong}, format="json").data["error"] == "INVALID_PIN"

    response = driver.post(f"{url}/boarding-pin/", {"pin": service.boarding_pin}, format="json")
    assert response.data["request"]["status"] == "in_progress"
    assert response.data["request"]["tracking_step"] == "picked_up"

    # not in transit yet
    assert driver.post(f"{url}/complete/").status_code == 409

    assert driver.post(f"{url}/advance/").data["tracking_step"] == "in_transit"
    response = driver.post(f"{url}/complete/")
    assert response.data["request"]["status"] == "completed"


def test_boarding_pin_is_accepted_once(as_user, cliente, taxi_driver, taxi_payload):
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)
    driver = as_user(taxi_driver)
    url = f"{REQUESTS_URL}{service.pk}"
    for _ in range(3):
        driver.post(f"{url}/advance/")
    driver.post(f"{url}/boarding-pin/", {"pin": service.boarding_pin}, format="json")
    assert driver.post(f"{url}/advance/").data["tracking_step"] == "in_transit"
    service.refresh_from_db()
    started_at = service.started_at

    response = driver.post(f"{url}/boarding-pin/", {"pin": service.boarding_pin}, format="json")

    assert response.status_code == 409
    assert response.data["error"] == "PIN_ALREADY_VERIFIED"
    assert response.data["tracking_step"] == "in_transit"
    service.refresh_from_db()
    assert service.tracking_step == "in_transit"
    assert service.started_at == started_at


def test_boarding_pin_needs_assigned_request(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    ServiceRequest.objects.filter(pk=service.pk).update(assigned_driver=taxi_driver)

    response = as_user(taxi_driver).post(
        f"{REQUESTS_URL}{service.pk}/boarding-pin/", {"pin": service.boarding_pin}, format="json"
    )

    assert response.status_code == 409
    assert response.data["error"] == "INVALID_STATE"


def test_only_assigned_driver_advances(as_user, cliente, taxi_driver, second_taxi_driver, taxi_payload):
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)

    response = as_user(second_taxi_driver).post(f"{REQUESTS_URL}{service.pk}/advance/")

    assert response.status_code == 403
    assert response.data["error"] == "NOT_ASSIGNED_DRIVER"


def test_mandadito_delivery_pin_reports_earnings(as_user, cliente, mandadito_driver):
    service = services.create_mandadito(cliente, {
        "mandadito_type": "delivery",
        "destination_lat": 19.42,
        "destination_lng": -99.11,
        "stops": [{"name": "Recoger paquete", "lat": 19.421, "lng": -99.112}],
    })
    offer = services.create_offer(service.pk, mandadito_driver, Decimal("28"))
    services.accept_offer(service.pk, offer.pk, cliente)
    driver = as_user(mandadito_driver)

    stop = service.stops.get()
    assert driver.post(f"/api/v1/stops/{stop.pk}/complete/").data["is_completed"] is True

    response = driver.post(
        f"{REQUESTS_URL}{service.pk}/confirm-payment/", {"method": "cash", "amount": "28.00"}, format="json"
    )
    assert response.data["request"]["payment_method"] == "cash"

    # mandaditos are not completed with the ride endpoint
    assert driver.post(f"{REQUESTS_URL}{service.pk}/complete/").data["error"] == "DELIVERY_PIN_REQUIRED"

    response = driver.post(f"{REQUESTS_URL}{service.pk}/delivery-pin/", {"pin": service.delivery_pin}, format="json")
    assert response.status_code == 200
    assert response.data["earnings"] == 25
    assert response.data["request"]["status"] == "completed"


def test_client_cancel_rejects_pending_offers(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer_id = offer_on(as_user, taxi_driver, service).data["id"]

    response = as_user(cliente).post(f"{REQUESTS_URL}{service.pk}/cancel/")

    assert response.data["request"]["status"] == "cancelled"
    assert response.data["request"]["cancellation_reason"] == "Cancelado por usuario"
    assert Offer.objects.get(pk=offer_id).status == "rejected"


def test_driver_cancel_needs_reason(as_user, cliente, taxi_driver, taxi_payload):
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)
    driver = as_user(taxi_driver)

    assert driver.post(f"{REQUESTS_URL}{service.pk}/cancel/", {"reason": "bored"}, format="json").status_code == 400

    response = driver.post(f"{REQUESTS_URL}{service.pk}/cancel/", {"reason": "vehicle_issue"}, format="json")
    assert response.data["request"]["cancellation_reason"] == "Cancelado por conductor: Problema con el vehículo"


def test_rating_updates_driver_average(as_user, cliente, taxi_driver, taxi_payload):
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)
    client = as_user(cliente)

    # not completed yet
    assert client.post(f"{REQUESTS_URL}{service.pk}/rate/", {"rating": 5}, format="json").data["error"] == "NOT_COMPLETED"

    ServiceRequest.objects.filter(pk=service.pk).update(status="completed")
    response = client.post(f"{REQUESTS_URL}{service.pk}/rate/", {"rating": 4, "comment": "Bien"}, format="json")
    assert response.status_code == 201

    again = client.post(f"{REQUESTS_URL}{service.pk}/rate/", {"rating": 5}, format="json")
    assert again.status_code == 409

    taxi_driver.refresh_from_db()
    assert taxi_driver.rating_avg == Decimal("4.00")
    assert taxi_driver.rating_count == 1
    assert services.rating_distribution(taxi_driver) == {1: 0, 2: 0, 3: 0, 4: 1, 5: 0}
    assert DriverRating.objects.get().comment == "Bien"


def test_expire_stale(cliente, taxi_driver):
    now = timezone.now()
    data = {"origin_lat": 19.42, "origin_lng": -99.11, "destination_lat": 19.43, "destination_lng": -99.13,
            "offered_price": Decimal("80")}
    expired = services.create_ride(cliente, "taxi", data, now=now - timedelta(minutes=5))
    fresh = services.create_ride(cliente, "taxi", data, now=now)
    offer = services.create_offer(fresh.pk, taxi_driver, Decimal("90"), now=now - timedelta(minutes=6))

    expired_requests, expired_offers = services.expire_stale(now=now)

    assert (expired_requests, expired_offers) == (1, 1)
    expired.refresh_from_db()
    assert expired.status == "cancelled"
    assert expired.cancellation_reason == "Expirado automáticamente"
    fresh.refresh_from_db()
    assert fresh.status == "pending"
    assert Offer.objects.get(pk=offer.pk).status == "expired"


def test_server_time_is_public(api_client):
    response = api_client.get("/api/v1/server-time/")
    assert response.status_code == 200
    assert response.data["epoch_ms"] > 0


def test_tracking_shows_driver_and_pin(as_user, cliente, taxi_driver, taxi_payload):
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)
    as_user(taxi_driver).post(
        "/api/v1/drivers/location/", {"lat": 19.4205, "lng": -99.1102, "service_id": service.pk}, format="json"
    )

    response = as_user(cliente).get(f"{REQUESTS_URL}{service.pk}/tracking/")

    assert response.status_code == 200
    assert response.data["driver"]["id"] == taxi_driver.pk
    assert response.data["boarding_pin"] == service.boarding_pin
    assert response.data["driver_location"]["lat"] == pytest.approx(19.4205)


def test_route_to_pickup(as_user, cliente, taxi_driver, taxi_payload, settings):
    settings.MAPBOX_ACCESS_TOKEN = "pk.test"
    service = assigned_taxi(cliente, taxi_driver, taxi_payload, as_user)
    routes.forget(service.pk)
    directions = mock.Mock(ok=True, status_code=200)
    directions.json.return_value = {
        "code": "Ok",
        "routes": [{
            "geometry": {"type": "LineString", "coordinates": [[-99.11, 19.425], [-99.11, 19.42]]},
            "duration": 240,
            "distance": 560,
        }],
    }

    with mock.patch("routing.mapbox_client.requests.get", return_value=directions):
        response = as_user(cliente).get(f"{REQUESTS_URL}{service.pk}/route/")

    assert response.status_code == 200
    assert response.data["phase"] == "pickup"
    assert response.data["eta_minutes"] == 4
    assert response.data["eta_text"] == "4 min"
    assert response.data["distance_km"] == pytest.approx(0.56)


def test_route_requires_active_service(as_user, cliente, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)

    response = as_user(cliente).get(f"{REQUESTS_URL}{service.pk}/route/")

    assert response.data["error"] == "NOT_ACTIVE"


def assigned_shopping(cliente, mandadito_driver):
    service = services.create_mandadito(cliente, {
        "mandadito_type": "shopping",
        "destination_lat": 19.42,
        "destination_lng": -99.11,
        "stops": [{"name": "Mercado", "lat": 19.421, "lng": -99.112,
                   "items": [{"description": "Jitomate", "quantity": 1}]}],
    })
    offer = services.create_offer(service.pk, mandadito_driver, Decimal("28"))
    services.accept_offer(service.pk, offer.pk, cliente)
    return service


def test_item_check_parses_booleans(as_user, cliente, mandadito_driver):
    service = assigned_shopping(cliente, mandadito_driver)
    item = StopItem.objects.get(stop__request=service)
    driver = as_user(mandadito_driver)
    url = f"/api/v1/stop-items/{item.pk}/check/"

    assert driver.post(url, {}, format="json").data["is_checked"] is True
    assert driver.post(url, {"checked": "false"}, format="json").data["is_checked"] is False
    item.refresh_from_db()
    assert item.is_checked is False

    response = driver.post(url, {"checked": "maybe"}, format="json")
    assert response.status_code == 400
    assert response.data["error"] == "VALIDATION_ERROR"
    assert "checked" in response.data["errors"]


def test_item_check_only_by_assigned_driver(as_user, cliente, mandadito_driver, taxi_driver):
    service = assigned_shopping(cliente, mandadito_driver)
    item = StopItem.objects.get(stop__request=service)

    response = as_user(taxi_driver).post(f"/api/v1/stop-items/{item.pk}/check/", {"checked": True}, format="json")

    assert response.status_code == 403
    assert response.data["error"] == "NOT_ASSIGNED_DRIVER"


def test_client_rejects_offer(as_user, cliente, other_cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)
    offer_id = offer_on(as_user, taxi_driver, service).data["id"]
    url = f"/api/v1/offers/{offer_id}/reject/"

    assert as_user(other_cliente).post(url).data["error"] == "NOT_OWNER"

    response = as_user(cliente).post(url)
    assert response.status_code == 200
    assert response.data["status"] == "rejected"

    again = as_user(cliente).post(url)
    assert again.status_code == 409
    assert again.data["error"] == "INVALID_STATE"

    service.refresh_from_db()
    assert service.status == "pending"


def rate_on(client, driver, rating, created_at):
    service = ServiceRequest.objects.create(
        client=client, assigned_driver=driver, service_type="taxi", status=ServiceRequest.Status.COMPLETED,
    )
    created = DriverRating.objects.create(request=service, driver=driver, client=client, rating=rating)
    DriverRating.objects.filter(pk=created.pk).update(created_at=created_at)


def test_monthly_rating_stats(cliente, taxi_driver):
    now = datetime(2026, 3, 15, 12, tzinfo=dt_timezone.utc)
    rate_on(cliente, taxi_driver, 4, datetime(2026, 2, 10, 12, tzinfo=dt_timezone.utc))
    rate_on(cliente, taxi_driver, 5, datetime(2026, 2, 20, 12, tzinfo=dt_timezone.utc))
    rate_on(cliente, taxi_driver, 3, datetime(2026, 3, 2, 12, tzinfo=dt_timezone.utc))
    # outside the six month window
    rate_on(cliente, taxi_driver, 1, datetime(2025, 6, 10, 12, tzinfo=dt_timezone.utc))

    stats = services.monthly_rating_stats(taxi_driver, now=now)

    assert stats == [
        {"month": "2026-02", "avg": 4.5, "count": 2},
        {"month": "2026-03", "avg": 3, "count": 1},
    ]


def test_driver_ratings_view(as_user, cliente, taxi_driver):
    rate_on(cliente, taxi_driver, 5, timezone.now())
    url = f"/api/v1/drivers/{taxi_driver.pk}/ratings/"

    response = as_user(cliente).get(url, {"months": 3})

    assert response.status_code == 200
    assert response.data["driver_id"] == taxi_driver.pk
    assert response.data["distribution"][5] == 1
    assert [row["count"] for row in response.data["monthly"]] == [1]
    assert len(response.data["recent"]) == 1


@pytest.mark.parametrize("months", ["abc", "0", "99"])
def test_driver_ratings_rejects_bad_months(as_user, cliente, taxi_driver, months):
    response = as_user(cliente).get(f"/api/v1/drivers/{taxi_driver.pk}/ratings/", {"months": months})

    assert response.status_code == 400
    assert response.data["error"] == "VALIDATION_ERROR"
    assert "months" in response.data["errors"]


def test_driver_ratings_unknown_driver(as_user, cliente):
    response = as_user(cliente).get(f"/api/v1/drivers/{cliente.pk}/ratings/")

    assert response.status_code == 404
    assert response.data["error"] == "NOT_FOUND"


def nominatim_reply(payload):
    reply = mock.Mock(ok=True, status_code=200)
    reply.json.return_value = payload
    return reply


def test_reverse_geocode_view(as_user, cliente):
    reply = nominatim_reply({
        "display_name": "Calle 5 de Mayo 2, Centro, Ciudad de México",
        "address": {"road": "Calle 5 de Mayo", "house_number": "2", "suburb": "Centro"},
    })

    with mock.patch("routing.geocoding.requests.get", return_value=reply):
        response = as_user(cliente).get("/api/v1/geo/reverse/", {"lat": 19.4326, "lng": -99.1332})

    assert response.status_code == 200
    assert response.data == {
        "full": "Calle 5 de Mayo 2, Centro, Ciudad de México",
        "short": "Calle 5 de Mayo #2",
        "street": "Calle 5 de Mayo",
        "area": "Centro",
    }


def test_reverse_geocode_provider_error_falls_back(as_user, cliente):
    with mock.patch("routing.geocoding.requests.get", side_effect=requests.ConnectionError("down")):
        response = as_user(cliente).get("/api/v1/geo/reverse/", {"lat": 19.4326, "lng": -99.1332})

    assert response.status_code == 200
    assert response.data["full"] is None
    assert response.data["short"] == "Ubicación detectada"


def test_reverse_geocode_bad_coordinates(as_user, cliente):
    response = as_user(cliente).get("/api/v1/geo/reverse/", {"lat": "norte", "lng": -99.1})

    assert response.status_code == 400
    assert response.data["error"] == "INVALID_COORDINATES"


def test_place_search_view(as_user, cliente):
    reply = nominatim_reply([
        {"display_name": "Zócalo, Centro", "lat": "19.4326", "lon": "-99.1332"},
        {"display_name": "sin coordenadas"},
    ])

    with mock.patch("routing.geocoding.requests.get", return_value=reply) as get:
        response = as_user(cliente).get("/api/v1/geo/search/", {"q": " zócalo "})

    assert response.status_code == 200
    assert response.data == [{"label": "Zócalo, Centro", "lat": 19.4326, "lng": -99.1332}]
    assert get.call_args.kwargs["params"]["q"] == "zócalo"


def test_place_search_blank_query(as_user, cliente):
    with mock.patch("routing.geocoding.requests.get") as get:
        response = as_user(cliente).get("/api/v1/geo/search/", {"q": "   "})

    assert response.status_code == 200
    assert response.data == []
    get.assert_not_called()


def test_place_search_provider_error(as_user, cliente):
    with mock.patch("routing.geocoding.requests.get", side_effect=requests.Timeout("slow")):
        response = as_user(cliente).get("/api/v1/geo/search/", {"q": "zócalo"})

    assert response.status_code == 502
    assert response.data["error"] == "GEOCODING_ERROR"
    assert response.data["retryable"] is True


def test_unauthenticated_requests_get_error_shape(api_client):
    response = api_client.get(REQUESTS_URL)

    assert response.status_code == 401
    assert response.data == {
        "success": False,
        "error": "UNAUTHORIZED",
        "message": response.data["message"],
        "retryable": False,
    }
    assert response["WWW-Authenticate"] == "Token"


def test_accept_offer_on_missing_request(as_user, cliente):
    response = as_user(cliente).post(f"{REQUESTS_URL}999999/accept-offer/", {"offer_id": 1}, format="json")

    assert response.status_code == 404
    assert response.data["success"] is False
    assert response.data["error"] == "NOT_FOUND"
    assert response.data["message"] == "Registro no encontrado o no válido."


def test_forbidden_role_gets_error_shape(as_user, cliente, taxi_driver, taxi_payload):
    service = create_taxi_request(as_user, cliente, taxi_payload)

    response = as_user(taxi_driver).post(f"{REQUESTS_URL}{service.pk}/accept-offer/", {"offer_id": 1}, format="json")

    assert response.status_code == 403
    assert response.data["success"] is False
    assert response.data["error"] == "FORBIDDEN"
    assert response.data["message"] == "Solo clientes"
