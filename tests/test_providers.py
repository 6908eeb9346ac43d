from unittest import mock

import pytest
import requests

from routing.geocoding import GeocodingError, NominatimClient
from routing.mapbox_client import MapboxClient, MapboxError


def fake_response(payload, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code}")
    return response


# --- Mapbox ---

def test_mapbox_requires_token(monkeypatch):
    monkeypatch.delenv("MAPBOX_ACCESS_TOKEN", raising=False)
    with pytest.raises(ValueError):
        MapboxClient()


def test_mapbox_compute_route_formats_lon_lat():
    client = MapboxClient(access_token="pk.test", base_url="https://api.example.com/")
    payload = {
        "code": "Ok",
        "routes": [{"geometry": {"type": "LineString", "coordinates": [[-99.13, 19.43], [-99.14, 19.44]]},
                    "duration": 420.5, "distance": 3100}],
    }

    with mock.patch("routing.mapbox_client.requests.get", return_value=fake_response(payload)) as get:
        route = client.compute_route((19.43, -99.13), (19.44, -99.14))

    url = get.call_args[0][0]
    assert url == "https://api.example.com/directions/v5/mapbox/driving/-99.13,19.43;-99.14,19.44"
    assert get.call_args[1]["params"]["geometries"] == "geojson"
    assert route.duration_s == 420.5
    assert route.distance_m == 3100
    assert route.coordinates[0] == [-99.13, 19.43]


@pytest.mark.parametrize("payload", [
    {"code": "NoRoute", "message": "No route found"},
    {"code": "Ok", "routes": []},
])
def test_mapbox_errors(payload):
    client = MapboxClient(access_token="pk.test")
    with mock.patch("routing.mapbox_client.requests.get", return_value=fake_response(payload)):
        with pytest.raises(MapboxError):
            client.compute_route((19.43, -99.13), (19.44, -99.14))


def test_mapbox_network_error():
    client = MapboxClient(access_token="pk.test")
    with mock.patch("routing.mapbox_client.requests.get", side_effect=requests.ConnectionError("down")):
        with pytest.raises(MapboxError):
            client.compute_route((19.43, -99.13), (19.44, -99.14))


# --- Nominatim ---

def test_reverse_short_address_with_house_number():
    payload = {
        "display_name": "Calle Madero 12, Centro, Ciudad de México",
        "address": {"road": "Calle Madero", "house_number": "12", "suburb": "Centro"},
    }
    with mock.patch("routing.geocoding.requests.get", return_value=fake_response(payload)) as get:
        address = NominatimClient().reverse(19.43, -99.13)

    assert get.call_args[1]["headers"]["User-Agent"] == "MoVix-App/1.0"
    assert address.short == "Calle Madero #12"
    assert address.street == "Calle Madero"
    assert address.area == "Centro"


def test_reverse_falls_back_to_area_then_default():
    with mock.patch("routing.geocoding.requests.get",
                    return_value=fake_response({"address": {"city": "Ciudad de México"}})):
        assert NominatimClient().reverse(19.43, -99.13).short == "Ciudad de México"

    with mock.patch("routing.geocoding.requests.get", return_value=fake_response({"address": {}})):
        assert NominatimClient().reverse(19.43, -99.13).short == "Ubicación detectada"


def test_reverse_returns_none_for_missing_coordinates_and_errors():
    with mock.patch("routing.geocoding.requests.get") as get:
        assert NominatimClient().reverse(0, -99.13) is None
        assert NominatimClient().reverse(None, None) is None
        get.assert_not_called()

    with mock.patch("routing.geocoding.requests.get", return_value=fake_response({}, status_code=500)):
        assert NominatimClient().reverse(19.43, -99.13) is None


def test_search_blank_query_skips_request():
    with mock.patch("routing.geocoding.requests.get") as get:
        assert NominatimClient().search("   ") == []
        get.assert_not_called()


def test_search_parses_results_and_raises_on_failure():
    payload = [
        {"display_name": "Zócalo, CDMX", "lat": "19.4326", "lon": "-99.1332"},
        {"display_name": "sin coordenadas"},
    ]
    with mock.patch("routing.geocoding.requests.get", return_value=fake_response(payload)):
        places = NominatimClient().search("zocalo")

    assert len(places) == 1
    assert places[0].lat == pytest.approx(19.4326)

    with mock.patch("routing.geocoding.requests.get", return_value=fake_response([], status_code=503)):
        with pytest.raises(GeocodingError):
            NominatimClient().search("zocalo")
