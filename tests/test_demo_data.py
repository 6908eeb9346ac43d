from rides.demo_data import COLUMNS, generate_demo_requests
from routing.geo import haversine_km


def test_shape_and_columns():
    df = generate_demo_requests(num_requests=30, seed=7)

    assert list(df.columns) == COLUMNS
    assert len(df) == 30
    assert set(df["service_type"]) <= {"taxi", "moto_ride", "mandadito"}


def test_seed_is_reproducible():
    first = generate_demo_requests(num_requests=10, seed=42)
    second = generate_demo_requests(num_requests=10, seed=42)

    assert first.equals(second)


def test_prices_follow_service_type():
    df = generate_demo_requests(num_requests=60, seed=3)

    moto = df[df["service_type"] == "moto_ride"]
    mandadito = df[df["service_type"] == "mandadito"]
    taxi = df[df["service_type"] == "taxi"]

    assert (moto["offered_price"] == 25).all()
    assert (mandadito["offered_price"] == 28).all()
    assert taxi["offered_price"].between(40, 120).all()
    assert mandadito["mandadito_type"].isin(["shopping", "delivery"]).all()
    assert taxi["mandadito_type"].isna().all()


def test_origins_stay_near_center():
    center = (19.432608, -99.133209)
    df = generate_demo_requests(num_requests=40, center=center, seed=11)

    for row in df.itertuples():
        assert haversine_km(center[0], center[1], row.origin_lat, row.origin_lng) < 7
