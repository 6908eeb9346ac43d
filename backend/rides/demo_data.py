"""
Realistic demo service requests for local development and radar testing.

Requests are scattered around a center point with most of them inside the
radar radius, so an available demo driver always has something to look at.
"""

import numpy as np
import pandas as pd

from dispatch.pricing import MANDADITO_DRIVER_EARNINGS, MOTO_RIDE_FIXED_PRICE, client_total

SERVICE_TYPES = ["taxi", "moto_ride", "mandadito"]
SERVICE_TYPE_WEIGHTS = [0.5, 0.2, 0.3]

# ~0.04 degrees is roughly 4.5 km at Mexico City's latitude
ORIGIN_SPREAD_DEG = 0.04
DESTINATION_SPREAD_DEG = 0.06

COLUMNS = [
    "service_type", "mandadito_type",
    "origin_lat", "origin_lng", "destination_lat", "destination_lng",
    "offered_price", "notes",
]


def generate_demo_requests(num_requests=20, center=(19.432608, -99.133209), seed=None):
    """
    Returns a DataFrame with one row per request (see COLUMNS).
    """
    rng = np.random.default_rng(seed)
    center_lat, center_lng = center

    service_types = rng.choice(SERVICE_TYPES, size=num_requests, p=SERVICE_TYPE_WEIGHTS)
    origin_lat = center_lat + rng.uniform(-ORIGIN_SPREAD_DEG, ORIGIN_SPREAD_DEG, num_requests)
    origin_lng = center_lng + rng.uniform(-ORIGIN_SPREAD_DEG, ORIGIN_SPREAD_DEG, num_requests)
    destination_lat = origin_lat + rng.uniform(-DESTINATION_SPREAD_DEG, DESTINATION_SPREAD_DEG, num_requests)
    destination_lng = origin_lng + rng.uniform(-DESTINATION_SPREAD_DEG, DESTINATION_SPREAD_DEG, num_requests)

    df = pd.DataFrame({
        "service_type": service_types,
        "origin_lat": np.round(origin_lat, 6),
        "origin_lng": np.round(origin_lng, 6),
        "destination_lat": np.round(destination_lat, 6),
        "destination_lng": np.round(destination_lng, 6),
    })

    taxi_prices = np.round(rng.uniform(40, 120, num_requests), 0)
    mandadito_price = float(client_total(MANDADITO_DRIVER_EARNINGS, "mandadito"))
    df["offered_price"] = np.select(
        [df["service_type"] == "taxi", df["service_type"] == "moto_ride"],
        [taxi_prices, float(MOTO_RIDE_FIXED_PRICE)],
        default=mandadito_price,
    )
    df["mandadito_type"] = np.where(
        df["service_type"] == "mandadito",
        rng.choice(["shopping", "delivery"], size=num_requests),
        None,
    )
    df["notes"] = "Solicitud de demostración"

    return df[COLUMNS]
