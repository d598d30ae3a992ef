"""Delivery radius check"""

import math
from typing import Optional

from bites_api.orders.errors import ValidationError

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def ensure_within_radius(
    store_latitude: Optional[float],
    store_longitude: Optional[float],
    latitude: Optional[float],
    longitude: Optional[float],
    max_radius_km: float,
) -> None:
    """Reject delivery coordinates outside the store's radius.

    Skipped when either the store location or the delivery coordinates are
    unknown.
    """
    if None in (store_latitude, store_longitude, latitude, longitude):
        return

    distance = haversine_km(store_latitude, store_longitude, latitude, longitude)
    if distance > max_radius_km:
        raise ValidationError(
            f"Sorry, we only deliver within {max_radius_km:g}km of our store. "
            f"Your location is {distance:.2f}km away. Please choose collection instead."
        )
