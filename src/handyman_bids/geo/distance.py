"""Great-circle distance between coordinates."""

import math
from typing import Callable, Iterable, TypeVar

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in kilometers between two (lat, lng) points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def within_radius(
    items: Iterable[T],
    origin: tuple[float, float],
    radius_km: float,
    coords: Callable[[T], tuple[float, float]],
) -> list[tuple[T, float]]:
    """Items within radius_km of origin as (item, distance_km), nearest first."""
    lat, lng = origin
    hits: list[tuple[T, float]] = []
    for item in items:
        item_lat, item_lng = coords(item)
        distance = haversine_km(lat, lng, item_lat, item_lng)
        if distance <= radius_km:
            hits.append((item, distance))
    hits.sort(key=lambda pair: pair[1])
    return hits
