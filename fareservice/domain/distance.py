"""
Distance estimation using the Haversine formula.

Assumption
----------
Great-circle distance underestimates road distance, so this is only the
offline fallback used when no routing service is configured (local runs,
tests).  The production path is the Google Directions client in
``fareservice.infrastructure.routing``; both honour the same contract and
return a ``RouteMetrics`` in km / minutes.

Complexity: O(1) per call.
"""

import math

from .entities import Location, RouteMetrics

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def estimate_route(
    origin: Location, destination: Location, average_speed_kmh: float = 30.0
) -> RouteMetrics:
    """Straight-line distance and a constant-speed travel time."""
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be positive")
    km = haversine_km(
        origin.latitude, origin.longitude,
        destination.latitude, destination.longitude,
    )
    # Through meters/seconds so both providers share one conversion.
    return RouteMetrics.from_provider_units(
        round(km * 1000), round(km / average_speed_kmh * 3600)
    )
