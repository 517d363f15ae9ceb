"""
Fare Engine  (Strategy Pattern)
===============================

Formula
-------
Subtotal = Base_Fare + Distance_Fare + Time_Fare
Total    = round_half_up( max(Subtotal, Minimum_Fare) x Surge_Multiplier )

* **Metered** services (city, airport, outstation, sharing):
  Distance_Fare = km x per_km_rate, Time_Fare = minutes x per_minute_rate
* **Hourly rental** (``car_rental``): the rule's per-minute rate is an
  *hourly* rate, so Time_Fare = (minutes / 60) x per_minute_rate.  Distance
  is still charged per km on top, optionally net of a package's included
  kilometres.

The minimum fare floors the pre-surge subtotal; surge is applied exactly
once, after flooring, so it also scales floor-priced rides.

Everything here is pure and synchronous: no I/O, no shared state.  Every
amount is a ``Decimal``.

Complexity: O(1) per quote.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal

from .entities import (
    ZERO,
    FareBreakdown,
    PackageSummary,
    PricingRule,
    RentalPackage,
    RideRequest,
    to_decimal,
)
from .enums import ServiceType

CENT = Decimal("0.01")
MINUTES_PER_HOUR = Decimal("60")

UNKNOWN_DURATION_LABEL = "5-10 min"
UNKNOWN_DISTANCE_LABEL = "Calculating..."


def round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


# ── Strategy hierarchy ────────────────────────────────────────────────


class FareStrategy(ABC):
    @abstractmethod
    def components(
        self, request: RideRequest, rule: PricingRule, included_km: Decimal
    ) -> tuple[Decimal, Decimal]:
        """Return ``(distance_fare, time_fare)``."""


class MeteredPricing(FareStrategy):
    def components(self, request, rule, included_km):
        return (
            request.distance_km * rule.per_km_rate,
            request.duration_minutes * rule.per_minute_rate,
        )


class HourlyRentalPricing(FareStrategy):
    """Per-minute rate reinterpreted as an hourly rate."""

    def components(self, request, rule, included_km):
        billable_km = max(ZERO, request.distance_km - included_km)
        hours = request.duration_minutes / MINUTES_PER_HOUR
        return billable_km * rule.per_km_rate, hours * rule.per_minute_rate


_STRATEGIES: dict[ServiceType, FareStrategy] = {
    service: HourlyRentalPricing() if service.is_hourly else MeteredPricing()
    for service in ServiceType
}


def strategy_for(service_type: ServiceType) -> FareStrategy:
    return _STRATEGIES[ServiceType(service_type)]


# ── Engine ────────────────────────────────────────────────────────────


def compute_fare(
    request: RideRequest, rule: PricingRule, *, included_km=ZERO
) -> FareBreakdown:
    """Price *request* against its resolved *rule*.

    ``included_km`` is only honoured for hourly rentals and defaults to 0, so
    the full distance is charged unless a caller opts into the package
    allowance offset.
    """
    included = max(ZERO, to_decimal(included_km))
    distance_fare, time_fare = strategy_for(request.service_type).components(
        request, rule, included
    )

    subtotal = rule.base_fare + distance_fare + time_fare
    floored = max(subtotal, rule.minimum_fare)
    total = round_half_up(floored * rule.surge_multiplier)

    return FareBreakdown(
        base_fare=round_half_up(rule.base_fare, "0.01"),
        distance_fare=round_half_up(distance_fare, "0.01"),
        time_fare=round_half_up(time_fare, "0.01"),
        total_fare=int(total),
        estimated_time=format_duration(request.duration_minutes),
        distance=format_distance(request.distance_km),
    )


def compute_package_fare(
    package: RentalPackage, *, distance_km=ZERO, duration_minutes=ZERO
) -> FareBreakdown:
    """Flat package price plus pro-rata overage beyond its allowances."""
    distance = to_decimal(distance_km)
    duration = to_decimal(duration_minutes)
    if distance < 0 or duration < 0:
        raise ValueError("distance_km and duration_minutes must be non-negative")

    extra_km = max(ZERO, distance - package.included_kilometers)
    extra_hours = max(
        ZERO, duration / MINUTES_PER_HOUR - package.duration_hours
    )
    distance_fare = extra_km * package.extra_km_rate
    time_fare = extra_hours * package.extra_hour_rate
    total = round_half_up(package.base_price + distance_fare + time_fare)

    return FareBreakdown(
        base_fare=round_half_up(package.base_price, "0.01"),
        distance_fare=round_half_up(distance_fare, "0.01"),
        time_fare=round_half_up(time_fare, "0.01"),
        total_fare=int(total),
        estimated_time=f"{package.duration_hours}h package",
        distance=f"{package.included_kilometers}km included",
        package=PackageSummary(
            name=package.name,
            duration_hours=package.duration_hours,
            included_kilometers=package.included_kilometers,
            base_price=package.base_price,
        ),
    )


def advance_payment(total_fare: int, percent: int = 20) -> tuple[int, int]:
    """Split *total_fare* into ``(advance, remaining)``; advance rounds up."""
    if not 0 <= percent <= 100:
        raise ValueError("percent must be between 0 and 100")
    advance = math.ceil(Decimal(total_fare) * percent / 100)
    return advance, total_fare - advance


# ── Display labels ────────────────────────────────────────────────────


def format_duration(duration_minutes: Decimal) -> str:
    if duration_minutes > 0:
        return f"{round_half_up(duration_minutes)} min"
    return UNKNOWN_DURATION_LABEL


def format_distance(distance_km: Decimal) -> str:
    if distance_km > 0:
        return f"{round_half_up(distance_km, '0.1')} km"
    return UNKNOWN_DISTANCE_LABEL
