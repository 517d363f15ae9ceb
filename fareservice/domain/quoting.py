"""
Quote orchestration
===================

Every fallible step (rule lookup, package lookup, route lookup) runs
*before* the fare engine is invoked.  A failure propagates to the caller
and no price is produced; nothing here ever substitutes a fallback rate.

``quote_options`` prices several vehicle types concurrently.  Each option
is independent, so one vehicle's missing rule only marks that option as
unavailable.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from .entities import (
    ZERO,
    FareBreakdown,
    Location,
    PricingRule,
    RentalPackage,
    RideRequest,
    RouteMetrics,
    to_decimal,
)
from .enums import ServiceType, VehicleType
from .exceptions import PackageNotFoundError, RuleNotFoundError
from .pricing import compute_fare, compute_package_fare

logger = logging.getLogger(__name__)

PRICING_UNAVAILABLE = "Pricing unavailable"


# ── Collaborator contracts ────────────────────────────────────────────


class PricingCatalog(Protocol):
    async def get_active_rule(
        self, service_type: ServiceType, vehicle_type: VehicleType
    ) -> PricingRule:
        """Return the selected rule or raise ``RuleNotFoundError``."""

    async def get_package(self, package_id: int) -> RentalPackage:
        """Return an active package or raise ``PackageNotFoundError``."""


class RouteProvider(Protocol):
    async def route(self, origin: Location, destination: Location) -> RouteMetrics:
        """Return distance/duration or raise ``RouteUnavailableError``."""


# ── Results ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VehicleFareOption:
    vehicle_type: VehicleType
    fare: Optional[FareBreakdown] = None
    message: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.fare is not None


# ── Service ───────────────────────────────────────────────────────────


class FareQuoteService:
    def __init__(
        self,
        catalog: PricingCatalog,
        routes: Optional[RouteProvider] = None,
        *,
        rental_included_km_offset: bool = False,
    ):
        self.catalog = catalog
        self.routes = routes
        self.rental_included_km_offset = rental_included_km_offset

    async def resolve_route(
        self, origin: Location, destination: Location
    ) -> RouteMetrics:
        if self.routes is None:
            raise RuntimeError("No route provider configured")
        return await self.routes.route(origin, destination)

    async def quote(
        self,
        service_type: ServiceType,
        vehicle_type: VehicleType,
        *,
        distance_km: Decimal = ZERO,
        duration_minutes: Decimal = ZERO,
        round_trip: bool = False,
        package_id: Optional[int] = None,
    ) -> FareBreakdown:
        request = RideRequest(
            service_type=service_type,
            vehicle_type=vehicle_type,
            distance_km=to_decimal(distance_km),
            duration_minutes=to_decimal(duration_minutes),
        )
        if round_trip:
            request = request.round_trip()

        package: Optional[RentalPackage] = None
        if request.service_type is ServiceType.CAR_RENTAL and package_id is not None:
            package = await self.catalog.get_package(package_id)
            if (
                package.vehicle_type is not None
                and package.vehicle_type is not request.vehicle_type
            ):
                raise PackageNotFoundError(
                    f"Package {package_id} is not offered for {request.vehicle_type.value}"
                )
            if not self.rental_included_km_offset:
                return compute_package_fare(
                    package,
                    distance_km=request.distance_km,
                    duration_minutes=request.duration_minutes,
                )

        rule = await self.catalog.get_active_rule(
            request.service_type, request.vehicle_type
        )
        included_km = package.included_kilometers if package else ZERO
        return compute_fare(request, rule, included_km=included_km)

    async def quote_options(
        self,
        service_type: ServiceType,
        vehicle_types: Iterable[VehicleType] = tuple(VehicleType),
        **kwargs,
    ) -> list[VehicleFareOption]:
        vehicle_types = list(vehicle_types)
        results = await asyncio.gather(
            *(self.quote(service_type, v, **kwargs) for v in vehicle_types),
            return_exceptions=True,
        )

        options: list[VehicleFareOption] = []
        for vehicle, result in zip(vehicle_types, results):
            if isinstance(result, (RuleNotFoundError, PackageNotFoundError)):
                logger.warning("Quote unavailable for %s: %s", vehicle.value, result)
                options.append(VehicleFareOption(vehicle, message=PRICING_UNAVAILABLE))
            elif isinstance(result, BaseException):
                raise result
            else:
                options.append(VehicleFareOption(vehicle, fare=result))
        return options
