"""
Fare endpoints
==============

POST /api/v1/fares/quote    -- price one (service type, vehicle type)
POST /api/v1/fares/options  -- price every vehicle option independently
POST /api/v1/fares/route    -- resolve distance / duration between two points

Lookup failures are mapped to HTTP errors by the handlers registered in
``fareservice.api.app``; no endpoint ever answers with a fallback price.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from fareservice.api.dependencies import get_quote_service
from fareservice.api.middleware import limiter
from fareservice.api.schemas import (
    ErrorResponse,
    FareResponse,
    OptionsRequest,
    QuoteRequest,
    RouteRequest,
    RouteResponse,
    VehicleOptionResponse,
)
from fareservice.config import settings
from fareservice.domain.entities import Location
from fareservice.domain.enums import VehicleType
from fareservice.domain.pricing import round_half_up
from fareservice.domain.quoting import FareQuoteService

router = APIRouter(prefix="/fares", tags=["fares"])


@router.post(
    "/quote",
    response_model=FareResponse,
    summary="Quote a fare",
    responses={404: {"model": ErrorResponse, "description": "Pricing unavailable"}},
)
@limiter.limit(settings.rate_limit)
async def quote_fare(
    request: Request,
    body: QuoteRequest,
    service: FareQuoteService = Depends(get_quote_service),
):
    fare = await service.quote(
        body.service_type,
        body.vehicle_type,
        distance_km=body.distance_km,
        duration_minutes=body.duration_minutes,
        round_trip=body.is_round_trip,
        package_id=body.package_id,
    )
    return FareResponse.from_breakdown(fare)


@router.post(
    "/options",
    response_model=list[VehicleOptionResponse],
    summary="Quote every vehicle option",
    description=(
        "Each vehicle type is priced on its own; a vehicle without an "
        "active pricing rule comes back with available=false while the "
        "others are still priced."
    ),
)
@limiter.limit(settings.rate_limit)
async def quote_options(
    request: Request,
    body: OptionsRequest,
    service: FareQuoteService = Depends(get_quote_service),
):
    options = await service.quote_options(
        body.service_type,
        body.vehicle_types or list(VehicleType),
        distance_km=body.distance_km,
        duration_minutes=body.duration_minutes,
        round_trip=body.is_round_trip,
        package_id=body.package_id,
    )
    return [VehicleOptionResponse.from_option(o) for o in options]


@router.post(
    "/route",
    response_model=RouteResponse,
    summary="Resolve route distance and duration",
    responses={503: {"model": ErrorResponse, "description": "Route unavailable"}},
)
@limiter.limit(settings.rate_limit)
async def resolve_route(
    request: Request,
    body: RouteRequest,
    service: FareQuoteService = Depends(get_quote_service),
):
    metrics = await service.resolve_route(
        Location(body.origin.latitude, body.origin.longitude),
        Location(body.destination.latitude, body.destination.longitude),
    )
    return RouteResponse(
        distance_km=round_half_up(metrics.distance_km, "0.01"),
        duration_minutes=int(round_half_up(metrics.duration_minutes)),
    )
