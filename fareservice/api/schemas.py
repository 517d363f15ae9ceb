"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from fareservice.config import settings
from fareservice.domain.entities import (
    NON_NULLABLE_DRAFT_FIELDS,
    BookingDraft,
    FareBreakdown,
)
from fareservice.domain.enums import (
    BookingStatus,
    PaymentStatus,
    ServiceType,
    VehicleType,
)
from fareservice.domain.quoting import VehicleFareOption


# ── Shared ────────────────────────────────────────────────────────────


class LocationSchema(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


# ── Requests ──────────────────────────────────────────────────────────


class QuoteRequest(BaseModel):
    service_type: ServiceType
    vehicle_type: VehicleType
    distance_km: Decimal = Field(Decimal("0"), ge=0)
    duration_minutes: Decimal = Field(Decimal("0"), ge=0)
    is_round_trip: bool = False
    package_id: Optional[int] = None


class OptionsRequest(BaseModel):
    service_type: ServiceType
    vehicle_types: Optional[list[VehicleType]] = Field(
        None, description="Defaults to every vehicle type."
    )
    distance_km: Decimal = Field(Decimal("0"), ge=0)
    duration_minutes: Decimal = Field(Decimal("0"), ge=0)
    is_round_trip: bool = False
    package_id: Optional[int] = None


class RouteRequest(BaseModel):
    origin: LocationSchema
    destination: LocationSchema


class PricingRuleCreate(BaseModel):
    service_type: ServiceType
    vehicle_type: VehicleType
    base_fare: Decimal = Field(Decimal("0"), ge=0)
    per_km_rate: Decimal = Field(Decimal("0"), ge=0)
    per_minute_rate: Decimal = Field(Decimal("0"), ge=0)
    minimum_fare: Decimal = Field(Decimal("0"), ge=0)
    surge_multiplier: Decimal = Field(Decimal("1"), ge=1)
    effective_from: Optional[datetime] = None


class DraftUpdate(BaseModel):
    service_type: Optional[ServiceType] = None
    pickup_location: Optional[str] = Field(None, max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)
    pickup: Optional[LocationSchema] = None
    dropoff: Optional[LocationSchema] = None
    scheduled_at: Optional[datetime] = None
    return_at: Optional[datetime] = None
    passengers: Optional[int] = Field(None, ge=1, le=8)
    is_round_trip: Optional[bool] = None
    package_id: Optional[int] = None
    vehicle_type: Optional[VehicleType] = None
    distance_km: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[Decimal] = Field(None, ge=0)
    special_instructions: Optional[str] = None

    @field_validator(*NON_NULLABLE_DRAFT_FIELDS)
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; null is not a valid value.
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class BookingCreate(BaseModel):
    draft_id: str
    user_id: str = Field(..., max_length=64)
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated UUID to prevent double-booking on retries.",
    )


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


# ── Responses ─────────────────────────────────────────────────────────


class PackageSummaryResponse(BaseModel):
    name: str
    duration_hours: int
    included_kilometers: int
    base_price: Decimal

    model_config = {"from_attributes": True}


class FareResponse(BaseModel):
    base_fare: Decimal
    distance_fare: Decimal
    time_fare: Decimal
    total_fare: int
    estimated_time: str
    distance: str
    currency_symbol: str = settings.currency_symbol
    package: Optional[PackageSummaryResponse] = None

    @classmethod
    def from_breakdown(cls, fare: FareBreakdown) -> "FareResponse":
        return cls(
            base_fare=fare.base_fare,
            distance_fare=fare.distance_fare,
            time_fare=fare.time_fare,
            total_fare=fare.total_fare,
            estimated_time=fare.estimated_time,
            distance=fare.distance,
            package=(
                PackageSummaryResponse.model_validate(fare.package)
                if fare.package
                else None
            ),
        )


class VehicleOptionResponse(BaseModel):
    vehicle_type: VehicleType
    available: bool
    fare: Optional[FareResponse] = None
    message: Optional[str] = None

    @classmethod
    def from_option(cls, option: VehicleFareOption) -> "VehicleOptionResponse":
        return cls(
            vehicle_type=option.vehicle_type,
            available=option.available,
            fare=FareResponse.from_breakdown(option.fare) if option.fare else None,
            message=option.message,
        )


class RouteResponse(BaseModel):
    distance_km: Decimal
    duration_minutes: int


class PricingRuleResponse(BaseModel):
    id: int
    service_type: ServiceType
    vehicle_type: VehicleType
    base_fare: Optional[Decimal] = None
    per_km_rate: Optional[Decimal] = None
    per_minute_rate: Optional[Decimal] = None
    minimum_fare: Optional[Decimal] = None
    surge_multiplier: Optional[Decimal] = None
    is_active: bool
    effective_from: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RentalPackageResponse(BaseModel):
    id: int
    name: str
    vehicle_type: Optional[VehicleType] = None
    duration_hours: int
    included_kilometers: int
    base_price: Decimal
    extra_hour_rate: Decimal
    extra_km_rate: Decimal

    model_config = {"from_attributes": True}


class SelectedFareResponse(BaseModel):
    vehicle_type: VehicleType
    price: int

    model_config = {"from_attributes": True}


class DraftResponse(BaseModel):
    id: str
    service_type: ServiceType
    pickup_location: str
    dropoff_location: str
    pickup: Optional[LocationSchema] = None
    dropoff: Optional[LocationSchema] = None
    scheduled_at: Optional[datetime] = None
    return_at: Optional[datetime] = None
    passengers: int
    is_round_trip: bool
    package_id: Optional[int] = None
    vehicle_type: Optional[VehicleType] = None
    distance_km: Decimal
    duration_minutes: Decimal
    selected_fare: Optional[SelectedFareResponse] = None
    special_instructions: str
    current_step: int

    @classmethod
    def from_draft(cls, draft_id: str, draft: BookingDraft) -> "DraftResponse":
        return cls(id=draft_id, **draft.to_dict())


class DraftQuoteResponse(BaseModel):
    draft: DraftResponse
    options: list[VehicleOptionResponse]


class BookingResponse(BaseModel):
    id: int
    user_id: str
    service_type: ServiceType
    vehicle_type: VehicleType
    package_id: Optional[int] = None
    pickup_location: str
    dropoff_location: Optional[str] = None
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dropoff_lat: Optional[float] = None
    dropoff_lng: Optional[float] = None
    scheduled_at: Optional[datetime] = None
    return_at: Optional[datetime] = None
    is_round_trip: bool
    passengers: int
    distance_km: Decimal
    duration_minutes: Decimal
    total_fare: int
    advance_amount: int
    remaining_amount: int
    status: BookingStatus
    payment_status: PaymentStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
    route_provider: str
    advance_payment_percent: int
    rental_included_km_offset: bool


class ErrorResponse(BaseModel):
    detail: str
