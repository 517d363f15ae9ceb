"""
Domain entities and value objects.

Patterns used
-------------
- **Value Objects** for everything the fare engine reads or produces
  (``PricingRule``, ``RideRequest``, ``FareBreakdown``): frozen, compared by
  value, safe to share between concurrent quotes.
- **State Pattern** on bookings: ``check_transition`` enforces valid
  lifecycle moves (pending -> accepted -> started -> completed | cancelled).
- ``BookingDraft`` is the explicit wizard context passed between booking
  steps instead of a process-wide store.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from .enums import BOOKING_TRANSITIONS, BookingStatus, ServiceType, VehicleType

ZERO = Decimal("0")
ONE = Decimal("1")


class InvalidStateTransition(Exception):
    """Raised when a booking status change violates the state machine."""


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce an upstream number to ``Decimal``; ``None`` becomes *default*.

    Floats go through ``str`` so 1.5 stays 1.5 rather than its binary
    approximation.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def check_transition(current: BookingStatus, new: BookingStatus) -> None:
    """Raise unless *current* -> *new* is a legal booking transition."""
    allowed = BOOKING_TRANSITIONS.get(BookingStatus(current), set())
    if BookingStatus(new) not in allowed:
        raise InvalidStateTransition(
            f"Cannot transition from {BookingStatus(current).value} "
            f"to {BookingStatus(new).value}"
        )


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class RouteMetrics:
    distance_km: Decimal
    duration_minutes: Decimal

    @classmethod
    def from_provider_units(
        cls, distance_meters: Any, duration_seconds: Any
    ) -> "RouteMetrics":
        """Convert the routing contract's meters/seconds to km/minutes."""
        return cls(
            distance_km=to_decimal(distance_meters) / 1000,
            duration_minutes=to_decimal(duration_seconds) / 60,
        )


@dataclass(frozen=True)
class PricingRule:
    base_fare: Decimal = ZERO
    per_km_rate: Decimal = ZERO
    per_minute_rate: Decimal = ZERO
    minimum_fare: Decimal = ZERO
    surge_multiplier: Decimal = ONE
    service_type: Optional[ServiceType] = None
    vehicle_type: Optional[VehicleType] = None
    effective_from: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        # Absent upstream values fall back to their defaults instead of failing.
        for name in ("base_fare", "per_km_rate", "per_minute_rate", "minimum_fare"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(
            self, "surge_multiplier", to_decimal(self.surge_multiplier, ONE)
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PricingRule":
        """Build a rule from a loosely-typed row or JSON payload."""
        service = record.get("service_type")
        vehicle = record.get("vehicle_type")
        return cls(
            base_fare=record.get("base_fare"),
            per_km_rate=record.get("per_km_rate"),
            per_minute_rate=record.get("per_minute_rate"),
            minimum_fare=record.get("minimum_fare"),
            surge_multiplier=record.get("surge_multiplier"),
            service_type=ServiceType(service) if service else None,
            vehicle_type=VehicleType(vehicle) if vehicle else None,
            effective_from=record.get("effective_from"),
            id=record.get("id"),
        )


@dataclass(frozen=True)
class RideRequest:
    service_type: ServiceType
    vehicle_type: VehicleType
    distance_km: Decimal = ZERO
    duration_minutes: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "service_type", ServiceType(self.service_type))
        object.__setattr__(self, "vehicle_type", VehicleType(self.vehicle_type))
        distance = to_decimal(self.distance_km)
        duration = to_decimal(self.duration_minutes)
        if distance < 0 or duration < 0:
            raise ValueError("distance_km and duration_minutes must be non-negative")
        object.__setattr__(self, "distance_km", distance)
        object.__setattr__(self, "duration_minutes", duration)

    def round_trip(self) -> "RideRequest":
        """Return the same request with distance and duration doubled."""
        return replace(
            self,
            distance_km=self.distance_km * 2,
            duration_minutes=self.duration_minutes * 2,
        )


@dataclass(frozen=True)
class RentalPackage:
    name: str
    duration_hours: int
    included_kilometers: int
    base_price: Decimal
    extra_hour_rate: Decimal = ZERO
    extra_km_rate: Decimal = ZERO
    vehicle_type: Optional[VehicleType] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("base_price", "extra_hour_rate", "extra_km_rate"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))


@dataclass(frozen=True)
class PackageSummary:
    name: str
    duration_hours: int
    included_kilometers: int
    base_price: Decimal


@dataclass(frozen=True)
class FareBreakdown:
    base_fare: Decimal
    distance_fare: Decimal
    time_fare: Decimal
    total_fare: int
    estimated_time: str
    distance: str
    package: Optional[PackageSummary] = None


# ── Booking draft (wizard context) ────────────────────────────────────


@dataclass(frozen=True)
class SelectedFare:
    vehicle_type: VehicleType
    price: int


# Draft fields that always hold a value; partial updates may not null them.
NON_NULLABLE_DRAFT_FIELDS = (
    "service_type", "pickup_location", "dropoff_location", "passengers",
    "is_round_trip", "distance_km", "duration_minutes", "special_instructions",
)

# Inputs whose change invalidates a previously quoted fare.
_PRICING_INPUTS = frozenset(
    {"service_type", "vehicle_type", "distance_km", "duration_minutes",
     "is_round_trip", "package_id"}
)


@dataclass
class BookingDraft:
    service_type: ServiceType = ServiceType.CITY_RIDE
    pickup_location: str = ""
    dropoff_location: str = ""
    pickup: Optional[Location] = None
    dropoff: Optional[Location] = None
    scheduled_at: Optional[datetime] = None
    return_at: Optional[datetime] = None
    passengers: int = 1
    is_round_trip: bool = False
    package_id: Optional[int] = None
    vehicle_type: Optional[VehicleType] = None
    distance_km: Decimal = ZERO
    duration_minutes: Decimal = ZERO
    selected_fare: Optional[SelectedFare] = None
    special_instructions: str = ""
    current_step: int = 1

    def update(self, **changes: Any) -> None:
        """Merge *changes* into the draft (partial update)."""
        names = {f.name for f in fields(self)}
        unknown = set(changes) - names
        if unknown:
            raise ValueError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        nulled = [
            name for name in NON_NULLABLE_DRAFT_FIELDS
            if name in changes and changes[name] is None
        ]
        if nulled:
            raise ValueError(f"Draft fields cannot be null: {', '.join(nulled)}")

        invalidates = False
        for name, value in changes.items():
            value = _coerce(name, value)
            if name in _PRICING_INPUTS and getattr(self, name) != value:
                invalidates = True
            setattr(self, name, value)
        if invalidates and "selected_fare" not in changes:
            self.selected_fare = None

    def next_step(self) -> int:
        self.current_step += 1
        return self.current_step

    def prev_step(self) -> int:
        self.current_step = max(1, self.current_step - 1)
        return self.current_step

    def reset(self) -> None:
        """Return every field to its initial value (step 1)."""
        self.__dict__.update(type(self)().__dict__)

    def ride_request(self) -> RideRequest:
        """Build the fare-engine input; requires a chosen vehicle type."""
        if self.vehicle_type is None:
            raise ValueError("vehicle_type must be selected before quoting")
        request = RideRequest(
            service_type=self.service_type,
            vehicle_type=self.vehicle_type,
            distance_km=self.distance_km,
            duration_minutes=self.duration_minutes,
        )
        return request.round_trip() if self.is_round_trip else request

    # serialization

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (ServiceType, VehicleType)):
                value = value.value
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Location):
                value = {"latitude": value.latitude, "longitude": value.longitude}
            elif isinstance(value, SelectedFare):
                value = {"vehicle_type": value.vehicle_type.value, "price": value.price}
            out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BookingDraft":
        draft = cls()
        names = {f.name for f in fields(cls)}
        for name, value in data.items():
            if name in names:
                setattr(draft, name, _coerce(name, value))
        return draft


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return None if name not in ("distance_km", "duration_minutes") else ZERO
    if name == "service_type":
        return ServiceType(value)
    if name == "vehicle_type":
        return VehicleType(value)
    if name in ("distance_km", "duration_minutes"):
        return to_decimal(value)
    if name in ("pickup", "dropoff") and not isinstance(value, Location):
        if isinstance(value, Mapping):
            return Location(float(value["latitude"]), float(value["longitude"]))
        lat, lng = value
        return Location(float(lat), float(lng))
    if name in ("scheduled_at", "return_at") and isinstance(value, str):
        return datetime.fromisoformat(value)
    if name == "selected_fare" and isinstance(value, Mapping):
        return SelectedFare(VehicleType(value["vehicle_type"]), int(value["price"]))
    return value
