"""Domain enumerations and state-transition rules."""

import enum


class ServiceType(str, enum.Enum):
    CITY_RIDE = "city_ride"
    AIRPORT = "airport"
    OUTSTATION = "outstation"
    CAR_RENTAL = "car_rental"
    RIDE_SHARING = "ride_sharing"

    @property
    def is_hourly(self) -> bool:
        """Rentals bill time per hour; every other service is metered."""
        return self is ServiceType.CAR_RENTAL


class VehicleType(str, enum.Enum):
    SEDAN = "Sedan"
    SUV = "SUV"
    PREMIUM = "Premium"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.ACCEPTED, BookingStatus.CANCELLED},
    BookingStatus.ACCEPTED: {BookingStatus.STARTED, BookingStatus.CANCELLED},
    BookingStatus.STARTED: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}
