"""
SQLAlchemy ORM models  (maps to PostgreSQL + PostGIS).

Tables
------
* ``pricing_rules``    -- rate cards per (service type, vehicle type)
* ``rental_packages``  -- fixed-price hourly rental bundles
* ``bookings``         -- confirmed bookings (trip history)

Indexes
-------
* **B-Tree** on ``(service_type, vehicle_type, is_active, effective_from)``
  so the active-rule lookup is a single index range scan.
* **GIST** on booking pickup / drop-off points.
* **B-Tree** on ``bookings.user_id``, ``status`` and ``idempotency_key``
  for trip history and retry de-duplication.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from geoalchemy2 import Geometry

from .database import Base
from fareservice.domain.enums import (
    BookingStatus,
    PaymentStatus,
    ServiceType,
    VehicleType,
)


def _enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Persist the wire values ("car_rental", "Sedan"), not member names.
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


MONEY = Numeric(10, 2)


class PricingRuleModel(Base):
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_type = Column(_enum(ServiceType, "servicetype"), nullable=False)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), nullable=False)
    base_fare = Column(MONEY, nullable=True)
    per_km_rate = Column(MONEY, nullable=True)
    per_minute_rate = Column(MONEY, nullable=True)
    minimum_fare = Column(MONEY, nullable=True)
    surge_multiplier = Column(Numeric(4, 2), nullable=True, default=1)
    is_active = Column(Boolean, default=True, nullable=False)
    effective_from = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index(
            "idx_pricing_rules_lookup",
            "service_type",
            "vehicle_type",
            "is_active",
            "effective_from",
        ),
    )


class RentalPackageModel(Base):
    __tablename__ = "rental_packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), nullable=True)
    duration_hours = Column(Integer, nullable=False)
    included_kilometers = Column(Integer, nullable=False)
    base_price = Column(MONEY, nullable=False)
    extra_hour_rate = Column(MONEY, nullable=False, default=0)
    extra_km_rate = Column(MONEY, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_rental_packages_active", "is_active"),)


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    service_type = Column(_enum(ServiceType, "servicetype"), nullable=False)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), nullable=False)
    package_id = Column(Integer, nullable=True)

    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=True)
    # Stored as PostGIS geometry for spatial indexing
    pickup_point = Column(
        Geometry("POINT", srid=4326, spatial_index=False), nullable=True
    )
    dropoff_point = Column(
        Geometry("POINT", srid=4326, spatial_index=False), nullable=True
    )
    # Also stored as plain floats for fast reads (avoids ST_X / ST_Y)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    dropoff_lat = Column(Float, nullable=True)
    dropoff_lng = Column(Float, nullable=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    return_at = Column(DateTime(timezone=True), nullable=True)
    is_round_trip = Column(Boolean, default=False, nullable=False)
    passengers = Column(Integer, default=1, nullable=False)
    special_instructions = Column(Text, nullable=True)

    distance_km = Column(Numeric(10, 3), nullable=False, default=0)
    duration_minutes = Column(Numeric(10, 2), nullable=False, default=0)
    total_fare = Column(Integer, nullable=False)
    advance_amount = Column(Integer, nullable=False)
    remaining_amount = Column(Integer, nullable=False)

    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    payment_status = Column(
        _enum(PaymentStatus, "paymentstatus"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    idempotency_key = Column(String(64), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_pickup", "pickup_point", postgresql_using="gist"),
        Index("idx_bookings_dropoff", "dropoff_point", postgresql_using="gist"),
        Index("idx_bookings_user", "user_id"),
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_idempotency", "idempotency_key"),
    )
