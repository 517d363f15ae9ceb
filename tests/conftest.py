"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The pricing tables come straight from the
production metadata; ``bookings`` carries PostGIS Geometry columns, so it is
mirrored by a test model with plain String columns instead.  Redis is
replaced by a dict-backed double.
"""

from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    Integer,
    Numeric,
    String,
    Text,
    func,
    select,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from fareservice.domain.enums import (
    BookingStatus,
    PaymentStatus,
    ServiceType,
    VehicleType,
)
from fareservice.infrastructure.database import Base
from fareservice.infrastructure.models import PricingRuleModel, RentalPackageModel


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DB_URL, echo=False)
TestSessionFactory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)

PRICING_TABLES = [PricingRuleModel.__table__, RentalPackageModel.__table__]


class TestBase(DeclarativeBase):
    pass


def _values(enum_cls):
    return Enum(enum_cls, values_callable=lambda members: [m.value for m in members])


# Mirrors ``BookingModel`` but without PostGIS Geometry columns.

class TestBookingModel(TestBase):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    service_type = Column(_values(ServiceType), nullable=False)
    vehicle_type = Column(_values(VehicleType), nullable=False)
    package_id = Column(Integer, nullable=True)
    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=True)
    pickup_point = Column(String, nullable=True)  # stub for Geometry
    dropoff_point = Column(String, nullable=True)  # stub for Geometry
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    dropoff_lat = Column(Float, nullable=True)
    dropoff_lng = Column(Float, nullable=True)
    scheduled_at = Column(DateTime, nullable=True)
    return_at = Column(DateTime, nullable=True)
    is_round_trip = Column(Boolean, default=False, nullable=False)
    passengers = Column(Integer, default=1, nullable=False)
    special_instructions = Column(Text, nullable=True)
    distance_km = Column(Numeric(10, 3), default=0, nullable=False)
    duration_minutes = Column(Numeric(10, 2), default=0, nullable=False)
    total_fare = Column(Integer, nullable=False)
    advance_amount = Column(Integer, nullable=False)
    remaining_amount = Column(Integer, nullable=False)
    status = Column(_values(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    payment_status = Column(
        _values(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    idempotency_key = Column(String(64), unique=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())


class TestBookingRepository:
    """Mirrors ``BookingRepository`` but uses the SQLite-friendly model."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_booking(self, *, pickup_lat=None, pickup_lng=None,
                             dropoff_lat=None, dropoff_lng=None, **values):
        booking = TestBookingModel(
            pickup_lat=pickup_lat, pickup_lng=pickup_lng,
            dropoff_lat=dropoff_lat, dropoff_lng=dropoff_lng,
            **values,
        )
        if pickup_lat is not None:
            booking.pickup_point = f"POINT({pickup_lng} {pickup_lat})"
        if dropoff_lat is not None:
            booking.dropoff_point = f"POINT({dropoff_lng} {dropoff_lat})"
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[TestBookingModel]:
        return await self.session.get(TestBookingModel, booking_id)

    async def get_by_idempotency_key(self, key: str):
        result = await self.session.execute(
            select(TestBookingModel).where(TestBookingModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str, status=None):
        query = (
            select(TestBookingModel)
            .where(TestBookingModel.user_id == user_id)
            .order_by(TestBookingModel.created_at.desc(), TestBookingModel.id.desc())
        )
        if status:
            query = query.where(TestBookingModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class InMemoryRedis:
    """The slice of ``redis.asyncio.Redis`` used by drafts and the route cache."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiry: dict[str, Optional[int]] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed


# Scenario rate card: city Sedan/SUV, a car_rental SUV hourly card, no Premium.
RULES = [
    dict(service_type=ServiceType.CITY_RIDE, vehicle_type=VehicleType.SEDAN,
         base_fare=Decimal("30"), per_km_rate=Decimal("12"),
         per_minute_rate=Decimal("1.5"), minimum_fare=Decimal("60"),
         surge_multiplier=Decimal("1"), effective_from=datetime(2024, 1, 1)),
    dict(service_type=ServiceType.CITY_RIDE, vehicle_type=VehicleType.SUV,
         base_fare=Decimal("70"), per_km_rate=Decimal("15"),
         per_minute_rate=Decimal("2.5"), minimum_fare=Decimal("100"),
         surge_multiplier=Decimal("1"), effective_from=datetime(2024, 1, 1)),
    dict(service_type=ServiceType.CAR_RENTAL, vehicle_type=VehicleType.SUV,
         base_fare=Decimal("200"), per_km_rate=Decimal("8"),
         per_minute_rate=Decimal("150"), minimum_fare=Decimal("200"),
         surge_multiplier=Decimal("1"), effective_from=datetime(2024, 1, 1)),
]

PACKAGES = [
    dict(name="4 Hours / 40 km", duration_hours=4, included_kilometers=40,
         base_price=Decimal("999"), extra_hour_rate=Decimal("200"),
         extra_km_rate=Decimal("12")),
    dict(name="8 Hours / 80 km", duration_hours=8, included_kilometers=80,
         base_price=Decimal("1799"), extra_hour_rate=Decimal("180"),
         extra_km_rate=Decimal("12"), vehicle_type=VehicleType.PREMIUM),
]


# ── Fixtures ──────────────────────────────────────────────────────────


async def _create_tables():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=PRICING_TABLES)
        await conn.run_sync(TestBase.metadata.create_all)


async def _drop_tables():
    async with test_engine.begin() as conn:
        await conn.run_sync(TestBase.metadata.drop_all)
        await conn.run_sync(Base.metadata.drop_all, tables=PRICING_TABLES)
    # Fresh connection for the next test's event loop.
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield a session, then drop everything."""
    await _create_tables()

    async with TestSessionFactory() as session:
        yield session

    await _drop_tables()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest_asyncio.fixture
async def client(fake_redis):
    """AsyncClient backed by SQLite, the in-memory Redis and a seeded rate card."""
    await _create_tables()

    async with TestSessionFactory() as session:
        session.add_all(PricingRuleModel(**r) for r in RULES)
        session.add_all(RentalPackageModel(**p) for p in PACKAGES)
        await session.commit()

    from fareservice.api.app import create_app
    from fareservice.api.dependencies import get_db, get_redis_client
    from fareservice.api.middleware import limiter
    from fareservice.config import settings

    async def _test_db():
        async with TestSessionFactory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return fake_redis

    limiter.reset()
    with (
        patch(
            "fareservice.api.routes.bookings.BookingRepository",
            TestBookingRepository,
        ),
        patch.object(settings, "route_provider", "haversine"),
    ):
        app = create_app()
        app.dependency_overrides[get_db] = _test_db
        app.dependency_overrides[get_redis_client] = _test_redis

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    await _drop_tables()
