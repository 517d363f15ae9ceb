"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Pricing lookups return frozen domain values
(``PricingRule`` / ``RentalPackage``) so the fare engine never touches ORM
rows.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, PricingRuleModel, RentalPackageModel
from fareservice.domain.entities import PricingRule, RentalPackage
from fareservice.domain.enums import BookingStatus, ServiceType, VehicleType
from fareservice.domain.exceptions import PackageNotFoundError, RuleNotFoundError


def rule_from_model(row: PricingRuleModel) -> PricingRule:
    return PricingRule(
        id=row.id,
        service_type=row.service_type,
        vehicle_type=row.vehicle_type,
        base_fare=row.base_fare,
        per_km_rate=row.per_km_rate,
        per_minute_rate=row.per_minute_rate,
        minimum_fare=row.minimum_fare,
        surge_multiplier=row.surge_multiplier,
        effective_from=row.effective_from,
    )


def package_from_model(row: RentalPackageModel) -> RentalPackage:
    return RentalPackage(
        id=row.id,
        name=row.name,
        vehicle_type=row.vehicle_type,
        duration_hours=row.duration_hours,
        included_kilometers=row.included_kilometers,
        base_price=row.base_price,
        extra_hour_rate=row.extra_hour_rate,
        extra_km_rate=row.extra_km_rate,
    )


class PricingRuleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_rule(
        self,
        service_type: ServiceType,
        vehicle_type: VehicleType,
        at: Optional[datetime] = None,
    ) -> PricingRule:
        """Latest ``effective_from`` wins when several rules are active."""
        query = (
            select(PricingRuleModel)
            .where(
                PricingRuleModel.service_type == ServiceType(service_type),
                PricingRuleModel.vehicle_type == VehicleType(vehicle_type),
                PricingRuleModel.is_active.is_(True),
            )
            .order_by(
                PricingRuleModel.effective_from.desc(), PricingRuleModel.id.desc()
            )
            .limit(1)
        )
        if at is not None:
            query = query.where(PricingRuleModel.effective_from <= at)
        result = await self.session.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            raise RuleNotFoundError(service_type, vehicle_type)
        return rule_from_model(row)

    async def list_rules(
        self,
        service_type: Optional[ServiceType] = None,
        vehicle_type: Optional[VehicleType] = None,
        active_only: bool = False,
    ) -> list[PricingRuleModel]:
        query = select(PricingRuleModel).order_by(
            PricingRuleModel.service_type,
            PricingRuleModel.vehicle_type,
            PricingRuleModel.effective_from.desc(),
        )
        if service_type:
            query = query.where(PricingRuleModel.service_type == service_type)
        if vehicle_type:
            query = query.where(PricingRuleModel.vehicle_type == vehicle_type)
        if active_only:
            query = query.where(PricingRuleModel.is_active.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, rule: PricingRuleModel) -> PricingRuleModel:
        self.session.add(rule)
        await self.session.flush()
        await self.session.refresh(rule)
        return rule

    async def deactivate(self, rule_id: int) -> Optional[PricingRuleModel]:
        rule = await self.session.get(PricingRuleModel, rule_id)
        if rule is not None:
            rule.is_active = False
            await self.session.flush()
        return rule


class RentalPackageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_package(self, package_id: int) -> RentalPackage:
        row = await self.session.get(RentalPackageModel, package_id)
        if row is None or not row.is_active:
            raise PackageNotFoundError(f"Rental package {package_id} not found")
        return package_from_model(row)

    async def list_packages(
        self, vehicle_type: Optional[VehicleType] = None
    ) -> list[RentalPackageModel]:
        query = (
            select(RentalPackageModel)
            .where(RentalPackageModel.is_active.is_(True))
            .order_by(RentalPackageModel.duration_hours)
        )
        if vehicle_type:
            query = query.where(RentalPackageModel.vehicle_type == vehicle_type)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class SqlPricingCatalog:
    """``PricingCatalog`` over one session.

    An ``AsyncSession`` must not run two statements at once, so concurrent
    quotes (one per vehicle option) queue on a lock.
    """

    def __init__(self, session: AsyncSession):
        self.rules = PricingRuleRepository(session)
        self.packages = RentalPackageRepository(session)
        self._lock = asyncio.Lock()

    async def get_active_rule(
        self, service_type: ServiceType, vehicle_type: VehicleType
    ) -> PricingRule:
        async with self._lock:
            return await self.rules.get_active_rule(service_type, vehicle_type)

    async def get_package(self, package_id: int) -> RentalPackage:
        async with self._lock:
            return await self.packages.get_package(package_id)


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_booking(
        self,
        *,
        pickup_lat: Optional[float] = None,
        pickup_lng: Optional[float] = None,
        dropoff_lat: Optional[float] = None,
        dropoff_lng: Optional[float] = None,
        **values,
    ) -> BookingModel:
        """Create a booking with PostGIS points when coordinates are known."""
        from geoalchemy2.functions import ST_MakePoint

        booking = BookingModel(
            pickup_lat=pickup_lat,
            pickup_lng=pickup_lng,
            dropoff_lat=dropoff_lat,
            dropoff_lng=dropoff_lng,
            **values,
        )
        if pickup_lat is not None and pickup_lng is not None:
            booking.pickup_point = ST_MakePoint(pickup_lng, pickup_lat)
        if dropoff_lat is not None and dropoff_lng is not None:
            booking.dropoff_point = ST_MakePoint(dropoff_lng, dropoff_lat)
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_by_idempotency_key(self, key: str) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel).where(BookingModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self, user_id: str, status: Optional[BookingStatus] = None
    ) -> list[BookingModel]:
        query = (
            select(BookingModel)
            .where(BookingModel.user_id == user_id)
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
        )
        if status:
            query = query.where(BookingModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())
