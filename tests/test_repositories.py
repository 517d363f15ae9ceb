"""Pricing catalog repositories against SQLite."""

from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from fareservice.domain.enums import ServiceType, VehicleType
from fareservice.domain.exceptions import PackageNotFoundError, RuleNotFoundError
from fareservice.infrastructure.models import PricingRuleModel, RentalPackageModel
from fareservice.infrastructure.repositories import (
    PricingRuleRepository,
    RentalPackageRepository,
    SqlPricingCatalog,
)


def _rule(base, effective_from, **overrides):
    values = dict(
        service_type=ServiceType.AIRPORT,
        vehicle_type=VehicleType.SEDAN,
        base_fare=Decimal(base),
        per_km_rate=Decimal("15"),
        per_minute_rate=Decimal("2"),
        minimum_fare=Decimal("200"),
        surge_multiplier=Decimal("1"),
        effective_from=effective_from,
    )
    values.update(overrides)
    return PricingRuleModel(**values)


@pytest.mark.asyncio
async def test_latest_effective_rule_wins(db_session):
    repo = PricingRuleRepository(db_session)
    await repo.create(_rule("100", datetime(2024, 1, 1)))
    await repo.create(_rule("120", datetime(2025, 6, 1)))
    await repo.create(_rule("90", datetime(2023, 1, 1)))

    rule = await repo.get_active_rule(ServiceType.AIRPORT, VehicleType.SEDAN)
    assert rule.base_fare == Decimal("120")
    assert rule.service_type is ServiceType.AIRPORT


@pytest.mark.asyncio
async def test_inactive_rules_are_skipped(db_session):
    repo = PricingRuleRepository(db_session)
    older = await repo.create(_rule("100", datetime(2024, 1, 1)))
    newer = await repo.create(_rule("120", datetime(2025, 6, 1)))
    await repo.deactivate(newer.id)

    rule = await repo.get_active_rule(ServiceType.AIRPORT, VehicleType.SEDAN)
    assert rule.id == older.id


@pytest.mark.asyncio
async def test_missing_rule_raises(db_session):
    repo = PricingRuleRepository(db_session)
    await repo.create(_rule("100", datetime(2024, 1, 1)))
    with pytest.raises(RuleNotFoundError):
        await repo.get_active_rule(ServiceType.AIRPORT, VehicleType.PREMIUM)


@pytest.mark.asyncio
async def test_null_rates_load_as_defaults(db_session):
    repo = PricingRuleRepository(db_session)
    await repo.create(
        _rule("50", datetime(2024, 1, 1), per_minute_rate=None, surge_multiplier=None)
    )
    rule = await repo.get_active_rule(ServiceType.AIRPORT, VehicleType.SEDAN)
    assert rule.per_minute_rate == Decimal("0")
    assert rule.surge_multiplier == Decimal("1")


@pytest.mark.asyncio
async def test_list_rules_filters(db_session):
    repo = PricingRuleRepository(db_session)
    await repo.create(_rule("100", datetime(2024, 1, 1)))
    await repo.create(_rule("70", datetime(2024, 1, 1), vehicle_type=VehicleType.SUV))
    gone = await repo.create(_rule("80", datetime(2024, 1, 1), vehicle_type=VehicleType.SUV))
    await repo.deactivate(gone.id)

    assert len(await repo.list_rules()) == 3
    assert len(await repo.list_rules(vehicle_type=VehicleType.SUV)) == 2
    assert len(await repo.list_rules(vehicle_type=VehicleType.SUV, active_only=True)) == 1


@pytest.mark.asyncio
async def test_packages(db_session):
    old = RentalPackageModel(name="old", duration_hours=2, included_kilometers=20,
                             base_price=Decimal("499"), is_active=False)
    db_session.add_all([
        RentalPackageModel(name="8h", duration_hours=8, included_kilometers=80,
                           base_price=Decimal("1799"), extra_hour_rate=Decimal("180"),
                           extra_km_rate=Decimal("12")),
        RentalPackageModel(name="4h", duration_hours=4, included_kilometers=40,
                           base_price=Decimal("999"), extra_hour_rate=Decimal("200"),
                           extra_km_rate=Decimal("12")),
        old,
    ])
    await db_session.flush()
    repo = RentalPackageRepository(db_session)

    listed = await repo.list_packages()
    assert [p.name for p in listed] == ["4h", "8h"]

    package = await repo.get_package(listed[0].id)
    assert package.base_price == Decimal("999")

    with pytest.raises(PackageNotFoundError):
        await repo.get_package(old.id)
    with pytest.raises(PackageNotFoundError):
        await repo.get_package(9999)


@pytest.mark.asyncio
async def test_catalog_serializes_concurrent_lookups(db_session):
    repo = PricingRuleRepository(db_session)
    await repo.create(_rule("100", datetime(2024, 1, 1)))
    await repo.create(_rule("150", datetime(2024, 1, 1), vehicle_type=VehicleType.SUV))
    catalog = SqlPricingCatalog(db_session)

    sedan, suv = await asyncio.gather(
        catalog.get_active_rule(ServiceType.AIRPORT, VehicleType.SEDAN),
        catalog.get_active_rule(ServiceType.AIRPORT, VehicleType.SUV),
    )
    assert sedan.base_fare == Decimal("100")
    assert suv.base_fare == Decimal("150")
