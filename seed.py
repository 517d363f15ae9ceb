"""
Seed script -- populates the database with a starter rate card.

Run after migrations:
    python seed.py

Creates:
  - one active pricing rule per (service type, vehicle type) pair
  - 3 rental packages (4h / 8h / 12h), offered for every vehicle type
"""

import asyncio

from sqlalchemy import text

from fareservice.infrastructure.database import async_session_factory, engine
from fareservice.infrastructure.models import PricingRuleModel, RentalPackageModel
from fareservice.domain.entities import to_decimal
from fareservice.domain.enums import ServiceType, VehicleType

# (base_fare, per_km_rate, per_minute_rate, minimum_fare)
# car_rental's per_minute_rate is an hourly rate.
RATE_CARD = {
    ServiceType.CITY_RIDE: {
        VehicleType.SEDAN: (50, 12, 2, 80),
        VehicleType.SUV: (70, 15, 2.5, 100),
        VehicleType.PREMIUM: (100, 20, 3, 150),
    },
    ServiceType.AIRPORT: {
        VehicleType.SEDAN: (100, 15, 2, 200),
        VehicleType.SUV: (150, 18, 2.5, 250),
        VehicleType.PREMIUM: (200, 25, 3, 350),
    },
    ServiceType.OUTSTATION: {
        VehicleType.SEDAN: (150, 10, 1.5, 500),
        VehicleType.SUV: (200, 12, 2, 600),
        VehicleType.PREMIUM: (300, 15, 2.5, 800),
    },
    ServiceType.CAR_RENTAL: {
        VehicleType.SEDAN: (150, 8, 120, 150),
        VehicleType.SUV: (200, 8, 150, 200),
        VehicleType.PREMIUM: (300, 12, 250, 300),
    },
    ServiceType.RIDE_SHARING: {
        VehicleType.SEDAN: (30, 8, 1, 50),
        VehicleType.SUV: (40, 10, 1.5, 70),
        VehicleType.PREMIUM: (60, 14, 2, 100),
    },
}

PACKAGES = [
    {"name": "4 Hours / 40 km", "duration_hours": 4, "included_kilometers": 40,
     "base_price": 999, "extra_hour_rate": 200, "extra_km_rate": 12},
    {"name": "8 Hours / 80 km", "duration_hours": 8, "included_kilometers": 80,
     "base_price": 1799, "extra_hour_rate": 180, "extra_km_rate": 12},
    {"name": "12 Hours / 120 km", "duration_hours": 12, "included_kilometers": 120,
     "base_price": 2599, "extra_hour_rate": 160, "extra_km_rate": 11},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM pricing_rules"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Pricing rules ─────────────────────────────────────────────
        count = 0
        for service_type, cards in RATE_CARD.items():
            for vehicle_type, (base, per_km, per_minute, minimum) in cards.items():
                session.add(
                    PricingRuleModel(
                        service_type=service_type,
                        vehicle_type=vehicle_type,
                        base_fare=to_decimal(base),
                        per_km_rate=to_decimal(per_km),
                        per_minute_rate=to_decimal(per_minute),
                        minimum_fare=to_decimal(minimum),
                        surge_multiplier=1,
                    )
                )
                count += 1
        await session.flush()
        print(f"  Created {count} pricing rules")

        # ── Rental packages ───────────────────────────────────────────
        for p in PACKAGES:
            session.add(RentalPackageModel(**p))
        await session.flush()
        print(f"  Created {len(PACKAGES)} rental packages")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
