"""Initial schema: pricing rules, rental packages and bookings.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from geoalchemy2 import Geometry


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

SERVICE_TYPES = ("city_ride", "airport", "outstation", "car_rental", "ride_sharing")
VEHICLE_TYPES = ("Sedan", "SUV", "Premium")


def upgrade() -> None:
    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    servicetype = sa.Enum(*SERVICE_TYPES, name="servicetype")
    vehicletype = sa.Enum(*VEHICLE_TYPES, name="vehicletype")
    servicetype.create(op.get_bind(), checkfirst=True)
    vehicletype.create(op.get_bind(), checkfirst=True)
    servicetype_col = postgresql.ENUM(
        *SERVICE_TYPES, name="servicetype", create_type=False
    )
    vehicletype_col = postgresql.ENUM(
        *VEHICLE_TYPES, name="vehicletype", create_type=False
    )

    # ── pricing_rules ─────────────────────────────────────────────────
    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("service_type", servicetype_col, nullable=False),
        sa.Column("vehicle_type", vehicletype_col, nullable=False),
        sa.Column("base_fare", sa.Numeric(10, 2), nullable=True),
        sa.Column("per_km_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("per_minute_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("minimum_fare", sa.Numeric(10, 2), nullable=True),
        sa.Column("surge_multiplier", sa.Numeric(4, 2), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "effective_from",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_pricing_rules_lookup",
        "pricing_rules",
        ["service_type", "vehicle_type", "is_active", "effective_from"],
    )

    # ── rental_packages ───────────────────────────────────────────────
    op.create_table(
        "rental_packages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("vehicle_type", vehicletype_col, nullable=True),
        sa.Column("duration_hours", sa.Integer, nullable=False),
        sa.Column("included_kilometers", sa.Integer, nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("extra_hour_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("extra_km_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_rental_packages_active", "rental_packages", ["is_active"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("service_type", servicetype_col, nullable=False),
        sa.Column("vehicle_type", vehicletype_col, nullable=False),
        sa.Column("package_id", sa.Integer, nullable=True),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("dropoff_location", sa.String(255), nullable=True),
        sa.Column(
            "pickup_point",
            Geometry("POINT", srid=4326, spatial_index=False),
            nullable=True,
        ),
        sa.Column(
            "dropoff_point",
            Geometry("POINT", srid=4326, spatial_index=False),
            nullable=True,
        ),
        sa.Column("pickup_lat", sa.Float, nullable=True),
        sa.Column("pickup_lng", sa.Float, nullable=True),
        sa.Column("dropoff_lat", sa.Float, nullable=True),
        sa.Column("dropoff_lng", sa.Float, nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("return_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_round_trip", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("passengers", sa.Integer, nullable=False, server_default="1"),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("distance_km", sa.Numeric(10, 3), nullable=False, server_default="0"),
        sa.Column(
            "duration_minutes", sa.Numeric(10, 2), nullable=False, server_default="0"
        ),
        sa.Column("total_fare", sa.Integer, nullable=False),
        sa.Column("advance_amount", sa.Integer, nullable=False),
        sa.Column("remaining_amount", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "accepted",
                "started",
                "completed",
                "cancelled",
                name="bookingstatus",
            ),
            server_default="pending",
            nullable=False,
        ),
        sa.Column(
            "payment_status",
            sa.Enum("pending", "partial", "paid", "refunded", name="paymentstatus"),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_bookings_pickup", "bookings", ["pickup_point"], postgresql_using="gist"
    )
    op.create_index(
        "idx_bookings_dropoff", "bookings", ["dropoff_point"], postgresql_using="gist"
    )
    op.create_index("idx_bookings_user", "bookings", ["user_id"])
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_idempotency", "bookings", ["idempotency_key"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("rental_packages")
    op.drop_table("pricing_rules")
    op.execute("DROP TYPE IF EXISTS paymentstatus")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
    op.execute("DROP TYPE IF EXISTS servicetype")
