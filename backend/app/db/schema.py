"""Table definitions mirrored by the Alembic migrations; used as metadata for autogenerate and test setup."""
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Time,
    func,
    text,
)

metadata = MetaData()

ACTIVE_BOOKING_PREDICATE = "status IN ('pending', 'confirmed')"

restaurant_table = Table(
    "restaurant_table",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("table_number", Integer, nullable=False, unique=True),
    Column("capacity", Integer, nullable=False),
    Column("location", String(64)),
    Column("status", String(32)),
    CheckConstraint("capacity > 0", name="ck_restaurant_table_capacity_positive"),
)

booking = Table(
    "booking",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("table_id", Integer, ForeignKey("restaurant_table.id"), nullable=False),
    Column("booking_date", Date, nullable=False),
    Column("booking_time", Time, nullable=False),
    Column("guests_count", Integer, nullable=False),
    Column("special_requests", Text),
    Column("status", String(16), nullable=False, server_default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("guests_count > 0", name="ck_booking_guests_positive"),
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'cancelled')", name="ck_booking_status"
    ),
    # At most one active booking per (table, slot); cancelled rows never block.
    Index(
        "uq_booking_active_slot",
        "table_id",
        "booking_date",
        "booking_time",
        unique=True,
        postgresql_where=text(ACTIVE_BOOKING_PREDICATE),
    ),
    Index("ix_booking_slot", "booking_date", "booking_time"),
)
