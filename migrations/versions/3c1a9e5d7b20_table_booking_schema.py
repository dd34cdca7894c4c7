"""table booking schema

Revision ID: 3c1a9e5d7b20
Revises: 
Create Date: 2026-10-19 09:12:44.381205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1a9e5d7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# (table_number, capacity, location)
FLOOR_PLAN = [
    (1, 2, "window"),
    (2, 2, "window"),
    (3, 2, "window"),
    (4, 2, "bar"),
    (5, 4, "main"),
    (6, 4, "main"),
    (7, 4, "main"),
    (8, 4, "main"),
    (9, 6, "main"),
    (10, 6, "main"),
    (11, 8, "garden"),
    (12, 8, "garden"),
    (13, 10, "private"),
]


def upgrade() -> None:
    restaurant_table = op.create_table(
        "restaurant_table",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("table_number", sa.Integer(), nullable=False, unique=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(64)),
        sa.Column("status", sa.String(32)),
        sa.CheckConstraint("capacity > 0", name="ck_restaurant_table_capacity_positive"),
    )
    op.create_table(
        "booking",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("restaurant_table.id"), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time", sa.Time(), nullable=False),
        sa.Column("guests_count", sa.Integer(), nullable=False),
        sa.Column("special_requests", sa.Text()),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("guests_count > 0", name="ck_booking_guests_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')", name="ck_booking_status"
        ),
    )
    op.create_index("ix_booking_user_id", "booking", ["user_id"])
    op.create_index("ix_booking_slot", "booking", ["booking_date", "booking_time"])
    # Concurrent inserts for the same active (table, slot): exactly one wins.
    op.create_index(
        "uq_booking_active_slot",
        "booking",
        ["table_id", "booking_date", "booking_time"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'confirmed')"),
    )

    op.bulk_insert(
        restaurant_table,
        [
            {"table_number": number, "capacity": capacity, "location": location, "status": "active"}
            for number, capacity, location in FLOOR_PLAN
        ],
    )


def downgrade() -> None:
    op.drop_index("uq_booking_active_slot", table_name="booking")
    op.drop_index("ix_booking_slot", table_name="booking")
    op.drop_index("ix_booking_user_id", table_name="booking")
    op.drop_table("booking")
    op.drop_table("restaurant_table")
