import asyncio
import dataclasses
import os
from collections.abc import Sequence
from datetime import date, time

# Settings() requires DATABASE_URL at import time; the engine never connects in these tests.
os.environ.setdefault("DATABASE_URL", "postgresql+asyncpg://app_user@localhost:5432/tablebooking_test")

import pytest

from backend.app.core import redis_client as redis_module
from backend.app.db.repository import get_repository
from backend.app.main import app
from backend.app.services.availability import is_active_status, table_order
from backend.app.services.errors import TableUnavailableError
from backend.app.services.types import Booking, BookingStatus, Slot, Table

# table_number: capacity
FLOOR = {1: 2, 2: 2, 3: 4, 4: 4, 5: 6, 6: 8}


class InMemoryBookingRepository:
    """Store double with the same all-or-nothing insert and active-slot uniqueness as Postgres.

    Every method yields to the event loop first so concurrent requests interleave.
    """

    def __init__(self, tables: Sequence[Table]):
        self.tables = {table.id: table for table in tables}
        self.bookings: dict[int, Booking] = {}
        self._next_id = 1

    async def list_tables(self) -> list[Table]:
        await asyncio.sleep(0)
        return sorted(self.tables.values(), key=table_order)

    async def get_tables(self, table_ids: Sequence[int]) -> list[Table]:
        await asyncio.sleep(0)
        return sorted(
            (self.tables[table_id] for table_id in set(table_ids) if table_id in self.tables),
            key=table_order,
        )

    def _active_on(self, slot: Slot) -> set[int]:
        return {
            booking.table_id
            for booking in self.bookings.values()
            if booking.slot == slot and is_active_status(booking.status)
        }

    async def list_active_booking_table_ids(self, slot: Slot) -> set[int]:
        await asyncio.sleep(0)
        return self._active_on(slot)

    async def list_active_bookings_on(self, booking_date: date) -> list[tuple[int, time]]:
        await asyncio.sleep(0)
        return [
            (booking.table_id, booking.booking_time)
            for booking in self.bookings.values()
            if booking.booking_date == booking_date and is_active_status(booking.status)
        ]

    async def insert_bookings(
        self,
        *,
        user_id: int,
        table_ids: Sequence[int],
        slot: Slot,
        guests_count: int,
        special_requests: str | None,
    ) -> list[int]:
        await asyncio.sleep(0)
        taken = self._active_on(slot)
        conflicts = [table_id for table_id in table_ids if table_id in taken]
        if conflicts:
            raise TableUnavailableError(conflicts)

        booking_ids = []
        for table_id in table_ids:
            table = self.tables[table_id]
            booking = Booking(
                id=self._next_id,
                user_id=user_id,
                table_id=table_id,
                booking_date=slot.booking_date,
                booking_time=slot.booking_time,
                guests_count=guests_count,
                status=BookingStatus.PENDING,
                special_requests=special_requests,
                table_number=table.table_number,
                capacity=table.capacity,
                location=table.location,
            )
            self.bookings[booking.id] = booking
            booking_ids.append(booking.id)
            self._next_id += 1
        return booking_ids

    async def get_booking(self, booking_id: int) -> Booking | None:
        await asyncio.sleep(0)
        booking = self.bookings.get(booking_id)
        return dataclasses.replace(booking) if booking is not None else None

    async def list_bookings(self, user_id: int | None = None) -> list[Booking]:
        await asyncio.sleep(0)
        rows = [
            dataclasses.replace(booking)
            for booking in self.bookings.values()
            if user_id is None or booking.user_id == user_id
        ]
        return sorted(rows, key=lambda b: (b.booking_date, b.booking_time), reverse=True)

    async def set_booking_status(
        self, booking_id: int, status: BookingStatus, *, expected: BookingStatus
    ) -> bool:
        await asyncio.sleep(0)
        booking = self.bookings[booking_id]
        if booking.status != expected:
            return False
        booking.status = status
        return True


class FakeRedis:
    """Just enough of redis.asyncio.Redis for slot holds: SET NX, DELETE, PING."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def set(self, key, value, nx=False, px=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, *keys):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def exists(self, *keys):
        return sum(1 for key in keys if key in self.store)

    async def ping(self):
        return True

    async def aclose(self):
        self.store.clear()


@pytest.fixture
def repo() -> InMemoryBookingRepository:
    return InMemoryBookingRepository(
        [
            Table(id=number, table_number=number, capacity=capacity, location="main")
            for number, capacity in FLOOR.items()
        ]
    )


@pytest.fixture
def api_repo(repo, monkeypatch) -> InMemoryBookingRepository:
    """Route the app's repository dependency to the in-memory store."""
    monkeypatch.setattr(redis_module, "redis_client", None)
    app.dependency_overrides[get_repository] = lambda: repo
    yield repo
    app.dependency_overrides.pop(get_repository, None)


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    client = FakeRedis()
    monkeypatch.setattr(redis_module, "redis_client", client)
    return client
