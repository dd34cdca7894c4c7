from collections.abc import Sequence
from datetime import date, time
from typing import Protocol

from fastapi import Depends
from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_session
from backend.app.services.errors import TableUnavailableError
from backend.app.services.types import Booking, BookingStatus, Slot, Table


class BookingRepository(Protocol):
    """Storage contract the booking core reads from and writes through."""

    async def list_tables(self) -> list[Table]: ...

    async def get_tables(self, table_ids: Sequence[int]) -> list[Table]: ...

    async def list_active_booking_table_ids(self, slot: Slot) -> set[int]: ...

    async def list_active_bookings_on(self, booking_date: date) -> list[tuple[int, time]]: ...

    async def insert_bookings(
        self,
        *,
        user_id: int,
        table_ids: Sequence[int],
        slot: Slot,
        guests_count: int,
        special_requests: str | None,
    ) -> list[int]:
        """Insert one pending row per table, all or nothing.

        Raises TableUnavailableError when the active-slot uniqueness guard rejects any row.
        """
        ...

    async def get_booking(self, booking_id: int) -> Booking | None: ...

    async def list_bookings(self, user_id: int | None = None) -> list[Booking]: ...

    async def set_booking_status(
        self, booking_id: int, status: BookingStatus, *, expected: BookingStatus
    ) -> bool:
        """Move the booking from ``expected`` to ``status``; False if it was no longer ``expected``.

        Raises TableUnavailableError when the change would give the slot a second active booking.
        """
        ...


_TABLE_COLUMNS = "t.id, t.table_number, t.capacity, t.location, t.status"

_BOOKING_SELECT = """
    SELECT b.id, b.user_id, b.table_id, b.booking_date, b.booking_time,
           b.guests_count, b.special_requests, b.status, b.created_at,
           t.table_number, t.capacity, t.location
    FROM booking b
    JOIN restaurant_table t ON t.id = b.table_id
"""


def _table(row) -> Table:
    return Table(
        id=row.id,
        table_number=row.table_number,
        capacity=row.capacity,
        location=row.location,
        status=row.status,
    )


def _booking(row) -> Booking:
    return Booking(
        id=row.id,
        user_id=row.user_id,
        table_id=row.table_id,
        booking_date=row.booking_date,
        booking_time=row.booking_time,
        guests_count=row.guests_count,
        status=BookingStatus(row.status),
        special_requests=row.special_requests,
        created_at=row.created_at,
        table_number=row.table_number,
        capacity=row.capacity,
        location=row.location,
    )


class SqlBookingRepository:
    """PostgreSQL implementation backed by the uq_booking_active_slot partial index."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_tables(self) -> list[Table]:
        result = await self.session.execute(
            text(f"SELECT {_TABLE_COLUMNS} FROM restaurant_table t ORDER BY t.table_number, t.id")
        )
        return [_table(row) for row in result]

    async def get_tables(self, table_ids: Sequence[int]) -> list[Table]:
        if not table_ids:
            return []
        query = text(
            f"""
            SELECT {_TABLE_COLUMNS}
            FROM restaurant_table t
            WHERE t.id IN :table_ids
            ORDER BY t.table_number, t.id
            """
        ).bindparams(bindparam("table_ids", expanding=True))
        result = await self.session.execute(query, {"table_ids": list(table_ids)})
        return [_table(row) for row in result]

    async def list_active_booking_table_ids(self, slot: Slot) -> set[int]:
        result = await self.session.execute(
            text(
                """
                SELECT table_id
                FROM booking
                WHERE booking_date = :booking_date
                  AND booking_time = :booking_time
                  AND status IN ('pending', 'confirmed')
                """
            ),
            {"booking_date": slot.booking_date, "booking_time": slot.booking_time},
        )
        return set(result.scalars())

    async def list_active_bookings_on(self, booking_date: date) -> list[tuple[int, time]]:
        result = await self.session.execute(
            text(
                """
                SELECT table_id, booking_time
                FROM booking
                WHERE booking_date = :booking_date
                  AND status IN ('pending', 'confirmed')
                """
            ),
            {"booking_date": booking_date},
        )
        return [(row.table_id, row.booking_time) for row in result]

    async def insert_bookings(
        self,
        *,
        user_id: int,
        table_ids: Sequence[int],
        slot: Slot,
        guests_count: int,
        special_requests: str | None,
    ) -> list[int]:
        query = text(
            """
            INSERT INTO booking (
              user_id, table_id, booking_date, booking_time,
              guests_count, special_requests, status
            ) VALUES (
              :user_id, :table_id, :booking_date, :booking_time,
              :guests_count, :special_requests, 'pending'
            )
            RETURNING id
            """
        )
        booking_ids: list[int] = []
        try:
            for table_id in table_ids:
                result = await self.session.execute(
                    query,
                    {
                        "user_id": user_id,
                        "table_id": table_id,
                        "booking_date": slot.booking_date,
                        "booking_time": slot.booking_time,
                        "guests_count": guests_count,
                        "special_requests": special_requests,
                    },
                )
                booking_ids.append(result.scalar_one())
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            taken = await self.list_active_booking_table_ids(slot)
            conflicts = [table_id for table_id in table_ids if table_id in taken]
            raise TableUnavailableError(conflicts or list(table_ids)) from exc
        return booking_ids

    async def get_booking(self, booking_id: int) -> Booking | None:
        result = await self.session.execute(
            text(_BOOKING_SELECT + " WHERE b.id = :booking_id"),
            {"booking_id": booking_id},
        )
        row = result.one_or_none()
        return _booking(row) if row is not None else None

    async def list_bookings(self, user_id: int | None = None) -> list[Booking]:
        where = " WHERE b.user_id = :user_id" if user_id is not None else ""
        result = await self.session.execute(
            text(_BOOKING_SELECT + where + " ORDER BY b.booking_date DESC, b.booking_time DESC, b.id"),
            {"user_id": user_id} if user_id is not None else {},
        )
        return [_booking(row) for row in result]

    async def set_booking_status(
        self, booking_id: int, status: BookingStatus, *, expected: BookingStatus
    ) -> bool:
        try:
            result = await self.session.execute(
                text(
                    """
                    UPDATE booking SET status = :status
                    WHERE id = :booking_id AND status = :expected
                    """
                ),
                {"status": status.value, "booking_id": booking_id, "expected": expected.value},
            )
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            table_id = (
                await self.session.execute(
                    text("SELECT table_id FROM booking WHERE id = :booking_id"),
                    {"booking_id": booking_id},
                )
            ).scalar_one()
            raise TableUnavailableError([table_id]) from exc
        return result.rowcount == 1


async def get_repository(session: AsyncSession = Depends(get_session)) -> BookingRepository:
    return SqlBookingRepository(session)
