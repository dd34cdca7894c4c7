import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.db.repository import BookingRepository
from backend.app.services.availability import unavailable_table_ids
from backend.app.services.errors import (
    BookingNotFoundError,
    BookingValidationError,
    InvalidTransitionError,
    SlotHeldError,
    TableNotFoundError,
    TableUnavailableError,
)
from backend.app.services.types import Booking, BookingStatus, Slot

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


def _hold_key(table_id: int, slot: Slot) -> str:
    return f"hold:table:{table_id}:{slot.key()}"


@asynccontextmanager
async def slot_holds(
    table_ids: Sequence[int],
    slot: Slot,
    ttl_seconds: int | None = None,
) -> AsyncIterator[None]:
    """Hold every (table, slot) key in Redis for the duration of a write.

    Keys are taken in sorted order and released together. Without Redis the
    partial unique index on booking is the only guard.
    """
    client = redis_module.redis_client
    if client is None:
        yield
        return

    ttl = ttl_seconds or settings.HOLD_TTL_SECONDS
    acquired: list[str] = []
    try:
        for table_id in sorted(table_ids):
            key = _hold_key(table_id, slot)
            if not await client.set(key, "1", nx=True, px=ttl * 1000):
                raise SlotHeldError(table_id)
            acquired.append(key)
        yield
    finally:
        if acquired:
            await client.delete(*acquired)


async def create_bookings(
    repo: BookingRepository,
    *,
    user_id: int,
    table_ids: Sequence[int],
    slot: Slot,
    guests_count: int,
    special_requests: str | None = None,
) -> list[int]:
    """Book one or more tables for a slot, all or nothing.

    Availability is re-checked with the same active-booking rule the
    resolver applies, immediately before insert. If any table is taken the
    whole request is rejected with TableUnavailableError naming every taken
    table; a multi-table party is never partially seated.
    """
    if not table_ids:
        raise BookingValidationError("At least one table is required")
    if len(set(table_ids)) != len(table_ids):
        raise BookingValidationError("Duplicate table ids in request")

    known = {table.id for table in await repo.get_tables(table_ids)}
    missing = [table_id for table_id in table_ids if table_id not in known]
    if missing:
        raise TableNotFoundError(missing)

    async with slot_holds(table_ids, slot):
        booked = await repo.list_active_booking_table_ids(slot)
        conflicts = unavailable_table_ids(table_ids, booked)
        if conflicts:
            logger.warning("Booking conflict for tables %s at %s", conflicts, slot.key())
            raise TableUnavailableError(conflicts)
        booking_ids = await repo.insert_bookings(
            user_id=user_id,
            table_ids=table_ids,
            slot=slot,
            guests_count=guests_count,
            special_requests=special_requests,
        )

    logger.info(
        "Created bookings %s for user %s, tables %s at %s",
        booking_ids,
        user_id,
        list(table_ids),
        slot.key(),
    )
    return booking_ids


async def update_booking_status(
    repo: BookingRepository,
    booking_id: int,
    status: BookingStatus,
) -> Booking:
    booking = await repo.get_booking(booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    if booking.status == status:
        return booking
    if status not in _TRANSITIONS[booking.status]:
        raise InvalidTransitionError(booking.status.value, status.value)

    # Compare-and-set against the status read above.
    if not await repo.set_booking_status(booking_id, status, expected=booking.status):
        current = await repo.get_booking(booking_id)
        raise InvalidTransitionError(
            current.status.value if current is not None else booking.status.value, status.value
        )
    logger.info("Booking %s: %s -> %s", booking_id, booking.status.value, status.value)
    booking.status = status
    return booking


async def cancel_booking(repo: BookingRepository, booking_id: int) -> Booking:
    """Soft cancel; the row stays and stops blocking its table for the slot."""
    return await update_booking_status(repo, booking_id, BookingStatus.CANCELLED)
