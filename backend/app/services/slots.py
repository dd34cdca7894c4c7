"""Calendar views over the resolver and suggester: which service times and dates can seat a party."""
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, time, timedelta

from backend.app.db.repository import BookingRepository
from backend.app.services.availability import available_tables
from backend.app.services.combinations import DEFAULT_MAX_TABLES, suggest_combinations
from backend.app.services.types import Table


@dataclass(frozen=True)
class SlotAvailability:
    time: time
    available: bool
    tables_available: int


@dataclass(frozen=True)
class DateAvailability:
    date: date
    day_name: str
    available: bool
    tables_available: int


class _Seating:
    """Memoises whether a party fits, keyed by the set of booked tables."""

    def __init__(self, tables: list[Table], guests: int, max_tables: int):
        self.tables = tables
        self.guests = guests
        self.max_tables = max_tables
        self._fits: dict[frozenset[int], bool] = {}

    def fits(self, booked: frozenset[int]) -> bool:
        if booked not in self._fits:
            free = available_tables(self.tables, booked)
            combos = suggest_combinations(
                self.guests, free, max_tables=self.max_tables, max_options=1
            )
            self._fits[booked] = bool(combos)
        return self._fits[booked]


def _booked_by_time(bookings: Sequence[tuple[int, time]]) -> dict[time, frozenset[int]]:
    grouped: dict[time, set[int]] = defaultdict(set)
    for table_id, booking_time in bookings:
        grouped[booking_time].add(table_id)
    return {booking_time: frozenset(ids) for booking_time, ids in grouped.items()}


async def slot_availability(
    repo: BookingRepository,
    booking_date: date,
    guests: int,
    service_times: Sequence[time],
    *,
    max_tables: int = DEFAULT_MAX_TABLES,
) -> list[SlotAvailability]:
    seating = _Seating(await repo.list_tables(), guests, max_tables)
    booked = _booked_by_time(await repo.list_active_bookings_on(booking_date))

    slots = []
    for service_time in service_times:
        taken = booked.get(service_time, frozenset())
        slots.append(
            SlotAvailability(
                time=service_time,
                available=seating.fits(taken),
                tables_available=len(available_tables(seating.tables, taken)),
            )
        )
    return slots


async def date_availability(
    repo: BookingRepository,
    start: date,
    days: int,
    guests: int,
    service_times: Sequence[time],
    *,
    max_tables: int = DEFAULT_MAX_TABLES,
) -> list[DateAvailability]:
    """Per day: bookable if any service time fits; count tables untouched all day."""
    seating = _Seating(await repo.list_tables(), guests, max_tables)

    dates = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        bookings = await repo.list_active_bookings_on(day)
        booked = _booked_by_time(bookings)
        busy_all_day = {table_id for table_id, _ in bookings}
        dates.append(
            DateAvailability(
                date=day,
                day_name=day.strftime("%a"),
                available=any(
                    seating.fits(booked.get(service_time, frozenset()))
                    for service_time in service_times
                ),
                tables_available=sum(1 for table in seating.tables if table.id not in busy_all_day),
            )
        )
    return dates
