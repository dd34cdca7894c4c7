"""Plain value types shared by the resolver, the suggester and the booking write path."""
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class ComboRule(str, Enum):
    """Which tier of the suggester produced a combination."""

    PREFERRED = "preferred"
    EXACT = "exact"
    NEAREST = "nearest"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Table:
    id: int
    table_number: int
    capacity: int
    location: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class Slot:
    """A discrete service period. Compared by exact equality, never as a range."""

    booking_date: date
    booking_time: time

    def key(self) -> str:
        return f"{self.booking_date.strftime('%Y%m%d')}{self.booking_time.strftime('%H%M')}"


@dataclass(frozen=True)
class Combination:
    tables: tuple[Table, ...]
    guests: int
    rule: ComboRule

    @property
    def total(self) -> int:
        return sum(table.capacity for table in self.tables)

    @property
    def overage(self) -> int:
        return self.total - self.guests

    @property
    def table_ids(self) -> tuple[int, ...]:
        return tuple(table.id for table in self.tables)


@dataclass
class Booking:
    id: int
    user_id: int
    table_id: int
    booking_date: date
    booking_time: time
    guests_count: int
    status: BookingStatus
    special_requests: str | None = None
    created_at: datetime | None = None
    # Joined from restaurant_table for display
    table_number: int | None = None
    capacity: int | None = None
    location: str | None = None

    @property
    def slot(self) -> Slot:
        return Slot(self.booking_date, self.booking_time)
