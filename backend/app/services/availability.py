from collections.abc import Collection, Iterable

from backend.app.services.types import ACTIVE_STATUSES, BookingStatus, Table


def is_active_status(status: str | BookingStatus) -> bool:
    """Only pending and confirmed bookings block a (table, slot)."""
    return BookingStatus(status) in ACTIVE_STATUSES


def table_order(table: Table) -> tuple[int, int]:
    return table.table_number, table.id


def available_tables(
    all_tables: Iterable[Table],
    booked_table_ids: Collection[int] = (),
) -> list[Table]:
    """Return every table not held by an active booking, ordered by display number.

    Callers without a slot pass no exclusions and get the full catalog back;
    availability is then re-checked for the concrete slot at booking time.
    """
    booked = set(booked_table_ids)
    return sorted((table for table in all_tables if table.id not in booked), key=table_order)


def unavailable_table_ids(requested: Iterable[int], booked_table_ids: Collection[int]) -> list[int]:
    """Requested tables that the same exclusion rule would filter out."""
    booked = set(booked_table_ids)
    return sorted({table_id for table_id in requested if table_id in booked})
