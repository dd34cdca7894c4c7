from backend.app.services.availability import (
    available_tables,
    is_active_status,
    unavailable_table_ids,
)
from backend.app.services.types import BookingStatus, Table


def _catalog():
    # Deliberately out of display order
    return [
        Table(id=30, table_number=3, capacity=6),
        Table(id=10, table_number=1, capacity=2),
        Table(id=40, table_number=4, capacity=8),
        Table(id=20, table_number=2, capacity=4),
    ]


def test_no_bookings_returns_full_catalog_by_table_number():
    tables = available_tables(_catalog(), set())

    assert [t.table_number for t in tables] == [1, 2, 3, 4]


def test_unspecified_slot_returns_everything():
    assert len(available_tables(_catalog())) == 4


def test_booked_tables_are_excluded():
    tables = available_tables(_catalog(), {20, 40})

    assert [t.id for t in tables] == [10, 30]


def test_unknown_booked_ids_are_ignored():
    assert len(available_tables(_catalog(), {999})) == 4


def test_unavailable_table_ids_uses_same_exclusion():
    assert unavailable_table_ids([40, 10, 20], {20, 40, 30}) == [20, 40]
    assert unavailable_table_ids([10], set()) == []


def test_only_pending_and_confirmed_are_active():
    assert is_active_status(BookingStatus.PENDING)
    assert is_active_status("confirmed")
    assert not is_active_status(BookingStatus.CANCELLED)
