class BookingError(Exception):
    """Base class for booking failures the HTTP layer translates to 4xx responses."""


class BookingValidationError(BookingError):
    pass


class TableNotFoundError(BookingError):
    def __init__(self, table_ids: list[int]):
        self.table_ids = sorted(table_ids)
        super().__init__(f"Unknown table(s): {', '.join(map(str, self.table_ids))}")


class TableUnavailableError(BookingError):
    """One or more requested tables already hold an active booking for the slot."""

    def __init__(self, table_ids: list[int]):
        self.table_ids = sorted(table_ids)
        super().__init__(
            f"Table(s) {', '.join(map(str, self.table_ids))} already booked for this time slot"
        )


class SlotHeldError(BookingError):
    """Another request currently holds one of the (table, slot) keys."""

    def __init__(self, table_id: int):
        self.table_id = table_id
        super().__init__("Slot temporarily held by another request")


class BookingNotFoundError(BookingError):
    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__("Booking not found")


class InvalidTransitionError(BookingError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change booking status from {current} to {requested}")
