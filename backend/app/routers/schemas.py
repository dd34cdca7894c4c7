from datetime import date, datetime, time
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from backend.app.core.config import settings
from backend.app.services.errors import BookingValidationError
from backend.app.services.types import BookingStatus, ComboRule


class TableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_number: int
    capacity: int
    location: str | None = None
    status: str | None = None


class CombinationOut(BaseModel):
    tables: list[TableOut]
    total: int
    overage: int
    # Tier that produced the combination: preferred, exact, nearest or fallback
    rule: ComboRule


class SuggestCombosOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    guests: int
    combos: list[CombinationOut]
    available_tables: list[TableOut] = Field(alias="availableTables")


class CreateBookingIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId", ge=1)
    booking_date: date = Field(alias="bookingDate")
    # "HH:MM", matched exactly against existing bookings
    booking_time: time = Field(alias="bookingTime")
    guests_count: int = Field(alias="guestsCount", ge=1, le=settings.MAX_PARTY_SIZE)
    special_requests: str | None = Field(default=None, alias="specialRequests", max_length=1024)
    table_id: int | None = Field(default=None, alias="tableId")
    table_ids: Annotated[list[int], Field(max_length=settings.MAX_COMBO_TABLES)] | None = Field(
        default=None, alias="tableIds"
    )

    def requested_table_ids(self) -> list[int]:
        """Exactly one of tableId or tableIds names the tables to book."""
        if self.table_ids is not None and self.table_id is not None:
            raise BookingValidationError("Send either tableId or tableIds, not both")
        if self.table_ids is not None:
            return list(self.table_ids)
        if self.table_id is None:
            raise BookingValidationError("Either tableId or tableIds is required")
        return [self.table_id]


class CreateBookingOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    booking_ids: list[int] = Field(alias="bookingIds")
    message: str = "Booking created successfully"


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    table_id: int
    booking_date: date
    booking_time: time
    guests_count: int
    special_requests: str | None = None
    status: BookingStatus
    created_at: datetime | None = None
    table_number: int | None = None
    capacity: int | None = None
    location: str | None = None


class UpdateBookingIn(BaseModel):
    status: BookingStatus


class UpdateBookingOut(BaseModel):
    success: bool = True
    message: str
    status: BookingStatus


class SlotAvailabilityOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time: str
    available: bool
    tables_available: int = Field(alias="tablesAvailable")


class SlotsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_date: date = Field(alias="date")
    guest_count: int = Field(alias="guestCount")
    slots: list[SlotAvailabilityOut]


class DateAvailabilityOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(alias="date")
    day_name: str = Field(alias="dayName")
    available: bool
    tables_available: int = Field(alias="tablesAvailable")


class DatesOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    guest_count: int = Field(alias="guestCount")
    dates: list[DateAvailabilityOut]
