from datetime import date

from fastapi import APIRouter, Depends, Query

from backend.app.core.config import settings
from backend.app.db.repository import BookingRepository, get_repository
from backend.app.routers.schemas import DateAvailabilityOut, DatesOut, SlotAvailabilityOut, SlotsOut
from backend.app.services.slots import date_availability, slot_availability

router = APIRouter()


@router.get("/availability/slots", response_model=SlotsOut)
async def availability_slots(
    booking_date: date = Query(alias="date"),
    guests: int = Query(default=2, ge=1, le=settings.MAX_PARTY_SIZE),
    repo: BookingRepository = Depends(get_repository),
) -> SlotsOut:
    slots = await slot_availability(
        repo,
        booking_date,
        guests,
        settings.SERVICE_TIMES,
        max_tables=settings.MAX_COMBO_TABLES,
    )
    return SlotsOut(
        booking_date=booking_date,
        guest_count=guests,
        slots=[
            SlotAvailabilityOut(
                time=slot.time.strftime("%H:%M"),
                available=slot.available,
                tables_available=slot.tables_available,
            )
            for slot in slots
        ],
    )


@router.get("/availability/dates", response_model=DatesOut)
async def availability_dates(
    guests: int = Query(default=2, ge=1, le=settings.MAX_PARTY_SIZE),
    days: int = Query(default=30, ge=1, le=settings.MAX_LOOKAHEAD_DAYS),
    start: date | None = Query(default=None),
    repo: BookingRepository = Depends(get_repository),
) -> DatesOut:
    dates = await date_availability(
        repo,
        start or date.today(),
        days,
        guests,
        settings.SERVICE_TIMES,
        max_tables=settings.MAX_COMBO_TABLES,
    )
    return DatesOut(
        guest_count=guests,
        dates=[
            DateAvailabilityOut(
                day=day.date,
                day_name=day.day_name,
                available=day.available,
                tables_available=day.tables_available,
            )
            for day in dates
        ],
    )
