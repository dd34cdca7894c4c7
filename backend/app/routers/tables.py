from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.app.core.config import settings
from backend.app.db.repository import BookingRepository, get_repository
from backend.app.routers.schemas import CombinationOut, SuggestCombosOut, TableOut
from backend.app.services.availability import available_tables
from backend.app.services.combinations import suggest_combinations
from backend.app.services.types import Slot, Table

router = APIRouter()


def _slot_or_none(booking_date: date | None, booking_time: time | None) -> Slot | None:
    if booking_date is None and booking_time is None:
        return None
    if booking_date is None or booking_time is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Date and time must be given together")
    return Slot(booking_date, booking_time)


async def _tables_for_slot(repo: BookingRepository, slot: Slot | None) -> list[Table]:
    tables = await repo.list_tables()
    if slot is None:
        return available_tables(tables)
    return available_tables(tables, await repo.list_active_booking_table_ids(slot))


@router.get("/tables", response_model=list[TableOut])
async def list_tables(repo: BookingRepository = Depends(get_repository)) -> list[Table]:
    return available_tables(await repo.list_tables())


@router.get("/tables/available", response_model=list[TableOut])
async def list_available_tables(
    booking_date: date = Query(alias="date"),
    booking_time: time = Query(alias="time"),
    guests: int | None = Query(default=None, ge=1, le=settings.MAX_PARTY_SIZE),
    repo: BookingRepository = Depends(get_repository),
) -> list[Table]:
    """Every table free for the slot; combination logic lives in /tables/suggest-combos."""
    return await _tables_for_slot(repo, Slot(booking_date, booking_time))


@router.get("/tables/suggest-combos", response_model=SuggestCombosOut)
async def suggest_combos(
    booking_date: date | None = Query(default=None, alias="date"),
    booking_time: time | None = Query(default=None, alias="time"),
    guests: int = Query(default=2, ge=1, le=settings.MAX_PARTY_SIZE),
    repo: BookingRepository = Depends(get_repository),
) -> SuggestCombosOut:
    slot = _slot_or_none(booking_date, booking_time)
    tables = await _tables_for_slot(repo, slot)
    combos = suggest_combinations(
        guests,
        tables,
        max_tables=settings.MAX_COMBO_TABLES,
        max_options=settings.MAX_COMBO_OPTIONS,
    )
    return SuggestCombosOut(
        guests=guests,
        combos=[
            CombinationOut(
                tables=[TableOut.model_validate(table) for table in combo.tables],
                total=combo.total,
                overage=combo.overage,
                rule=combo.rule,
            )
            for combo in combos
        ],
        available_tables=[TableOut.model_validate(table) for table in tables],
    )
