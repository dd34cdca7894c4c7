import logging
from collections.abc import Awaitable

from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from backend.app.db.repository import BookingRepository, get_repository
from backend.app.routers.schemas import (
    BookingOut,
    CreateBookingIn,
    CreateBookingOut,
    UpdateBookingIn,
    UpdateBookingOut,
)
from backend.app.services import bookings as booking_service
from backend.app.services.errors import (
    BookingError,
    BookingNotFoundError,
    BookingValidationError,
    InvalidTransitionError,
    SlotHeldError,
    TableNotFoundError,
    TableUnavailableError,
)
from backend.app.services.types import Booking, Slot

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: BookingError) -> HTTPException:
    if isinstance(exc, TableUnavailableError):
        # Distinct from validation so the client re-runs suggestions instead of retrying.
        return HTTPException(
            status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "tableIds": exc.table_ids},
        )
    if isinstance(exc, (SlotHeldError, InvalidTransitionError)):
        return HTTPException(status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (TableNotFoundError, BookingNotFoundError)):
        return HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, BookingValidationError):
        return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/bookings", response_model=CreateBookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: CreateBookingIn,
    repo: BookingRepository = Depends(get_repository),
) -> CreateBookingOut:
    try:
        booking_ids = await booking_service.create_bookings(
            repo,
            user_id=payload.user_id,
            table_ids=payload.requested_table_ids(),
            slot=Slot(payload.booking_date, payload.booking_time),
            guests_count=payload.guests_count,
            special_requests=payload.special_requests,
        )
    except BookingError as exc:
        raise _http_error(exc) from exc
    except RedisError as exc:
        logger.exception("Slot hold failed")
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Redis unavailable") from exc
    except SQLAlchemyError as exc:
        logger.exception("Booking insert failed")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error") from exc

    return CreateBookingOut(booking_ids=booking_ids)


@router.get("/bookings", response_model=list[BookingOut])
async def list_bookings(
    user_id: int | None = Query(default=None, alias="userId"),
    repo: BookingRepository = Depends(get_repository),
) -> list[Booking]:
    return await repo.list_bookings(user_id=user_id)


@router.get("/bookings/user/{user_id}", response_model=list[BookingOut])
async def list_user_bookings(
    user_id: int,
    repo: BookingRepository = Depends(get_repository),
) -> list[Booking]:
    return await repo.list_bookings(user_id=user_id)


async def _apply_status(change: Awaitable[Booking], booking_id: int) -> Booking:
    try:
        return await change
    except BookingError as exc:
        raise _http_error(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception("Status update failed for booking %s", booking_id)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error") from exc


@router.patch("/bookings/{booking_id}", response_model=UpdateBookingOut)
async def update_booking(
    booking_id: int,
    payload: UpdateBookingIn,
    repo: BookingRepository = Depends(get_repository),
) -> UpdateBookingOut:
    booking = await _apply_status(
        booking_service.update_booking_status(repo, booking_id, payload.status), booking_id
    )
    return UpdateBookingOut(message="Booking updated", status=booking.status)


@router.delete("/bookings/{booking_id}", response_model=UpdateBookingOut)
async def cancel_booking(
    booking_id: int,
    repo: BookingRepository = Depends(get_repository),
) -> UpdateBookingOut:
    booking = await _apply_status(booking_service.cancel_booking(repo, booking_id), booking_id)
    return UpdateBookingOut(message="Booking cancelled successfully", status=booking.status)
