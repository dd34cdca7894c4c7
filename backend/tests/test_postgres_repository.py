"""Runs against a real PostgreSQL when TEST_DATABASE_URL is set (postgresql+asyncpg://...)."""
import asyncio
import os
from datetime import date, time

import pytest
from sqlalchemy import insert, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backend.app.db.repository import SqlBookingRepository
from backend.app.db.schema import metadata, restaurant_table
from backend.app.services.bookings import cancel_booking, create_bookings, update_booking_status
from backend.app.services.errors import InvalidTransitionError, TableUnavailableError
from backend.app.services.types import BookingStatus, Slot

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.asyncio(loop_scope="module"),
    pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"),
]

SLOT = Slot(date(2026, 11, 5), time(20, 0))


async def _fresh_schema():
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)
        await conn.execute(
            insert(restaurant_table),
            [
                {"id": 1, "table_number": 1, "capacity": 2, "location": "window"},
                {"id": 2, "table_number": 2, "capacity": 2, "location": "window"},
                {"id": 3, "table_number": 3, "capacity": 4, "location": "main"},
            ],
        )
    return engine, async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def test_insert_and_read_back():
    engine, sessions = await _fresh_schema()
    try:
        async with sessions() as session:
            repo = SqlBookingRepository(session)
            booking_ids = await create_bookings(
                repo, user_id=1, table_ids=[1, 2], slot=SLOT, guests_count=4
            )

            assert await repo.list_active_booking_table_ids(SLOT) == {1, 2}
            assert [t.id for t in await repo.list_tables()] == [1, 2, 3]
            booking = await repo.get_booking(booking_ids[0])
            assert booking.status is BookingStatus.PENDING
            assert booking.table_number == 1
            assert len(await repo.list_bookings(user_id=1)) == 2
    finally:
        await engine.dispose()


async def test_unique_index_rejects_second_active_booking():
    engine, sessions = await _fresh_schema()
    try:
        async def book(user_id):
            async with sessions() as session:
                return await create_bookings(
                    SqlBookingRepository(session),
                    user_id=user_id,
                    table_ids=[3],
                    slot=SLOT,
                    guests_count=4,
                )

        results = await asyncio.gather(book(1), book(2), return_exceptions=True)

        assert sum(isinstance(r, list) for r in results) == 1
        assert sum(isinstance(r, TableUnavailableError) for r in results) == 1
    finally:
        await engine.dispose()


async def test_losing_combination_leaves_no_rows():
    engine, sessions = await _fresh_schema()
    try:
        async def book(user_id, table_ids):
            async with sessions() as session:
                return await create_bookings(
                    SqlBookingRepository(session),
                    user_id=user_id,
                    table_ids=table_ids,
                    slot=SLOT,
                    guests_count=4,
                )

        results = await asyncio.gather(book(1, [1, 3]), book(2, [3]), return_exceptions=True)

        assert sum(isinstance(r, list) for r in results) == 1
        assert sum(isinstance(r, TableUnavailableError) for r in results) == 1
        loser = 1 if isinstance(results[0], TableUnavailableError) else 2
        async with sessions() as session:
            rows = (await session.execute(text("SELECT user_id, table_id FROM booking"))).all()
        assert all(row.user_id != loser for row in rows)
        assert {row.table_id for row in rows} == ({3} if loser == 1 else {1, 3})
    finally:
        await engine.dispose()


async def test_concurrent_cancel_and_confirm_keep_one_outcome():
    engine, sessions = await _fresh_schema()
    try:
        async with sessions() as session:
            (booking_id,) = await create_bookings(
                SqlBookingRepository(session), user_id=1, table_ids=[3], slot=SLOT, guests_count=3
            )

        async def change(status):
            async with sessions() as session:
                return await update_booking_status(SqlBookingRepository(session), booking_id, status)

        results = await asyncio.gather(
            change(BookingStatus.CANCELLED),
            change(BookingStatus.CONFIRMED),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1
        async with sessions() as session:
            booking = await SqlBookingRepository(session).get_booking(booking_id)
        assert booking.status is winners[0].status
    finally:
        await engine.dispose()


async def test_cancelled_rows_do_not_block():
    engine, sessions = await _fresh_schema()
    try:
        async with sessions() as session:
            repo = SqlBookingRepository(session)
            (booking_id,) = await create_bookings(
                repo, user_id=1, table_ids=[3], slot=SLOT, guests_count=3
            )
            await cancel_booking(repo, booking_id)

            assert await repo.list_active_booking_table_ids(SLOT) == set()
            assert await create_bookings(repo, user_id=2, table_ids=[3], slot=SLOT, guests_count=3)
    finally:
        await engine.dispose()
