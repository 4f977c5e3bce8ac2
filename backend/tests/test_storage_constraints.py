"""
Tests that uniqueness holds at the storage layer, independent of the
service-level pre-checks that concurrent requests can race past.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import WEEK_DAY, WEEK_START
from mess_api.models.booking import Booking
from mess_api.models.vote import Vote


def _booking(user_id: str, status: str = "upcoming") -> Booking:
    return Booking(
        user_id=user_id,
        date=WEEK_DAY,
        meal_type="lunch",
        selected_options={},
        qr_payload="{}",
        qr_code="data:image/png;base64,",
        status=status,
        cancelled_at=datetime.now(timezone.utc) if status == "cancelled" else None,
    )


def _vote(user_id: str, option_key: str) -> Vote:
    return Vote(
        user_id=user_id,
        week_start=WEEK_START,
        day="Monday",
        meal_type="lunch",
        category="main",
        option_key=option_key,
    )


@pytest.mark.asyncio
async def test_two_active_bookings_rejected(db_session: AsyncSession, student):
    db_session.add(_booking(student.id))
    await db_session.commit()

    db_session.add(_booking(student.id))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_cancelled_bookings_do_not_block_slot(db_session: AsyncSession, student):
    db_session.add(_booking(student.id, status="cancelled"))
    db_session.add(_booking(student.id, status="cancelled"))
    db_session.add(_booking(student.id))
    await db_session.commit()


@pytest.mark.asyncio
async def test_duplicate_vote_rejected(db_session: AsyncSession, student):
    db_session.add(_vote(student.id, "rajma"))
    await db_session.commit()

    db_session.add(_vote(student.id, "chole"))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_invalid_status_rejected(db_session: AsyncSession, student):
    db_session.add(_booking(student.id, status="served"))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()
