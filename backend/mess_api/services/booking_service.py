"""
Booking lifecycle: create, cancel, rate waste, list.

STATE MACHINE
=============

    upcoming --cancel--> cancelled             (terminal)
    upcoming --check-in--> checked_in          (see checkin_service)
    checked_in --rate--> checked_in, waste_rated=true

CONCURRENCY STRATEGY: conditional transitions
=============================================

Problem:
  Two cancel requests for the same booking both read status=upcoming,
  both write cancelled, and the user loses 10 points instead of 5.

Solution:
  Every transition is one UPDATE guarded by the expected current state:

    UPDATE bookings SET status = 'cancelled', cancelled_at = now()
    WHERE id = :id AND status = 'upcoming'

  The point delta is applied only if that statement touched exactly one row.
  The loser sees rowcount == 0, re-reads the booking and reports the state
  that beat it. No dedup table is needed.

  Creation relies on the partial unique index uq_active_booking_slot: the
  pre-check gives a friendly error in the common case, and the index turns
  the racing duplicate into an IntegrityError, reported as the same conflict.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.constants import (
    STATUS_CANCELLED,
    STATUS_CHECKED_IN,
    STATUS_UPCOMING,
    WASTE_RATING_MAX,
    WASTE_RATING_MIN,
)
from mess_api.core.exceptions import ConflictError, NotFoundError, ValidationError
from mess_api.core.logging import get_logger
from mess_api.core.metrics import record_booking_transition
from mess_api.models.booking import Booking
from mess_api.schemas.checkin import CheckInCredential
from mess_api.services import points
from mess_api.services.qr_service import build_credential, render_qr

logger = get_logger(__name__)

ALREADY_BOOKED = "Already booked for this meal"


async def _find_active_booking(
    db: AsyncSession, user_id: str, booking_date: date, meal_type: str
) -> Optional[Booking]:
    result = await db.execute(
        select(Booking).where(
            Booking.user_id == user_id,
            Booking.date == booking_date,
            Booking.meal_type == meal_type,
            Booking.status != STATUS_CANCELLED,
        )
    )
    return result.scalar_one_or_none()


async def get_user_booking(db: AsyncSession, booking_id: str, user_id: str) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id, Booking.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found", booking_id=booking_id, user_id=user_id)
    return booking


async def create_booking(
    db: AsyncSession,
    user_id: str,
    booking_date: date,
    meal_type: str,
    selected_options: Optional[dict[str, str]] = None,
) -> Booking:
    """
    Reserve one meal slot for the user and issue its check-in QR code.
    Awards BOOKING_CREATED points.
    """
    if await _find_active_booking(db, user_id, booking_date, meal_type):
        record_booking_transition("created", success=False)
        raise ConflictError(
            ALREADY_BOOKED, user_id=user_id, date=str(booking_date), meal_type=meal_type
        )

    # The credential embeds the id, so it is assigned here rather than on flush
    booking_id = str(uuid.uuid4())
    qr_payload = build_credential(
        CheckInCredential(
            booking_id=booking_id,
            user_id=user_id,
            date=booking_date,
            meal_type=meal_type,
        )
    )
    booking = Booking(
        id=booking_id,
        user_id=user_id,
        date=booking_date,
        meal_type=meal_type,
        selected_options=dict(selected_options or {}),
        qr_payload=qr_payload,
        qr_code=render_qr(qr_payload),
        status=STATUS_UPCOMING,
        waste_rated=False,
    )
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request booked the same slot between check and insert
        await db.rollback()
        record_booking_transition("created", success=False)
        raise ConflictError(
            ALREADY_BOOKED, user_id=user_id, date=str(booking_date), meal_type=meal_type
        )

    await points.apply_points(db, user_id, points.BOOKING_CREATED, "booking_created")
    await db.refresh(booking)

    record_booking_transition("created", success=True)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        date=str(booking_date),
        meal_type=meal_type,
    )
    return booking


async def cancel_booking(db: AsyncSession, booking_id: str, user_id: str) -> Booking:
    """
    Cancel an upcoming booking. Deducts BOOKING_CANCELLED points.
    Checked-in and cancelled bookings cannot be cancelled.
    """
    booking = await get_user_booking(db, booking_id, user_id)

    if booking.status != STATUS_UPCOMING:
        record_booking_transition("cancelled", success=False)
        raise ConflictError(
            f"Cannot cancel a meal that is {booking.status}.",
            booking_id=booking_id,
            status=booking.status,
        )

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == STATUS_UPCOMING)
        .values(status=STATUS_CANCELLED, cancelled_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Lost the race to a concurrent cancel or check-in
        await db.refresh(booking)
        record_booking_transition("cancelled", success=False)
        raise ConflictError(
            f"Cannot cancel a meal that is {booking.status}.",
            booking_id=booking_id,
            status=booking.status,
        )

    await points.apply_points(db, user_id, points.BOOKING_CANCELLED, "booking_cancelled")
    await db.refresh(booking)

    record_booking_transition("cancelled", success=True)
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=user_id,
        date=str(booking.date),
        meal_type=booking.meal_type,
    )
    return booking


async def submit_waste_rating(
    db: AsyncSession, booking_id: str, user_id: str, rating: int
) -> Booking:
    """
    Record how much of an attended meal was wasted (1 = none, 5 = all).
    Only once per booking, only after check-in. Awards WASTE_RATED points.
    """
    if not WASTE_RATING_MIN <= rating <= WASTE_RATING_MAX:
        raise ValidationError(
            f"Waste rating must be between {WASTE_RATING_MIN} and {WASTE_RATING_MAX}",
            booking_id=booking_id,
            rating=rating,
        )

    booking = await get_user_booking(db, booking_id, user_id)
    _ensure_rateable(booking)

    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.status == STATUS_CHECKED_IN,
            Booking.waste_rated.is_(False),
        )
        .values(
            waste_rating=rating,
            waste_rated=True,
            rated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.refresh(booking)
        _ensure_rateable(booking)
        raise ConflictError("Meal cannot be rated for waste right now", booking_id=booking_id)

    await points.apply_points(db, user_id, points.WASTE_RATED, "waste_rated")
    await db.refresh(booking)

    record_booking_transition("rated", success=True)
    logger.info("waste_rating_recorded", booking_id=booking_id, user_id=user_id, rating=rating)
    return booking


def _ensure_rateable(booking: Booking) -> None:
    if booking.waste_rated:
        record_booking_transition("rated", success=False)
        raise ConflictError("Waste rating already submitted for this meal", booking_id=booking.id)
    if booking.status != STATUS_CHECKED_IN:
        record_booking_transition("rated", success=False)
        raise ConflictError(
            f"Meal cannot be rated for waste while it is {booking.status}",
            booking_id=booking.id,
            status=booking.status,
        )


async def get_user_bookings(
    db: AsyncSession, user_id: str, booking_date: Optional[date] = None
) -> list[Booking]:
    """Get the user's bookings, optionally for a single date, newest first."""
    query = select(Booking).where(Booking.user_id == user_id)
    if booking_date is not None:
        query = query.where(Booking.date == booking_date)
    result = await db.execute(
        query.order_by(Booking.date.desc(), Booking.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
