"""
Check-in validator: staff scan a booking's QR code at the counter.

The credential is only trusted as far as the stored booking agrees with it:
the lookup matches id, owner, date and meal type together, so a credential
replayed against an unrelated booking finds nothing.

Points for attending go to the booking's owner, never to the scanning staff
member, and the owner's attendance streak is advanced in the same transaction.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Union

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.constants import STATUS_CANCELLED, STATUS_CHECKED_IN, STATUS_UPCOMING
from mess_api.core.exceptions import ConflictError, MalformedCredentialError, NotFoundError
from mess_api.core.logging import get_logger
from mess_api.core.metrics import record_booking_transition, record_checkin
from mess_api.models.booking import Booking
from mess_api.models.user import User
from mess_api.services import points
from mess_api.services.qr_service import parse_credential

logger = get_logger(__name__)

INVALID_QR = "Invalid or expired booking QR code"


def _state_conflict(booking: Booking) -> ConflictError:
    if booking.status == STATUS_CHECKED_IN:
        record_checkin("already_checked_in")
        return ConflictError("Already checked in", booking_id=booking.id)
    record_checkin("cancelled")
    return ConflictError("Booking was cancelled", booking_id=booking.id)


async def check_in(
    db: AsyncSession, staff_id: str, qr_data: Union[str, dict[str, Any]]
) -> Booking:
    try:
        credential = parse_credential(qr_data)
    except MalformedCredentialError:
        record_checkin("malformed")
        raise

    result = await db.execute(
        select(Booking)
        .where(
            Booking.id == credential.booking_id,
            Booking.user_id == credential.user_id,
            Booking.date == credential.date,
            Booking.meal_type == credential.meal_type,
        )
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        record_checkin("not_found")
        raise NotFoundError(INVALID_QR, booking_id=credential.booking_id, staff_id=staff_id)

    if booking.status in (STATUS_CHECKED_IN, STATUS_CANCELLED):
        record_booking_transition("checked_in", success=False)
        raise _state_conflict(booking)

    transition = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == STATUS_UPCOMING)
        .values(
            status=STATUS_CHECKED_IN,
            checked_in_at=datetime.now(timezone.utc),
            checked_in_by=staff_id,
        )
        .execution_options(synchronize_session=False)
    )
    if transition.rowcount != 1:
        await db.refresh(booking)
        record_booking_transition("checked_in", success=False)
        raise _state_conflict(booking)

    await points.apply_points(db, booking.user_id, points.CHECKED_IN, "checked_in")
    await advance_streak(db, booking.user_id, booking.date)
    await db.refresh(booking)

    record_checkin("success")
    record_booking_transition("checked_in", success=True)
    logger.info(
        "booking_checked_in",
        booking_id=booking.id,
        user_id=booking.user_id,
        staff_id=staff_id,
        meal_type=booking.meal_type,
    )
    return booking


async def advance_streak(db: AsyncSession, user_id: str, attended_on: date) -> None:
    """
    Consecutive-day attendance counter.

    Attending the day after the last attended day extends the streak, a second
    meal on the same day leaves it alone, a gap restarts it at 1. Late
    check-ins of older bookings do not move it.
    Both branches are conditional UPDATEs so concurrent check-ins stay sane.
    """
    previous_day = attended_on - timedelta(days=1)

    extended = await db.execute(
        update(User)
        .where(User.id == user_id, User.last_attended_on == previous_day)
        .values(streak=User.streak + 1, last_attended_on=attended_on)
        .execution_options(synchronize_session=False)
    )
    if extended.rowcount == 1:
        return

    await db.execute(
        update(User)
        .where(
            User.id == user_id,
            or_(User.last_attended_on.is_(None), User.last_attended_on < previous_day),
        )
        .values(streak=1, last_attended_on=attended_on)
        .execution_options(synchronize_session=False)
    )
