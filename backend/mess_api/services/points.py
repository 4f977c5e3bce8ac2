"""
Points ledger.

Not a service of its own: every mutating booking/vote operation calls
``apply_points`` once its own state change has been confirmed, inside the
same transaction. Idempotency comes from those status checks, not from a
dedup table.

Deltas are applied as a relative UPDATE so concurrent awards for the same
user compose regardless of interleaving. The balance is floored at zero:

    points = CASE WHEN points + :delta < 0 THEN 0 ELSE points + :delta END
"""

from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.logging import get_logger
from mess_api.core.metrics import record_points
from mess_api.models.user import User

logger = get_logger(__name__)

VOTE_CAST = 5
BOOKING_CREATED = 10
BOOKING_CANCELLED = -5
CHECKED_IN = 15
WASTE_RATED = 2


async def apply_points(db: AsyncSession, user_id: str, delta: int, reason: str) -> None:
    new_total = User.points + delta
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=case((new_total < 0, 0), else_=new_total))
        .execution_options(synchronize_session=False)
    )
    record_points(reason)
    logger.info("points_applied", user_id=user_id, delta=delta, reason=reason)
