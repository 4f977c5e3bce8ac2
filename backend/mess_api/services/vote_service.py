"""
Voting ledger: one current choice per (user, week, day, meal, category).

CONCURRENCY STRATEGY: unique constraint + compare-and-swap, with retry
=====================================================================

First vote:
  INSERT the Vote row, +1 on the chosen option, +5 points to the voter.
  The unique constraint uq_vote_user_slot guarantees only one of two racing
  first votes commits. The loser gets an IntegrityError, rolls back, and on
  the next attempt finds the winner's row and goes down the revote path,
  so the +5 is never awarded twice.

Revote:
  UPDATE votes SET option_key = :new WHERE id = :id AND option_key = :old
  then -1 on the old option and +1 on the new one. If the row no longer holds
  :old, a concurrent revote got there first and we retry from the read.
  No points are awarded.

Counter updates are relative increments, so MealOption.votes always equals
the number of Vote rows pointing at the option once the transaction commits.
"""

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.exceptions import ConflictError, NotFoundError
from mess_api.core.logging import get_logger
from mess_api.core.metrics import record_vote, vote_write_retries
from mess_api.models.vote import Vote
from mess_api.services import points
from mess_api.services.menu_service import (
    adjust_option_votes,
    find_option,
    get_or_create_menu,
    week_start_for,
)

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3


class VoteOutcome:
    CREATED = "created"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


async def cast_vote(
    db: AsyncSession,
    user_id: str,
    week: date,
    day: str,
    meal_type: str,
    category: str,
    option_key: str,
) -> str:
    """
    Record the user's choice and return a VoteOutcome value.
    Raises NotFoundError when the option is not on that week's menu.
    """
    week_start = week_start_for(week)
    await get_or_create_menu(db, week_start)

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        option = await find_option(db, week_start, meal_type, category, option_key)
        if option is None:
            raise NotFoundError(
                f"Meal option '{option_key}' not found for {meal_type}/{category}",
                week_start=str(week_start),
            )

        result = await db.execute(
            select(Vote)
            .where(
                Vote.user_id == user_id,
                Vote.week_start == week_start,
                Vote.day == day,
                Vote.meal_type == meal_type,
                Vote.category == category,
            )
            .execution_options(populate_existing=True)
        )
        existing = result.scalar_one_or_none()

        if existing is None:
            vote = Vote(
                user_id=user_id,
                week_start=week_start,
                day=day,
                meal_type=meal_type,
                category=category,
                option_key=option_key,
            )
            db.add(vote)
            try:
                await db.flush()
            except IntegrityError:
                # A concurrent first vote for the same key committed first
                await db.rollback()
                vote_write_retries.inc()
                logger.info("vote_retry", user_id=user_id, attempt=attempt, reason="duplicate_key")
                continue

            await adjust_option_votes(db, option.id, +1)
            await points.apply_points(db, user_id, points.VOTE_CAST, "vote_cast")
            record_vote(VoteOutcome.CREATED)
            logger.info(
                "vote_created",
                user_id=user_id,
                week_start=str(week_start),
                day=day,
                meal_type=meal_type,
                category=category,
                option=option_key,
            )
            return VoteOutcome.CREATED

        if existing.option_key == option_key:
            record_vote(VoteOutcome.UNCHANGED)
            return VoteOutcome.UNCHANGED

        previous_key = existing.option_key
        previous = await find_option(db, week_start, meal_type, category, previous_key)

        swap = await db.execute(
            update(Vote)
            .where(Vote.id == existing.id, Vote.option_key == previous_key)
            .values(option_key=option_key)
            .execution_options(synchronize_session=False)
        )
        if swap.rowcount != 1:
            vote_write_retries.inc()
            logger.info("vote_retry", user_id=user_id, attempt=attempt, reason="concurrent_revote")
            continue

        if previous is not None:
            await adjust_option_votes(db, previous.id, -1)
        await adjust_option_votes(db, option.id, +1)
        record_vote(VoteOutcome.CHANGED)
        logger.info(
            "vote_changed",
            user_id=user_id,
            week_start=str(week_start),
            day=day,
            meal_type=meal_type,
            category=category,
            previous=previous_key,
            option=option_key,
        )
        return VoteOutcome.CHANGED

    raise ConflictError("Vote could not be recorded due to concurrent updates. Please try again.")
