"""
Admin analytics: participation, cancellations and food waste.
"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.constants import DAYS, STATUS_CANCELLED, STATUS_CHECKED_IN
from mess_api.models.booking import Booking
from mess_api.models.menu import MealOption, WeeklyMenu
from mess_api.models.user import User
from mess_api.models.vote import Vote
from mess_api.schemas.analytics import AnalyticsResponse, DayParticipation, PopularMeal
from mess_api.services.menu_service import week_start_for

POPULAR_MEALS_LIMIT = 5


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


async def _popular_meals(db: AsyncSession, week_start: date) -> list[PopularMeal]:
    """Top options of the week by number of Vote rows."""
    vote_count = func.count(Vote.id).label("votes")
    result = await db.execute(
        select(Vote.meal_type, Vote.category, Vote.option_key, vote_count)
        .where(Vote.week_start == week_start)
        .group_by(Vote.meal_type, Vote.category, Vote.option_key)
        .order_by(vote_count.desc(), Vote.option_key)
        .limit(POPULAR_MEALS_LIMIT)
    )
    rows = result.all()
    if not rows:
        return []

    names_result = await db.execute(
        select(MealOption.meal_type, MealOption.category, MealOption.option_key, MealOption.name)
        .join(WeeklyMenu, MealOption.menu_id == WeeklyMenu.id)
        .where(WeeklyMenu.week_start == week_start)
    )
    names = {(m, c, k): name for m, c, k, name in names_result.all()}

    return [
        PopularMeal(
            id=key,
            name=names.get((meal_type, category, key), key),
            meal_type=meal_type,
            category=category,
            votes=votes,
        )
        for meal_type, category, key, votes in rows
    ]


async def _weekly_participation(db: AsyncSession, week_start: date) -> list[DayParticipation]:
    votes_result = await db.execute(
        select(Vote.day, func.count(Vote.id))
        .where(Vote.week_start == week_start)
        .group_by(Vote.day)
    )
    votes_by_day = dict(votes_result.all())

    week_end = week_start + timedelta(days=6)
    bookings_result = await db.execute(
        select(Booking.date, func.count(Booking.id))
        .where(
            Booking.date >= week_start,
            Booking.date <= week_end,
            Booking.status != STATUS_CANCELLED,
        )
        .group_by(Booking.date)
    )
    bookings_by_day: dict[str, int] = {}
    for booking_date, count in bookings_result.all():
        day_name = DAYS[booking_date.weekday()]
        bookings_by_day[day_name] = bookings_by_day.get(day_name, 0) + count

    return [
        DayParticipation(
            day=day,
            votes=votes_by_day.get(day, 0),
            bookings=bookings_by_day.get(day, 0),
        )
        for day in DAYS
    ]


async def get_analytics(db: AsyncSession, week: Optional[date] = None) -> AnalyticsResponse:
    week_start = week_start_for(week)

    total_users = await _count(db, select(func.count(User.id)))
    total_bookings = await _count(db, select(func.count(Booking.id)))
    cancelled = await _count(
        db, select(func.count(Booking.id)).where(Booking.status == STATUS_CANCELLED)
    )
    checked_in = await _count(
        db, select(func.count(Booking.id)).where(Booking.status == STATUS_CHECKED_IN)
    )

    avg_rating = (
        await db.execute(
            select(func.avg(Booking.waste_rating)).where(Booking.waste_rated.is_(True))
        )
    ).scalar()

    distribution_result = await db.execute(
        select(Booking.waste_rating, func.count(Booking.id))
        .where(Booking.waste_rated.is_(True))
        .group_by(Booking.waste_rating)
    )
    distribution = {rating: 0 for rating in range(1, 6)}
    for rating, count in distribution_result.all():
        distribution[rating] = count

    cancellation_rate = round(cancelled / total_bookings * 100, 1) if total_bookings else 0.0

    return AnalyticsResponse(
        week_start=week_start,
        total_users=total_users,
        total_bookings=total_bookings,
        checked_in=checked_in,
        cancellation_rate=cancellation_rate,
        avg_waste_rating=round(float(avg_rating), 2) if avg_rating is not None else None,
        waste_distribution=distribution,
        popular_meals=await _popular_meals(db, week_start),
        weekly_participation=await _weekly_participation(db, week_start),
    )
