"""
Weekly menu and voting endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.api.deps import get_menu_cache
from mess_api.core.security import get_current_user
from mess_api.db.session import get_db
from mess_api.models.user import User
from mess_api.schemas.menu import UserVotesResponse, VoteCreate, VoteResponse, WeeklyMenuResponse
from mess_api.services import points
from mess_api.services.cache_service import MenuCache
from mess_api.services.menu_service import (
    get_or_create_menu,
    get_user_votes,
    serialize_menu,
    week_start_for,
)
from mess_api.services.vote_service import VoteOutcome, cast_vote

router = APIRouter(tags=["Menu & Voting"])

_VOTE_MESSAGES = {
    VoteOutcome.CREATED: "Vote recorded successfully",
    VoteOutcome.CHANGED: "Vote updated",
    VoteOutcome.UNCHANGED: "Vote unchanged",
}


@router.get("/menu/weekly", response_model=WeeklyMenuResponse)
async def weekly_menu(
    week: Optional[date] = Query(None, description="Any date within the week; defaults to today"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: MenuCache = Depends(get_menu_cache),
):
    """
    The week's menu with current vote counts.
    Created with the default option set on first read. Cached in Redis
    until the next vote for that week.
    """
    week_start = week_start_for(week)
    cached = await cache.get_menu(week_start)
    if cached:
        cached["cached"] = True
        return WeeklyMenuResponse(**cached)

    menu = await get_or_create_menu(db, week_start)
    response = serialize_menu(menu)
    await db.commit()
    await cache.set_menu(week_start, response.model_dump(mode="json"))
    return response


@router.post("/votes", response_model=VoteResponse)
async def vote(
    vote_data: VoteCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: MenuCache = Depends(get_menu_cache),
):
    """
    Cast or change a vote for one (week, day, meal, category).
    Only the first vote for a key earns points; later votes replace the choice.
    """
    user_id = user.id
    outcome = await cast_vote(
        db,
        user_id,
        vote_data.week_start,
        vote_data.day,
        vote_data.meal_type,
        vote_data.category,
        vote_data.option_id,
    )
    await db.commit()
    if outcome != VoteOutcome.UNCHANGED:
        await cache.invalidate_menu(week_start_for(vote_data.week_start))
    created = outcome == VoteOutcome.CREATED
    return VoteResponse(
        message=_VOTE_MESSAGES[outcome],
        created=created,
        points_awarded=points.VOTE_CAST if created else 0,
    )


@router.get("/votes", response_model=UserVotesResponse)
async def my_votes(
    week: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's choices for the week, keyed "<day>-<meal_type>-<category>"."""
    week_start = week_start_for(week)
    votes = await get_user_votes(db, user.id, week_start)
    return UserVotesResponse(week_start=week_start, votes=votes)
