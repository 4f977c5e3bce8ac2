"""
Admin endpoints: analytics and vote-counter reconciliation.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.api.deps import get_menu_cache
from mess_api.core.constants import ROLE_ADMIN
from mess_api.core.security import require_roles
from mess_api.db.session import get_db
from mess_api.models.user import User
from mess_api.schemas.analytics import AnalyticsResponse
from mess_api.schemas.menu import ReconcileResponse
from mess_api.services.analytics_service import get_analytics
from mess_api.services.cache_service import MenuCache
from mess_api.services.menu_service import reconcile_vote_counts, week_start_for

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(
    week: Optional[date] = Query(None),
    admin: User = Depends(require_roles(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await get_analytics(db, week)


@router.post("/menus/{week}/reconcile", response_model=ReconcileResponse)
async def reconcile(
    week: date,
    admin: User = Depends(require_roles(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
    cache: MenuCache = Depends(get_menu_cache),
):
    """Rebuild the week's option vote counters from the stored votes."""
    week_start = week_start_for(week)
    corrected = await reconcile_vote_counts(db, week_start)
    await db.commit()
    if corrected:
        await cache.invalidate_menu(week_start)
    return ReconcileResponse(week_start=week_start, corrected=corrected)
