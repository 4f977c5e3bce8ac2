"""
Tests for when writes are committed relative to the response and to menu
cache invalidation.
"""

from datetime import date

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from conftest import WEEK_DAY, WEEK_START, book
from mess_api.main import app
from mess_api.api.deps import get_menu_cache
from mess_api.db.session import get_db
from mess_api.models.booking import Booking
from mess_api.models.user import User
from mess_api.models.vote import Vote
from mess_api.services.cache_service import MenuCache


class FailingCommitSession(AsyncSession):
    """Session whose commit never reaches the database."""

    async def commit(self) -> None:
        raise RuntimeError("connection lost during commit")


class RecordingMenuCache(MenuCache):
    """Disabled cache that notes whether the request transaction was still open."""

    def __init__(self, session: AsyncSession):
        super().__init__(None)
        self.session = session
        self.invalidated: list[tuple[date, bool]] = []

    async def invalidate_menu(self, week_start: date) -> None:
        self.invalidated.append((week_start, self.session.in_transaction()))


def _vote(option_id: str) -> dict:
    return {
        "week_start": WEEK_START.isoformat(),
        "day": "Monday",
        "meal_type": "breakfast",
        "category": "main",
        "option_id": option_id,
    }


@pytest.fixture
def failing_client(engine: AsyncEngine):
    """Client whose requests run on a FailingCommitSession; app errors become responses."""

    async def override_get_db():
        async with FailingCommitSession(engine, expire_on_commit=False) as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    def build(cache: MenuCache) -> AsyncClient:
        app.dependency_overrides[get_menu_cache] = lambda: cache
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        return AsyncClient(transport=transport, base_url="http://test")

    yield build
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_failed_commit_is_not_reported_as_booked(
    failing_client, db_session: AsyncSession, student
):
    async with failing_client(MenuCache(None)) as client:
        response = await book(client, student)

    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"

    bookings = await db_session.scalar(select(func.count()).select_from(Booking))
    assert bookings == 0
    balance = await db_session.scalar(select(User.points).where(User.id == student.id))
    assert balance == 0


@pytest.mark.asyncio
async def test_failed_commit_does_not_invalidate_menu(
    failing_client, db_session: AsyncSession, student
):
    cache = RecordingMenuCache(db_session)
    async with failing_client(cache) as client:
        response = await client.post("/api/v1/votes", json=_vote("poha"), headers=student.headers)

    assert response.status_code == 500
    assert cache.invalidated == []
    votes = await db_session.scalar(select(func.count()).select_from(Vote))
    assert votes == 0


@pytest.mark.asyncio
async def test_vote_invalidates_menu_after_commit(
    client: AsyncClient, db_session: AsyncSession, student
):
    cache = RecordingMenuCache(db_session)
    app.dependency_overrides[get_menu_cache] = lambda: cache

    await client.post("/api/v1/votes", json=_vote("poha"), headers=student.headers)
    await client.post("/api/v1/votes", json=_vote("upma"), headers=student.headers)
    await client.post("/api/v1/votes", json=_vote("upma"), headers=student.headers)

    # An unchanged vote leaves the cached menu alone
    assert cache.invalidated == [(WEEK_START, False), (WEEK_START, False)]


@pytest.mark.asyncio
async def test_reconcile_invalidates_menu_after_commit(
    client: AsyncClient, db_session: AsyncSession, student, admin
):
    await client.post("/api/v1/votes", json=_vote("poha"), headers=student.headers)

    # Drop the vote row behind the counters' back so reconcile has work to do
    vote = await db_session.scalar(select(Vote))
    await db_session.delete(vote)
    await db_session.commit()

    cache = RecordingMenuCache(db_session)
    app.dependency_overrides[get_menu_cache] = lambda: cache

    response = await client.post(
        f"/api/v1/admin/menus/{WEEK_DAY.isoformat()}/reconcile", headers=admin.headers
    )
    assert response.status_code == 200
    assert [c["id"] for c in response.json()["corrected"]] == ["poha"]
    assert cache.invalidated == [(WEEK_START, False)]
