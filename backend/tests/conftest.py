"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own in-memory SQLite database (aiosqlite) built from the
ORM metadata, a disabled menu cache, and an AI advisor wired to an
httpx.MockTransport, all injected through dependency overrides.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mess_api.main import app
from mess_api.api.deps import get_advisor, get_menu_cache
from mess_api.core.constants import ROLE_ADMIN, ROLE_STAFF, ROLE_STUDENT
from mess_api.core.security import create_access_token, hash_password
from mess_api.db.base import Base
from mess_api.db.session import get_db
from mess_api.models.user import User
from mess_api.services.ai_service import NutritionAdvisor
from mess_api.services.cache_service import MenuCache

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "testpassword123"

# A Wednesday, so its week starts on 2024-06-03
WEEK_DAY = date(2024, 6, 5)
WEEK_START = date(2024, 6, 3)


@dataclass
class Account:
    """Plain snapshot of a seeded user; survives session rollbacks."""

    id: str
    email: str
    role: str
    headers: dict = field(default_factory=dict)


def advice_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest_asyncio.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def advisor() -> AsyncGenerator[NutritionAdvisor, None]:
    """Advisor whose upstream always answers with canned advice."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=advice_reply("Eat more greens."))

    advisor = NutritionAdvisor(
        api_key="test-key",
        model="test-model",
        base_url="https://ai.test/v1beta",
        base_delay=0,
        transport=httpx.MockTransport(handler),
    )
    yield advisor
    await advisor.close()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, advisor: NutritionAdvisor
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB, cache and AI dependencies."""

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    menu_cache = MenuCache(None)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_menu_cache] = lambda: menu_cache
    app.dependency_overrides[get_advisor] = lambda: advisor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_account(db_session: AsyncSession, name: str, email: str, role: str) -> Account:
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(TEST_PASSWORD),
        role=role,
        points=0,
        streak=0,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    token = create_access_token(data={"sub": user.id})
    return Account(
        id=user.id,
        email=user.email,
        role=user.role,
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> Account:
    return await _create_account(db_session, "Test Student", "student@example.com", ROLE_STUDENT)


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> Account:
    return await _create_account(db_session, "Other Student", "other@example.com", ROLE_STUDENT)


@pytest_asyncio.fixture
async def staff(db_session: AsyncSession) -> Account:
    return await _create_account(db_session, "Counter Staff", "staff@example.com", ROLE_STAFF)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Account:
    return await _create_account(db_session, "Mess Admin", "admin@example.com", ROLE_ADMIN)


async def get_points(client: AsyncClient, account: Account) -> int:
    response = await client.get("/api/v1/auth/me", headers=account.headers)
    assert response.status_code == 200
    return response.json()["points"]


async def book(
    client: AsyncClient,
    account: Account,
    booking_date: date = WEEK_DAY,
    meal_type: str = "lunch",
    selected_options: dict | None = None,
) -> httpx.Response:
    return await client.post(
        "/api/v1/bookings/",
        json={
            "date": booking_date.isoformat(),
            "meal_type": meal_type,
            "selected_options": selected_options or {},
        },
        headers=account.headers,
    )


async def scan(client: AsyncClient, account: Account, qr_data) -> httpx.Response:
    return await client.post(
        "/api/v1/checkin/", json={"qrData": qr_data}, headers=account.headers
    )


def next_day(day: date, days: int = 1) -> date:
    return day + timedelta(days=days)
