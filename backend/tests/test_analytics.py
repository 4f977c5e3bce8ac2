"""
Tests for the admin analytics aggregation.
"""

import pytest
from httpx import AsyncClient

from conftest import WEEK_DAY, WEEK_START, book, next_day, scan


async def _vote(client: AsyncClient, account, day: str, category: str, option_id: str) -> None:
    response = await client.post("/api/v1/votes", json={
        "week_start": WEEK_START.isoformat(),
        "day": day,
        "meal_type": "lunch",
        "category": category,
        "option_id": option_id,
    }, headers=account.headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_analytics_aggregates_week(client: AsyncClient, student, staff, admin):
    attended = (await book(client, student, meal_type="lunch")).json()
    await scan(client, staff, attended["qr_payload"])
    await client.post(
        f"/api/v1/bookings/{attended['id']}/waste-rating",
        json={"rating": 4},
        headers=student.headers,
    )
    cancelled = (await book(client, student, meal_type="dinner")).json()
    await client.delete(f"/api/v1/bookings/{cancelled['id']}", headers=student.headers)
    await book(client, student, booking_date=next_day(WEEK_DAY))

    await _vote(client, student, "Monday", "main", "rajma")
    await _vote(client, student, "Tuesday", "main", "rajma")
    await _vote(client, student, "Monday", "bread", "roti")

    response = await client.get(
        "/api/v1/admin/analytics", params={"week": WEEK_DAY.isoformat()}, headers=admin.headers
    )
    assert response.status_code == 200
    data = response.json()

    assert data["week_start"] == WEEK_START.isoformat()
    assert data["total_users"] == 3
    assert data["total_bookings"] == 3
    assert data["checked_in"] == 1
    assert data["cancellation_rate"] == 33.3
    assert data["avg_waste_rating"] == 4.0
    assert data["waste_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 0}

    popular = [(m["id"], m["name"], m["votes"]) for m in data["popular_meals"]]
    assert popular == [("rajma", "Rajma Chawal", 2), ("roti", "Roti", 1)]

    participation = {d["day"]: (d["votes"], d["bookings"]) for d in data["weekly_participation"]}
    assert list(participation) == [
        "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    ]
    assert participation["Monday"] == (2, 0)
    assert participation["Tuesday"] == (1, 0)
    assert participation["Wednesday"] == (0, 1)
    assert participation["Thursday"] == (0, 1)


@pytest.mark.asyncio
async def test_analytics_empty(client: AsyncClient, admin):
    response = await client.get("/api/v1/admin/analytics", headers=admin.headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_bookings"] == 0
    assert data["cancellation_rate"] == 0.0
    assert data["avg_waste_rating"] is None
    assert data["popular_meals"] == []


@pytest.mark.asyncio
async def test_analytics_requires_admin(client: AsyncClient, student, staff):
    for account in (student, staff):
        response = await client.get("/api/v1/admin/analytics", headers=account.headers)
        assert response.status_code == 403
