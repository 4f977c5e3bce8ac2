"""
Tests for the waste rating gate: only attended meals, only once, 1..5.
"""

import pytest
from httpx import AsyncClient

from conftest import book, get_points, scan


async def _checked_in_booking(client: AsyncClient, student, staff) -> dict:
    booking = (await book(client, student)).json()
    assert (await scan(client, staff, booking["qr_payload"])).status_code == 200
    return booking


async def _rate(client: AsyncClient, account, booking_id: str, rating):
    return await client.post(
        f"/api/v1/bookings/{booking_id}/waste-rating",
        json={"rating": rating},
        headers=account.headers,
    )


@pytest.mark.asyncio
async def test_rate_attended_meal(client: AsyncClient, student, staff):
    booking = await _checked_in_booking(client, student, staff)

    response = await _rate(client, student, booking["id"], 2)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["waste_rating"] == 2

    listed = (await client.get("/api/v1/bookings/", headers=student.headers)).json()
    assert listed[0]["waste_rated"] is True
    assert listed[0]["waste_rating"] == 2

    # +10 +15 +2
    assert await get_points(client, student) == 27


@pytest.mark.asyncio
async def test_rate_twice(client: AsyncClient, student, staff):
    booking = await _checked_in_booking(client, student, staff)
    await _rate(client, student, booking["id"], 3)

    response = await _rate(client, student, booking["id"], 1)
    assert response.status_code == 409
    assert response.json()["detail"] == "Waste rating already submitted for this meal"

    assert await get_points(client, student) == 27


@pytest.mark.asyncio
async def test_rate_before_checkin(client: AsyncClient, student):
    booking = (await book(client, student)).json()

    response = await _rate(client, student, booking["id"], 3)
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"
    assert await get_points(client, student) == 10


@pytest.mark.asyncio
async def test_rate_cancelled_booking(client: AsyncClient, student):
    booking = (await book(client, student)).json()
    await client.delete(f"/api/v1/bookings/{booking['id']}", headers=student.headers)

    response = await _rate(client, student, booking["id"], 3)
    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, -1])
async def test_rate_out_of_range(client: AsyncClient, student, staff, rating):
    booking = await _checked_in_booking(client, student, staff)

    response = await _rate(client, student, booking["id"], rating)
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"

    # A valid rating is still accepted afterwards
    assert (await _rate(client, student, booking["id"], 5)).status_code == 200


@pytest.mark.asyncio
async def test_rate_someone_elses_booking(client: AsyncClient, student, other_student, staff):
    booking = await _checked_in_booking(client, student, staff)

    response = await _rate(client, other_student, booking["id"], 3)
    assert response.status_code == 404
