"""
Tests for the AI collaborators: retry on rate limiting only, image fallback.
"""

import httpx
import pytest
from httpx import AsyncClient

from conftest import advice_reply
from mess_api.core.exceptions import UpstreamUnavailableError
from mess_api.services.ai_service import NutritionAdvisor

PLACEHOLDER = "https://placehold.co/400x400/374151/FFFFFF"


def _advisor(handler, **kwargs) -> NutritionAdvisor:
    options = {
        "api_key": "test-key",
        "model": "test-model",
        "base_url": "https://ai.test/v1beta",
        "base_delay": 0,
        "placeholder_url": PLACEHOLDER,
        "transport": httpx.MockTransport(handler),
    }
    options.update(kwargs)
    return NutritionAdvisor(**options)


class _Upstream:
    """Replays a fixed sequence of (status, json) replies and records requests."""

    def __init__(self, *replies: tuple):
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, payload = self.replies[min(len(self.requests), len(self.replies)) - 1]
        return httpx.Response(status, json=payload)


@pytest.mark.asyncio
async def test_advice_success():
    upstream = _Upstream((200, advice_reply("Drink water.")))
    advisor = _advisor(upstream)
    try:
        assert await advisor.get_advice("hydration?") == "Drink water."
    finally:
        await advisor.close()

    request = upstream.requests[0]
    assert request.url.path == "/v1beta/models/test-model:generateContent"
    assert request.url.params["key"] == "test-key"


@pytest.mark.asyncio
async def test_advice_retries_rate_limit_then_succeeds():
    upstream = _Upstream(
        (429, None),
        (429, None),
        (200, advice_reply("Eat protein.")),
    )
    advisor = _advisor(upstream)
    try:
        assert await advisor.get_advice("protein?") == "Eat protein."
    finally:
        await advisor.close()
    assert len(upstream.requests) == 3


@pytest.mark.asyncio
async def test_advice_gives_up_after_three_rate_limits():
    upstream = _Upstream((429, None))
    advisor = _advisor(upstream)
    try:
        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await advisor.get_advice("anything")
    finally:
        await advisor.close()
    assert exc_info.value.status_code == 503
    assert len(upstream.requests) == 3


@pytest.mark.asyncio
async def test_advice_backoff_doubles(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("mess_api.services.ai_service.asyncio.sleep", fake_sleep)
    upstream = _Upstream((429, None))
    advisor = _advisor(upstream, base_delay=1.0)
    try:
        with pytest.raises(UpstreamUnavailableError):
            await advisor.get_advice("anything")
    finally:
        await advisor.close()
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_advice_server_error_not_retried():
    upstream = _Upstream((500, None), (200, advice_reply("late")))
    advisor = _advisor(upstream)
    try:
        with pytest.raises(UpstreamUnavailableError):
            await advisor.get_advice("anything")
    finally:
        await advisor.close()
    assert len(upstream.requests) == 1


@pytest.mark.asyncio
async def test_advice_empty_reply():
    upstream = _Upstream((200, {"candidates": []}))
    advisor = _advisor(upstream)
    try:
        with pytest.raises(UpstreamUnavailableError):
            await advisor.get_advice("anything")
    finally:
        await advisor.close()


@pytest.mark.asyncio
async def test_advice_without_api_key_makes_no_call():
    upstream = _Upstream((200, advice_reply("unused")))
    advisor = _advisor(upstream, api_key="")
    try:
        with pytest.raises(UpstreamUnavailableError):
            await advisor.get_advice("anything")
    finally:
        await advisor.close()
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_image_placeholder_when_not_configured():
    advisor = _advisor(_Upstream((500, None)))
    try:
        url = await advisor.get_meal_image("Paneer butter masala with naan and salad")
    finally:
        await advisor.close()
    assert url == f"{PLACEHOLDER}?text=Paneer%20butter%20masala%20with%20naan"


@pytest.mark.asyncio
async def test_image_falls_back_on_upstream_failure():
    upstream = _Upstream((500, None))
    advisor = _advisor(upstream, image_api_url="https://images.test/generate")
    try:
        url = await advisor.get_meal_image("Idli/Sambar")
    finally:
        await advisor.close()
    assert len(upstream.requests) == 1
    assert url == f"{PLACEHOLDER}?text=Idli%2FSambar"


@pytest.mark.asyncio
async def test_image_uses_generated_url():
    upstream = _Upstream((200, {"url": "https://images.test/dosa.png"}))
    advisor = _advisor(upstream, image_api_url="https://images.test/generate")
    try:
        assert await advisor.get_meal_image("Dosa") == "https://images.test/dosa.png"
    finally:
        await advisor.close()


@pytest.mark.asyncio
async def test_advice_endpoint(client: AsyncClient, student):
    response = await client.get(
        "/api/v1/nutrition/advice", params={"prompt": "What should I eat?"}, headers=student.headers
    )
    assert response.status_code == 200
    assert response.json() == {"advice": "Eat more greens."}


@pytest.mark.asyncio
async def test_advice_endpoint_requires_prompt(client: AsyncClient, student):
    response = await client.get("/api/v1/nutrition/advice", headers=student.headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_image_endpoint(client: AsyncClient, student):
    response = await client.post(
        "/api/v1/meals/generate-image", json={"prompt": "Dal"}, headers=student.headers
    )
    assert response.status_code == 200
    assert response.json()["image_url"].endswith("?text=Dal")
