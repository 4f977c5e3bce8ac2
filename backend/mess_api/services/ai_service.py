"""
AI collaborators: nutrition advice (Gemini) and meal images.

RETRY POLICY
============

Only rate limiting is retried. A 429 from the advice endpoint is retried
with exponential backoff, ``base_delay * 2**attempt`` between attempts
(1s, 2s with the defaults), for at most ``max_attempts`` attempts in total.
Any other failure (other HTTP status, transport error, empty reply) is
surfaced immediately as UpstreamUnavailableError; nothing is retried and
nothing is persisted.

Images are best effort: when no image backend is configured or it fails, a
placeholder URL carrying the prompt is returned instead.
"""

import asyncio
import time
from typing import Optional
from urllib.parse import quote

import httpx

from mess_api.core.config import Settings
from mess_api.core.exceptions import UpstreamUnavailableError
from mess_api.core.logging import get_logger
from mess_api.core.metrics import ai_latency, record_ai_request

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "Act as a friendly, expert university nutritionist specializing in balanced "
    "student diets. Provide practical advice tailored to the user's query. "
    "Keep the response concise and easy to understand."
)


class NutritionAdvisor:
    """HTTP client for the advice and image services, one pooled connection set."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: float = 30.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        image_api_url: str = "",
        placeholder_url: str = "https://placehold.co/400x400/374151/FFFFFF",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.image_api_url = image_api_url
        self.placeholder_url = placeholder_url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "NutritionAdvisor":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_attempts=settings.AI_MAX_ATTEMPTS,
            base_delay=settings.AI_RETRY_BASE_DELAY,
            image_api_url=settings.IMAGE_API_URL,
            placeholder_url=settings.IMAGE_PLACEHOLDER_URL,
        )

    async def close(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    @property
    def advice_url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def get_advice(self, prompt: str) -> str:
        if not self.api_key:
            raise UpstreamUnavailableError("Nutrition advice is not configured", reason="missing_api_key")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
        }

        start = time.perf_counter()
        try:
            for attempt in range(self.max_attempts):
                try:
                    response = await self._client.post(
                        self.advice_url, params={"key": self.api_key}, json=payload
                    )
                except httpx.HTTPError as e:
                    record_ai_request("error")
                    raise UpstreamUnavailableError(
                        "Failed to generate advice", reason="transport", error=str(e)
                    ) from e

                if response.status_code == 429:
                    record_ai_request("rate_limited")
                    if attempt == self.max_attempts - 1:
                        break
                    delay = self.base_delay * (2 ** attempt)
                    logger.info("ai_rate_limited_retry", attempt=attempt + 1, delay=delay)
                    await asyncio.sleep(delay)
                    continue

                if response.is_error:
                    record_ai_request("error")
                    raise UpstreamUnavailableError(
                        "Failed to generate advice", reason="status", status=response.status_code
                    )

                try:
                    text = _extract_text(response.json())
                except ValueError:
                    text = None
                if not text:
                    record_ai_request("error")
                    raise UpstreamUnavailableError("Failed to generate advice", reason="empty_reply")

                record_ai_request("success")
                return text
        finally:
            ai_latency.observe(time.perf_counter() - start)

        raise UpstreamUnavailableError(
            "Nutrition advice is busy, please try again later",
            reason="rate_limited",
            attempts=self.max_attempts,
        )

    def placeholder_image(self, prompt: str) -> str:
        text = quote(prompt[:30], safe="")
        return f"{self.placeholder_url}?text={text}"

    async def get_meal_image(self, prompt: str) -> str:
        if not self.image_api_url:
            return self.placeholder_image(prompt)
        try:
            response = await self._client.post(self.image_api_url, json={"prompt": prompt})
            response.raise_for_status()
            url = response.json().get("url")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("image_generation_failed", error=str(e))
            return self.placeholder_image(prompt)
        return url or self.placeholder_image(prompt)


def _extract_text(data: dict) -> Optional[str]:
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
