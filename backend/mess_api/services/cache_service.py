"""
Redis caching for the weekly menu read model.

CACHING STRATEGY
================

What we cache:
  - The serialized weekly menu (options with vote counters)
  - Cache key pattern: "menu:weekly:{week_start}"

Why:
  - Every student opens the voting screen many times per week
  - The menu is one small document per week; serving it from Redis avoids a
    join over meal_options on each read

Invalidation strategy:
  - On every accepted vote: delete the key of that vote's week
  - On counter reconciliation: delete the key of the reconciled week
  - TTL-based expiry as safety net

The database stays authoritative. Redis being disabled or unreachable only
means every read goes to the database: cache errors are logged and counted,
never raised.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis

from mess_api.core.config import Settings
from mess_api.core.logging import get_logger
from mess_api.core.metrics import record_cache_operation

logger = get_logger(__name__)


def _make_menu_key(week_start: date) -> str:
    return f"menu:weekly:{week_start.isoformat()}"


class MenuCache:
    def __init__(self, client: Optional[redis.Redis], ttl: int = 300):
        self.client = client
        self.ttl = ttl

    @classmethod
    async def connect(cls, settings: Settings) -> "MenuCache":
        """Build the cache; returns a disabled cache if Redis is off or down."""
        if not settings.REDIS_ENABLED:
            return cls(None, settings.REDIS_CACHE_TTL)

        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return cls(None, settings.REDIS_CACHE_TTL)

        logger.info("redis_connected", url=settings.REDIS_URL)
        return cls(client, settings.REDIS_CACHE_TTL)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def get_menu(self, week_start: date) -> Optional[dict]:
        if not self.client:
            return None

        key = _make_menu_key(week_start)
        try:
            data = await self.client.get(key)
        except redis.RedisError as e:
            record_cache_operation("get", "error")
            logger.error("cache_get_error", key=key, error=str(e))
            return None

        if data:
            record_cache_operation("get", "hit")
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", "miss")
        logger.debug("cache_miss", key=key)
        return None

    async def set_menu(self, week_start: date, data: dict) -> None:
        if not self.client:
            return

        key = _make_menu_key(week_start)
        try:
            await self.client.setex(key, self.ttl, json.dumps(data, default=str))
            record_cache_operation("set", "ok")
        except redis.RedisError as e:
            record_cache_operation("set", "error")
            logger.error("cache_set_error", key=key, error=str(e))

    async def invalidate_menu(self, week_start: date) -> None:
        if not self.client:
            return

        key = _make_menu_key(week_start)
        try:
            await self.client.delete(key)
            record_cache_operation("invalidate", "ok")
            logger.debug("cache_invalidated", key=key)
        except redis.RedisError as e:
            record_cache_operation("invalidate", "error")
            logger.error("cache_invalidation_error", key=key, error=str(e))

    async def stats(self) -> dict:
        """Redis keyspace statistics for the health endpoint."""
        if not self.client:
            return {"status": "disabled"}

        try:
            info = await self.client.info("stats")
        except redis.RedisError as e:
            return {"status": "error", "error": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
