"""
Redis cache for the workshop schedule listing.

Parents browse the schedule far more often than anyone books, so each listing
page is stored as the JSON body the endpoint returns. Keys carry a generation
number:

    activities:list:g{generation}:p{page}:s{page_size}:u{0|1}

Invalidation bumps the generation with a single INCR, so every page written
under the old generation stops being read at once and ages out by TTL. No key
scan is needed and a reader racing an invalidation can at worst write a page
nobody will look up.

Workshop detail is never cached; the sign-up view needs the occupancy written
by the last commit.

Redis is advisory. Every operation fails open: errors are logged and the caller
falls back to the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from workshop_booking.core.config import Settings, get_settings
from workshop_booking.core.logging import get_logger
from workshop_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)

GENERATION_KEY = "activities:list:generation"


class ListingCache:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return self._settings.REDIS_ENABLED

    async def connect(self) -> Optional[redis.Redis]:
        """Return a live client, connecting lazily. None when disabled or unreachable."""
        if not self.enabled:
            return None
        if self._client is not None:
            return self._client

        client = redis.from_url(
            self._settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error("redis_connection_failed", url=self._settings.REDIS_URL, error=str(e))
            await client.aclose()
            return None

        logger.info("redis_connected", url=self._settings.REDIS_URL)
        self._client = client
        return client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _key(generation: int, page: int, page_size: int, upcoming_only: bool) -> str:
        return f"activities:list:g{generation}:p{page}:s{page_size}:u{int(upcoming_only)}"

    async def _generation(self, client: redis.Redis) -> int:
        value = await client.get(GENERATION_KEY)
        return int(value) if value else 0

    async def get_listing(self, page: int, page_size: int, upcoming_only: bool) -> Optional[dict]:
        client = await self.connect()
        if client is None:
            return None

        try:
            key = self._key(await self._generation(client), page, page_size, upcoming_only)
            data = await client.get(key)
        except RedisError as e:
            logger.error("cache_get_error", error=str(e))
            return None

        record_cache_operation("get", "miss" if data is None else "hit")
        if data is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return json.loads(data)

    async def set_listing(self, page: int, page_size: int, upcoming_only: bool, data: dict) -> None:
        client = await self.connect()
        if client is None:
            return

        ttl = self._settings.REDIS_CACHE_TTL
        try:
            key = self._key(await self._generation(client), page, page_size, upcoming_only)
            await client.setex(key, ttl, json.dumps(data, default=str))
        except RedisError as e:
            logger.error("cache_set_error", error=str(e))
            return
        record_cache_operation("set", "ok")
        logger.debug("cache_set", key=key, ttl=ttl)

    async def invalidate(self) -> None:
        """Retire every cached listing page. Called after any write that moves occupancy."""
        client = await self.connect()
        if client is None:
            return

        try:
            generation = await client.incr(GENERATION_KEY)
        except RedisError as e:
            logger.error("cache_invalidation_error", error=str(e))
            return
        record_cache_operation("invalidate", "ok")
        logger.info("cache_invalidated", generation=generation)

    async def stats(self) -> dict:
        client = await self.connect()
        if client is None:
            return {"status": "disabled"}

        try:
            info = await client.info("stats")
            generation = await self._generation(client)
        except RedisError as e:
            return {"status": "error", "error": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "generation": generation,
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }


listing_cache = ListingCache(get_settings())
