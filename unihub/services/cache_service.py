"""
Redis caching service for poster listings.

CACHING STRATEGY
================

What we cache:
  - Poster listing responses (paginated, JSON-serialized)
  - Cache key pattern: "posters:list:page={page}&size={size}&club={club_id}"

What we never cache:
  - Single posters and anything the seat ledger reads. Booking decisions are
    made by the conditional UPDATE in seat_ledger against the database row,
    so a stale listing can only show an outdated seats_left, never oversell.

Invalidation strategy:
  - Any seat ledger move (book, reject, delete) and any poster create/update/
    delete drops every "posters:list:*" key
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

Redis is optional: disabled or unreachable Redis means every call is a miss
and invalidation is a no-op. Cache errors are logged, never raised.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from unihub.core.config import get_settings
from unihub.core.logging import get_logger
from unihub.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_PREFIX = "posters:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_list_key(page: int, page_size: int, club_id: Optional[int]) -> str:
    return f"{LIST_PREFIX}page={page}&size={page_size}&club={club_id if club_id is not None else 'all'}"


async def get_cached_posters(page: int, page_size: int, club_id: Optional[int]) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_list_key(page, page_size, club_id)
    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    return json.loads(data) if data else None


async def set_cached_posters(page: int, page_size: int, club_id: Optional[int], data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_list_key(page, page_size, club_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_poster_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
