"""
Redis caching for event listings.

CACHING STRATEGY
================

What we cache:
  - Public event listing responses (paginated, JSON-serialized)
  - Key pattern: "events:list:page={page}&size={size}&q={keyword}"

What we never cache:
  - Single events and anything the booking workflow reads. Seat counts
    must come from the database row that the optimistic lock protects.

Invalidation:
  - Any booking, event create/update or retirement deletes every
    "events:list:*" key (SCAN + DEL); the TTL is only a safety net.

Redis is optional. When it is disabled or unreachable every call degrades
to a cache miss, and reconnect attempts are spaced out so a dead Redis does
not add a connect timeout to each request.
"""

import json
import time
from typing import Optional

import redis.asyncio as redis
from eventbooking.core.config import get_settings
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "events:list:"
RECONNECT_COOLDOWN_SECONDS = 30.0

_redis_client: Optional[redis.Redis] = None
_last_failure: Optional[float] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client, _last_failure

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is not None:
        return _redis_client

    if _last_failure is not None and time.monotonic() - _last_failure < RECONNECT_COOLDOWN_SECONDS:
        return None

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    try:
        await client.ping()
    except redis.RedisError as e:
        _last_failure = time.monotonic()
        logger.error("redis_connection_failed", error=str(e))
        await client.aclose()
        return None

    _redis_client = client
    _last_failure = None
    logger.info("redis_connected")
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(page: int, page_size: int, keyword: Optional[str]) -> str:
    normalized = (keyword or "").strip().lower()
    return f"{LIST_KEY_PREFIX}page={page}&size={page_size}&q={normalized}"


async def get_cached_events(page: int, page_size: int, keyword: Optional[str]) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = make_event_list_key(page, page_size, keyword)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_events(page: int, page_size: int, keyword: Optional[str], data: dict) -> None:
    """Cache event list response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = make_event_list_key(page, page_size, keyword)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis hit/miss statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled" if not settings.REDIS_ENABLED else "unavailable"}

    try:
        info = await client.info("stats")
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
