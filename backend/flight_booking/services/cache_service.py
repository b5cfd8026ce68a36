"""
Redis caching service for flight listings and searches.

CACHING STRATEGY
================

What we cache:
  - Flight listing pages:  "flights:list:page={page}&size={size}"
  - Route/date searches:   "flights:search:{origin}:{destination}:{date}"

Invalidation strategy:
  - Every committed booking, cancellation, seat change, seat block/unblock
    and flight creation deletes all "flights:*" keys after the commit
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

What we never cache:
  - Seats, seat maps, single flights and reservations. The booking path
    always reads seat state from the database.

The cache is fail-open: when Redis is disabled or unreachable every call
degrades to a miss and the database answers.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from flight_booking.core.config import get_settings
from flight_booking.core.logging import get_logger
from flight_booking.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

FLIGHT_KEY_PREFIX = "flights:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def flight_list_key(page: int, page_size: int) -> str:
    return f"{FLIGHT_KEY_PREFIX}list:page={page}&size={page_size}"


def flight_search_key(origin: str, destination: str, departure_date: date) -> str:
    return f"{FLIGHT_KEY_PREFIX}search:{origin.strip().lower()}:{destination.strip().lower()}:{departure_date.isoformat()}"


async def get_cached(key: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached(key: str, data: dict) -> None:
    """Cache a response body with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_flight_cache() -> None:
    """Drop every cached listing and search. Call only after the write has committed."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{FLIGHT_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
