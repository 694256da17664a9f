"""
Redis caching service for class session listings.

CACHING STRATEGY
================

What we cache:
  - Class session listing responses (paginated, JSON-serialized)
  - Cache key pattern: "classes:list:page={page}&size={size}&upcoming={upcoming}&active={active}"

Why:
  - The schedule listing is the most frequent read in the member app
  - It changes only when sessions are edited or seats move

Invalidation strategy:
  - On session create/update/deactivate: delete all listing keys
  - On any booking, cancellation, promotion or attendance change that moves
    a seat: delete all listing keys (available_seats changed)
  - TTL-based expiry as safety net (5 minutes)

What is NEVER cached:
  - Anything the booking ledger reads; capacity decisions always hit the
    database
  - The roster; it is a live projection of the ledger
"""

import json
from typing import Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation
from app.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

LISTING_PREFIX = "classes:list:"


def _make_listing_key(page: int, page_size: int, upcoming_only: bool, active_only: bool) -> str:
    return f"{LISTING_PREFIX}page={page}&size={page_size}&upcoming={upcoming_only}&active={active_only}"


async def get_cached_sessions(
    page: int,
    page_size: int,
    upcoming_only: bool,
    active_only: bool,
) -> Optional[dict]:
    """Retrieve a cached listing response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_listing_key(page, page_size, upcoming_only, active_only)
    try:
        data = await client.get(key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        return json.loads(data)
    return None


async def set_cached_sessions(
    page: int,
    page_size: int,
    upcoming_only: bool,
    active_only: bool,
    data: dict,
) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_listing_key(page, page_size, upcoming_only, active_only)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_session_cache() -> None:
    """Drop every cached listing page (SCAN on the key prefix)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LISTING_PREFIX}*", count=100):
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
