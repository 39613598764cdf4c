"""
Redis cache of booking history, keyed by booking id.

Every call is fail-soft: a Redis outage degrades to reading the ledger. A
deleted booking leaves a tombstone under its key for one TTL, and fills use
SET NX, so a history read that raced the delete cannot repopulate the key.
"""

import json
from uuid import UUID

from loguru import logger
from redis.asyncio import Redis

from workshop.errors import NotFoundError
from workshop.settings import HISTORY_CACHE_TTL, REDIS_URL

_redis: Redis | None = None

_DELETED = "deleted"


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _history_key(booking_id: UUID) -> str:
    return f"booking:{booking_id}:history"


async def get_history_cache(booking_id: UUID) -> list[dict] | None:
    """Cached history events, or None on a miss. Raises NotFoundError on a tombstone."""
    try:
        data = await get_redis().get(_history_key(booking_id))
    except Exception:
        logger.warning("Redis get failed, skipping history cache", exc_info=True)
        return None
    if data is None:
        return None
    if data == _DELETED:
        raise NotFoundError("Booking", booking_id)
    try:
        return json.loads(data)
    except ValueError:
        logger.warning("Discarding unreadable history cache entry: booking_id={}", booking_id)
        return None


async def set_history_cache(booking_id: UUID, events: list[dict]) -> None:
    try:
        stored = await get_redis().set(
            _history_key(booking_id),
            json.dumps(events),
            ex=HISTORY_CACHE_TTL,
            nx=True,
        )
    except Exception:
        logger.warning("Redis set failed, skipping history cache", exc_info=True)
        return
    if not stored:
        logger.debug("History cache already populated: booking_id={}", booking_id)


async def invalidate_history_cache(booking_id: UUID) -> None:
    try:
        await get_redis().delete(_history_key(booking_id))
    except Exception:
        logger.warning("Redis invalidate failed for history cache", exc_info=True)


async def mark_history_deleted(booking_id: UUID) -> None:
    try:
        await get_redis().set(_history_key(booking_id), _DELETED, ex=HISTORY_CACHE_TTL)
    except Exception:
        logger.warning("Redis tombstone write failed for history cache", exc_info=True)
