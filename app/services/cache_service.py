"""
Fingerprint-keyed read cache for availability and booking lists.

Disabled unless CACHE_ENABLED. Cache trouble is a miss, never a failed request.
"""

import hashlib
import json
import logging

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


def get_client() -> redis.Redis | None:
    global _client
    if not settings.CACHE_ENABLED:
        return None
    if _client is None:
        _client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def fingerprint(params: dict) -> str:
    raw = json.dumps(params, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


def availability_key(listing_id: str, params: dict) -> str:
    return f"availability:{listing_id}:{fingerprint(params)}"


def user_bookings_key(user_id: str, params: dict) -> str:
    return f"bookings:user:{user_id}:{fingerprint(params)}"


def get_json(key: str):
    client = get_client()
    if client is None:
        return None
    try:
        raw = client.get(key)
    except redis.RedisError as e:
        logger.warning("cache get failed for %s: %s", key, e)
        return None
    return json.loads(raw) if raw else None


def set_json(key: str, value, ttl: int | None = None) -> None:
    client = get_client()
    if client is None:
        return
    try:
        client.set(key, json.dumps(value, default=str), ex=ttl or settings.CACHE_TTL_SECONDS)
    except redis.RedisError as e:
        logger.warning("cache set failed for %s: %s", key, e)


def delete_pattern(pattern: str) -> int:
    client = get_client()
    if client is None:
        return 0
    try:
        keys = list(client.scan_iter(match=pattern, count=200))
        if keys:
            client.delete(*keys)
        return len(keys)
    except redis.RedisError as e:
        logger.warning("cache purge failed for %s: %s", pattern, e)
        return 0


def invalidate_booking_views(listing_ids, user_ids) -> None:
    """Purge availability of every touched listing and the booking lists of every touched user."""
    for listing_id in set(listing_ids):
        delete_pattern(f"availability:{listing_id}:*")
    for user_id in set(user_ids):
        delete_pattern(f"bookings:user:{user_id}:*")
