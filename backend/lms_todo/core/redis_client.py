"""Shared Redis connection behind the to-do cache.

Caching is optional: without a reachable Redis every to-do query recomputes. Only
``REDIS_REQUIRED`` turns a missing or unreachable Redis into an error.
"""

import redis
from redis.exceptions import RedisError

from lms_todo.core.config import settings
from lms_todo.core.logging import get_logger

logger = get_logger(__name__)

_client: redis.Redis | None = None
_last_failure: str | None = None


class RedisUnavailableError(RuntimeError):
    """Redis is required by configuration but cannot be used."""


def _connect(url: str) -> redis.Redis:
    client = redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=1,
        socket_timeout=1,
        health_check_interval=30,
    )
    client.ping()
    return client


def _cache_unavailable(reason: str) -> None:
    global _last_failure
    if settings.REDIS_REQUIRED:
        raise RedisUnavailableError(reason)
    # Logged once per distinct failure; callers retry on every cache access.
    if reason != _last_failure:
        logger.warning("todo_cache_unavailable", extra={"event": "todo_cache_unavailable", "reason": reason})
        _last_failure = reason


def get_redis_client() -> redis.Redis | None:
    """The shared client, or None while caching is disabled or Redis is unreachable."""
    global _client, _last_failure
    if not settings.REDIS_ENABLED:
        return None
    if _client is not None:
        return _client
    if not settings.REDIS_URL:
        _cache_unavailable("REDIS_URL is not set")
        return None
    try:
        _client = _connect(settings.REDIS_URL)
    except RedisError as e:
        _cache_unavailable(str(e))
        return None
    _last_failure = None
    logger.info("todo_cache_connected", extra={"event": "todo_cache_connected"})
    return _client


def is_redis_available() -> bool:
    client = get_redis_client()
    if client is None:
        return False
    try:
        return bool(client.ping())
    except RedisError:
        return False


def init_redis() -> None:
    """Connect at startup so a required Redis fails the boot rather than the first request."""
    get_redis_client()
