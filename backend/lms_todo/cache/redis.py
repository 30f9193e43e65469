"""Redis cache helpers (fail-open).

- Any Redis error must NOT break to-do computation; callers recompute instead.
- Every key written here carries a TTL.
"""

from __future__ import annotations

import json
from typing import Any

from redis.exceptions import RedisError

from lms_todo.core.logging import get_logger
from lms_todo.core.redis_client import get_redis_client

logger = get_logger(__name__)


def get_json(key: str) -> Any | None:
    client = get_redis_client()
    if client is None:
        return None
    try:
        raw = client.get(key)
        if not raw:
            return None
        return json.loads(raw)
    except (RedisError, ValueError) as e:
        logger.warning("redis_get_json_failed", extra={"event": "redis_get_json_failed", "key": key, "error": str(e)})
        return None


def set_json(key: str, value: Any, ttl_seconds: int) -> bool:
    client = get_redis_client()
    if client is None:
        return False
    try:
        client.setex(key, int(ttl_seconds), json.dumps(value))
        return True
    except (RedisError, TypeError) as e:
        logger.warning("redis_set_json_failed", extra={"event": "redis_set_json_failed", "key": key, "error": str(e)})
        return False


def get_or_init_token(key: str, new_token: str, ttl_seconds: int) -> str | None:
    """Return the token stored at ``key``, storing ``new_token`` first if none exists."""
    client = get_redis_client()
    if client is None:
        return None
    try:
        client.set(key, new_token, nx=True, ex=int(ttl_seconds))
        return client.get(key)
    except RedisError as e:
        logger.warning("redis_get_token_failed", extra={"event": "redis_get_token_failed", "key": key, "error": str(e)})
        return None


def set_token(key: str, token: str, ttl_seconds: int) -> bool:
    client = get_redis_client()
    if client is None:
        return False
    try:
        client.set(key, token, ex=int(ttl_seconds))
        return True
    except RedisError as e:
        logger.warning("redis_set_token_failed", extra={"event": "redis_set_token_failed", "key": key, "error": str(e)})
        return False
