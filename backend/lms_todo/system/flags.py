"""System flags accessor with caching for non-blocking reads."""

import threading
from datetime import datetime, timedelta
from typing import Literal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms_todo.common.clock import utcnow
from lms_todo.core.config import settings
from lms_todo.core.logging import get_logger
from lms_todo.models.system_flags import SystemFlag

logger = get_logger(__name__)

DISABLE_NEEDS_GRADING_QUERIES = "DISABLE_NEEDS_GRADING_QUERIES"

# Per-process cache keyed by (shard_id, flag key)
_cache_lock = threading.Lock()
_cache: dict[tuple[int, str], dict] = {}


def _shard_key(db: Session, key: str) -> tuple[int, str]:
    return (db.info.get("shard_id", settings.DEFAULT_SHARD_ID), key)


def _is_cache_fresh(cache_key: tuple[int, str], now: datetime) -> bool:
    with _cache_lock:
        entry = _cache.get(cache_key)
        if not entry:
            return False
        return now - entry["last_checked_at"] < timedelta(seconds=settings.SYSTEM_FLAGS_CACHE_TTL_SECONDS)


def _get_from_db(db: Session, key: str) -> SystemFlag | None:
    """Read flag from database (may fail)."""
    try:
        return db.query(SystemFlag).filter(SystemFlag.key == key).first()
    except SQLAlchemyError as e:
        logger.warning(f"Failed to read system flag {key} from DB: {e}")
        return None


def _update_cache(cache_key: tuple[int, str], flag: SystemFlag | None, source: Literal["db", "fallback"]) -> None:
    with _cache_lock:
        _cache[cache_key] = {
            "value": flag.value if flag else False,
            "last_checked_at": utcnow(),
            "reason": flag.reason if flag else None,
            "source": source,
        }


def get_flag_cached(db: Session, key: str) -> bool:
    """
    Cached flag read for the shard ``db`` belongs to.

    Falls back to the last known value (default False) when the DB read fails.
    Never raises.
    """
    cache_key = _shard_key(db, key)
    if _is_cache_fresh(cache_key, utcnow()):
        with _cache_lock:
            return _cache[cache_key]["value"]
    flag = _get_from_db(db, key)
    if flag is not None:
        _update_cache(cache_key, flag, "db")
        return flag.value
    with _cache_lock:
        entry = _cache.get(cache_key)
    if entry is None:
        _update_cache(cache_key, None, "fallback")
        return False
    return entry["value"]


def needs_grading_queries_disabled(db: Session) -> bool:
    """Kill switch for the needs-grading queries (settings override or shard flag)."""
    if settings.DISABLE_NEEDS_GRADING_QUERIES:
        return True
    return get_flag_cached(db, DISABLE_NEEDS_GRADING_QUERIES)


def set_flag(db: Session, key: str, value: bool, reason: str | None = None) -> SystemFlag:
    """
    Set system flag value and refresh the cache for immediate consistency.

    Args:
        db: Session of the shard the flag applies to
        key: Flag key (e.g., "DISABLE_NEEDS_GRADING_QUERIES")
        value: New value
        reason: Reason for the change
    """
    flag = db.query(SystemFlag).filter(SystemFlag.key == key).first()
    if flag:
        flag.value = value
        flag.reason = reason
        flag.updated_at = utcnow()
    else:
        flag = SystemFlag(key=key, value=value, reason=reason)
        db.add(flag)
    db.commit()

    _update_cache(_shard_key(db, key), flag, "db")
    logger.info(
        "system_flag_set",
        extra={"event": "system_flag_set", "key": key, "value": value, "reason": reason},
    )
    return flag


def clear_flag_cache() -> None:
    with _cache_lock:
        _cache.clear()
