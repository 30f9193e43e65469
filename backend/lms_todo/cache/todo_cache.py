"""Read-through cache for per-user to-do queries.

Entries are keyed by the user's *batch token*. Bumping the token moves the user to
a fresh key space, which invalidates every cached to-do list of that user in one
write; the orphaned entries simply expire by TTL.

Duplicate recomputation on concurrent misses is tolerated.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from lms_todo.cache.helpers import todo_batch_key, todo_list_key
from lms_todo.cache.redis import get_json, get_or_init_token, set_json, set_token
from lms_todo.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Must outlive the longest to-do TTL; an expired token only causes a recompute.
BATCH_TOKEN_TTL_SECONDS = 7 * 24 * 3600


def current_batch_token(user_global_id: int) -> str | None:
    return get_or_init_token(todo_batch_key(user_global_id), uuid.uuid4().hex, BATCH_TOKEN_TTL_SECONDS)


def bump_batch_token(user_global_id: int) -> None:
    """Invalidate every cached to-do entry of the user."""
    if set_token(todo_batch_key(user_global_id), uuid.uuid4().hex, BATCH_TOKEN_TTL_SECONDS):
        logger.info("todo_batch_token_bumped", extra={"event": "todo_batch_token_bumped", "user_id": user_global_id})


def fetch_or_compute(
    user_global_id: int,
    object_kind: str,
    purpose: str,
    context_ids: Iterable[int],
    params: dict[str, Any],
    ttl_seconds: int,
    compute: Callable[[], T],
    dumps: Callable[[T], Any],
    loads: Callable[[Any], T],
) -> T:
    """
    Return the cached result for this query, computing and storing it on a miss.

    Args:
        user_global_id: Global id of the user the list belongs to
        object_kind: Learning object kind (e.g. "Assignment")
        purpose: To-do purpose (e.g. "grading")
        context_ids: Resolved context ids; order does not matter
        params: Query parameters; key order does not matter
        ttl_seconds: Lifetime of a stored entry
        compute: Produces the result on a miss (called at most once)
        dumps: Converts the result to a JSON-compatible value
        loads: Rebuilds the result from the stored value

    Returns:
        The cached or freshly computed result.
    """
    token = current_batch_token(user_global_id)
    if token is None:
        # Cache unavailable: fail open.
        return compute()

    key = todo_list_key(user_global_id, token, object_kind, purpose, context_ids, params)
    cached = get_json(key)
    if cached is not None:
        return loads(cached)

    result = compute()
    set_json(key, dumps(result), ttl_seconds)
    return result
