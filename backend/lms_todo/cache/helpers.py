"""Cache key helpers."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def context_ids_digest(context_ids: Iterable[int]) -> str:
    return _sha256("/".join(str(i) for i in sorted(context_ids)))


def params_digest(params: dict[str, Any]) -> str:
    # Sorted keys keep the digest independent of argument order.
    return _sha256(json.dumps(params, sort_keys=True, separators=(",", ":"), default=str))


def todo_batch_key(user_global_id: int) -> str:
    return f"todo:batch:{user_global_id}"


def todo_list_key(
    user_global_id: int,
    batch_token: str,
    object_kind: str,
    purpose: str,
    context_ids: Iterable[int],
    params: dict[str, Any],
) -> str:
    return ":".join(
        [
            "todo",
            str(user_global_id),
            batch_token,
            f"{object_kind}_needing_{purpose}",
            context_ids_digest(context_ids),
            params_digest(params),
        ]
    )
