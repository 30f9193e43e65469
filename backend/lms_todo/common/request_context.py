"""Request-scoped context for the to-do API.

Each request carries its id, the acting user and the shards its to-do queries fanned
out to; the access log line written when the request finishes includes all three.
"""

from __future__ import annotations

import contextvars
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from lms_todo.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestContext:
    request_id: str
    user_id: int | None = None
    shard_ids: set[int] = field(default_factory=set)
    fan_outs: int = 0
    started: float = field(default_factory=time.perf_counter)

    def log_fields(self, request: Request) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "method": request.method,
            "path": request.url.path,
            "user_id": self.user_id,
            "shards": sorted(self.shard_ids),
            "fan_outs": self.fan_outs,
            "latency_ms": int((time.perf_counter() - self.started) * 1000),
        }


# Holds a mutable RequestContext so updates made in threadpool-run endpoints stay visible.
request_context_var: contextvars.ContextVar[RequestContext | None] = contextvars.ContextVar(
    "request_context", default=None
)


def current_request_context() -> RequestContext | None:
    return request_context_var.get()


def record_user(user_global_id: int) -> None:
    ctx = request_context_var.get()
    if ctx is not None:
        ctx.user_id = user_global_id


def record_fan_out(shard_ids: Iterable[int]) -> None:
    """Count one cross-shard query and remember the shards it ran on."""
    ctx = request_context_var.get()
    if ctx is not None:
        ctx.fan_outs += 1
        ctx.shard_ids.update(shard_ids)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign the request id and write one access log line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        ctx = RequestContext(request_id=request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4()))
        request.state.request_id = ctx.request_id
        token = request_context_var.set(ctx)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", extra={"event": "request_failed", **ctx.log_fields(request)})
            raise
        finally:
            request_context_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = ctx.request_id
        logger.info(
            "request_completed",
            extra={"event": "request_completed", "status_code": response.status_code, **ctx.log_fields(request)},
        )
        return response
