"""Liveness and readiness of the to-do service."""

from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from lms_todo.core.config import settings
from lms_todo.core.errors import get_request_id
from lms_todo.core.logging import get_logger
from lms_todo.core.redis_client import is_redis_available
from lms_todo.db.session import get_shards
from lms_todo.db.shards import ShardSessions

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])

Status = Literal["ok", "degraded", "down"]
_RANK = {"ok": 0, "degraded": 1, "down": 2}


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    status: Status
    message: str | None = None


class ReadinessResponse(BaseModel):
    status: Status
    checks: dict[str, ReadinessCheck]
    request_id: str


def _check_shard(shards: ShardSessions, shard_id: int) -> ReadinessCheck:
    try:
        shards.session_for(shard_id).execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(
            "shard_unreachable", extra={"event": "shard_unreachable", "shard_id": shard_id, "error": str(e)}
        )
        return ReadinessCheck(status="down", message=f"Shard {shard_id} unreachable")
    return ReadinessCheck(status="ok")


def _check_todo_cache() -> ReadinessCheck:
    """Without Redis the to-do lists are recomputed per request, so a lost cache only degrades."""
    if not settings.REDIS_ENABLED:
        return ReadinessCheck(status="ok", message="Caching disabled")
    if is_redis_available():
        return ReadinessCheck(status="ok")
    return ReadinessCheck(
        status="down" if settings.REDIS_REQUIRED else "degraded",
        message="To-do cache unavailable",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse()


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check(request: Request, shards: ShardSessions = Depends(get_shards)) -> ReadinessResponse:
    """Every shard must answer; the to-do cache is optional unless ``REDIS_REQUIRED``."""
    checks = {f"shard_{shard_id}": _check_shard(shards, shard_id) for shard_id in shards.registry.shard_ids}
    checks["todo_cache"] = _check_todo_cache()
    overall = max((check.status for check in checks.values()), key=_RANK.__getitem__)
    return ReadinessResponse(status=overall, checks=checks, request_id=get_request_id(request))
