"""To-do service application: shard registry, cache connection and API routes."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from lms_todo.api.v1.router import api_router
from lms_todo.common.request_context import RequestContextMiddleware
from lms_todo.core.config import settings
from lms_todo.core.errors import register_exception_handlers
from lms_todo.core.logging import get_logger, setup_logging
from lms_todo.core.redis_client import init_redis
from lms_todo.db.base import Base
from lms_todo.db.session import get_registry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    registry = get_registry()
    init_redis()
    if settings.ENV == "dev":
        for engine in registry.engines.values():
            Base.metadata.create_all(bind=engine)
    logger.info(
        "todo_service_started",
        extra={
            "event": "todo_service_started",
            "env": settings.ENV,
            "shards": registry.shard_ids,
            "default_shard": registry.default_shard_id,
        },
    )
    yield
    for engine in registry.engines.values():
        engine.dispose()
    logger.info("todo_service_stopped", extra={"event": "todo_service_stopped"})


def create_app() -> FastAPI:
    docs = settings.ENV != "prod"
    app = FastAPI(
        title="LMS To-Do API",
        version="1.0.0",
        description="Cross-shard to-do lists for an LMS",
        openapi_url="/openapi.json" if docs else None,
        docs_url="/docs" if docs else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
