"""Exception handlers rendering every API error in one envelope.

``{error_code, message, details, request_id}``; ``AppError`` supplies its own code,
other HTTP errors use ``HTTP_ERROR``.
"""

import uuid
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from lms_todo.core.app_exceptions import AppError
from lms_todo.core.config import settings
from lms_todo.core.logging import get_logger

logger = get_logger(__name__)


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Any | None = None
    request_id: str | None = None


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _error(request: Request, status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    body = ErrorResponse(error_code=code, message=message, details=details, request_id=get_request_id(request))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Bad query or path parameters (unknown purpose, non-integer ids, ...)."""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "issue": error.get("msg", "Validation error"),
            "type": error.get("type", "validation_error"),
        }
        for error in exc.errors()
    ]
    return _error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", "Invalid request data", details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc, AppError):
        return _error(request, exc.status_code, exc.code, exc.message, exc.details)
    return _error(request, exc.status_code, "HTTP_ERROR", str(exc.detail))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors; details are hidden in production."""
    request_id = get_request_id(request)
    logger.error(
        "unhandled_exception",
        extra={"event": "unhandled_exception", "request_id": request_id, "error": str(exc)},
        exc_info=exc,
    )
    if settings.ENV == "prod":
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "An internal server error occurred")
    return _error(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", str(exc), {"type": type(exc).__name__}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
