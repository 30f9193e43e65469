"""Errors raised by the to-do endpoints, rendered in the error envelope."""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """HTTP error carrying a machine-readable ``code`` for the error envelope."""

    def __init__(self, status_code: int, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.details = details


def bad_request(code: str, message: str) -> AppError:
    return AppError(status_code=status.HTTP_400_BAD_REQUEST, code=code, message=message)


def forbidden(message: str = "You are not authorized to perform that action") -> AppError:
    return AppError(status_code=status.HTTP_403_FORBIDDEN, code="FORBIDDEN", message=message)


def not_found(resource: str) -> AppError:
    return AppError(status_code=status.HTTP_404_NOT_FOUND, code="NOT_FOUND", message=f"{resource} not found")
