"""Domain error kinds and their HTTP rendering."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that are reported to the caller.

    Attributes:
        status_code: HTTP status used when the error reaches the API layer.
        kind: Stable error kind name exposed to clients.
        message: Human readable message.
        details: Optional structured details (never stack traces or secrets).
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "Internal"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body sent to the caller."""
        payload: dict[str, Any] = {
            "status": self.status_code,
            "error": self.kind,
            "message": self.message,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidArgument(AppError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "InvalidArgument"


class Unauthorized(AppError):
    """Missing or invalid credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "Unauthorized"


class InvalidToken(Unauthorized):
    """A presented token failed signature, expiry or purpose checks."""

    kind = "InvalidToken"


class ExpiredOrRevoked(AppError):
    """The refresh token is well formed but has no live session record."""

    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "ExpiredOrRevoked"


class Forbidden(AppError):
    """Authenticated but not permitted."""

    status_code = status.HTTP_403_FORBIDDEN
    kind = "Forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"


class Conflict(AppError):
    """Duplicate of a unique entity (repost, username, email)."""

    status_code = status.HTTP_409_CONFLICT
    kind = "Conflict"


class Gone(AppError):
    """Operation on a tombstoned entity."""

    status_code = status.HTTP_410_GONE
    kind = "Gone"


class Internal(AppError):
    """Upload failure or other unexpected condition."""


def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    error = InvalidArgument("Validation failed", details=details)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    error = Conflict("Resource already exists")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    error = Internal("Internal server error")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that turn errors into ``{status, error, message}`` bodies."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)
