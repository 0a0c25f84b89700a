"""
Global exception handlers for the FastAPI application.

Centralises error formatting so every error response follows a consistent
JSON structure::

    {
        "error": true,
        "message": "<human-readable description>"
    }

This module also defines domain-specific exceptions that the validation,
storage and persistence layers raise without importing FastAPI's
HTTPException, keeping business logic framework-agnostic.

Error taxonomy:

- **Input validation** (client fault, 400) — ``ValidationFailed``.  The
  validators compute every error; the response surfaces only the first.
- **Storage capacity** (server fault, 500) — ``StorageError``.  Detail is
  logged server-side; the caller sees a generic message, except for
  ``PATH_TOO_LONG`` whose message names the offending file.
- **Persistence** (server fault, 500) — ``PersistenceError`` carrying one
  of a closed set of categories.  Raw engine codes never leave the process.
"""

import logging
from enum import Enum
from typing import Any, List, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from investor_intake.core.resilience import CircuitBreakerError
from investor_intake.validation.rules import FieldError

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────
# Domain exceptions  (raised by service layer, caught by handlers below)
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all application-level errors."""

    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationFailed(AppException):
    """
    Submitted fields or files were rejected (400).

    ``errors`` keeps the complete ordered list produced by the validators;
    ``message`` is the first one, which is all the caller is shown.
    """

    def __init__(self, errors: Sequence[FieldError]):
        if not errors:
            raise ValueError("ValidationFailed requires at least one error")
        self.errors: List[FieldError] = list(errors)
        super().__init__(
            status_code=400,
            message=self.errors[0].message,
            details=self.errors,
        )

    @property
    def first(self) -> FieldError:
        return self.errors[0]


class StorageErrorCode(str, Enum):
    """Failure modes of the file store."""

    DIRECTORY_UNAVAILABLE = "DIRECTORY_UNAVAILABLE"
    PATH_TOO_LONG = "PATH_TOO_LONG"
    WRITE_FAILED = "WRITE_FAILED"


GENERIC_STORAGE_MESSAGE = "Failed to store uploaded files. Please try again later."


class StorageError(AppException):
    """
    Uploaded files could not be written (500).

    ``detail`` is for the server log only.  Only ``PATH_TOO_LONG`` carries a
    caller-facing message, because the caller can fix it by renaming the file.
    """

    def __init__(
        self,
        code: StorageErrorCode,
        detail: str,
        message: Optional[str] = None,
        file_name: Optional[str] = None,
    ):
        self.code = code
        self.detail = detail
        self.file_name = file_name
        super().__init__(status_code=500, message=message or GENERIC_STORAGE_MESSAGE)


class PersistenceErrorCategory(str, Enum):
    """Closed set of categories storage-engine failures are mapped onto."""

    CONSTRAINT_VIOLATION = "constraint_violation"
    NOT_FOUND = "not_found"
    CONNECTIVITY = "connectivity"
    UNKNOWN = "unknown"


class PersistenceError(AppException):
    """The database rejected or failed the write (500)."""

    def __init__(
        self,
        category: PersistenceErrorCategory,
        message: str,
        detail: str = "",
    ):
        self.category = category
        self.detail = detail
        super().__init__(status_code=500, message=message)


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def _error_detail(err: FieldError) -> dict:
    return {"field": err.field, "code": err.code.value, "message": err.message}


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        """Handle domain-specific exceptions raised by the service layer."""
        content: dict = {"error": True, "message": exc.message}

        if isinstance(exc, ValidationFailed):
            # Fail-fast at the boundary: only the first error is surfaced.
            content["details"] = [_error_detail(exc.first)]
        elif isinstance(exc, StorageError):
            logger.error(
                "Storage failure on %s %s [%s]: %s",
                request.method,
                request.url.path,
                exc.code.value,
                exc.detail,
            )
        elif isinstance(exc, PersistenceError):
            logger.error(
                "Persistence failure on %s %s [%s]: %s",
                request.method,
                request.url.path,
                exc.category.value,
                exc.detail,
            )

        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(CircuitBreakerError)
    async def circuit_breaker_handler(
        request: Request, exc: CircuitBreakerError
    ) -> JSONResponse:
        """Database breaker is open — tell the caller when to come back."""
        retry_after = max(int(exc.retry_after + 0.999), 1)
        return JSONResponse(
            status_code=503,
            headers={"Retry-After": str(retry_after)},
            content={
                "error": True,
                "message": "Service temporarily unavailable: database circuit is open",
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle standard HTTP exceptions (e.g. 404 from path-not-found)."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": True, "message": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle malformed requests that never reach the intake validators
        (e.g. a non-multipart body).  Reported as a bad request.
        """
        errors = []
        for err in exc.errors():
            loc = " -> ".join(str(part) for part in err["loc"])
            errors.append({"field": loc, "message": err["msg"]})
        return JSONResponse(
            status_code=400,
            content={"error": True, "message": "Validation failed", "details": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected exceptions."""
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Internal Server Error. Please contact support.",
            },
        )
