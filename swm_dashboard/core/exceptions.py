from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from swm_dashboard.core.logging import get_logger

logger = get_logger("exceptions")


class AppError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailedError(AppError):
    status_code = 422
    default_message = "Validation failed"


class DuplicateEntityError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Record already exists"


class DuplicateEmailError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A user with this email already exists"


class SelfActionForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You cannot perform this action on your own account"


class ProviderError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream provider error"


class AuthProviderError(ProviderError):
    """
    Failure reported by the authentication server.

    `provider_status` and `code` keep what the server returned so callers can
    translate specific failures (e.g. duplicate email) into domain errors.
    """

    default_message = "Authentication service request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        provider_status: Optional[int] = None,
        code: Optional[str] = None,
        errors: Any = None,
    ):
        super().__init__(message, errors=errors)
        self.provider_status = provider_status
        self.code = code
        if provider_status is not None and 400 <= provider_status < 500:
            self.status_code = provider_status


class PersistenceError(ProviderError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error occurred."


def validation_failed(exc) -> ValidationFailedError:
    """Wrap a pydantic ValidationError into the domain error."""
    return ValidationFailedError("Validation failed", errors=jsonable_encoder(exc.errors()))


def app_error_handler(request: Request, exc: AppError):
    logger.error(f"{exc.__class__.__name__}: {exc.message}")
    content = {
        "status": "error",
        "message": exc.message,
    }
    if exc.errors is not None:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")

    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                **exc.detail,
            },
            headers=getattr(exc, "headers", None),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        },
        headers=getattr(exc, "headers", None),
    )


def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "message": "Validation error",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled Exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "Internal server error",
            "errors": str(exc),
        },
    )


def integrity_error_handler(request: Request, exc: IntegrityError):
    """Handle database integrity violations like unique constraint errors."""
    error_msg = str(getattr(exc, "orig", exc))
    logger.error(f"Integrity Error: {error_msg}")
    if "Duplicate entry" in error_msg or "UNIQUE" in error_msg or "unique" in error_msg:
        return JSONResponse(
            status_code=409,
            content={
                "status": "error",
                "message": "Duplicate value violates a unique constraint.",
                "errors": error_msg,
            },
        )
    return JSONResponse(
        status_code=409,
        content={
            "status": "error",
            "message": "Data integrity violation.",
            "errors": error_msg
        },
    )


def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    """Catch-all for other SQLAlchemy errors."""
    logger.error(f"SQLAlchemy Error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "Database error occurred.",
            "errors": str(exc),
        },
    )
