# forum/core/errors.py
"""
Error taxonomy and the central error-mapping layer.

Domain and utility code raises one of the typed errors below; route handlers
let them propagate and the handlers registered by `register_exception_handlers`
translate them into an HTTP status and the uniform envelope:

    {"error": "<message>", "details": <optional>}
"""
import logging
import traceback
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from tortoise.exceptions import DoesNotExist, IntegrityError

from forum.config import settings

logger = logging.getLogger("uvicorn.error")


class AppError(Exception):
    """
    Base class for errors that carry their own HTTP status.

    Usage:
        raise NotFoundError("Post not found")
        raise ValidationError("Validation failed", details=[{"field": "title", "message": "..."}])
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server Error"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body: dict = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class ConflictError(AppError):
    """Uniqueness violation (username/email/name already taken)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid token."


class ExpiredTokenError(AuthenticationError):
    default_message = "Token expired."


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server Error"


class TokenGenerationError(InternalError):
    default_message = "Failed to generate token"


def _log_request_error(request: Request | None, exc: Exception, level: int = logging.WARNING) -> None:
    if request is None:
        logger.log(level, "[error] %s: %s", type(exc).__name__, exc)
        return
    logger.log(
        level,
        "[error] %s %s -> %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    _log_request_error(request, exc, level)
    return exc.to_response()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc),
            "message": error.get("msg", ""),
        })
    return ValidationError("Validation failed", details=details).to_response()


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Duplicate key from the storage layer
    _log_request_error(request, exc)
    return ConflictError("Resource already exists").to_response()


async def does_not_exist_handler(request: Request, exc: DoesNotExist) -> JSONResponse:
    return NotFoundError("Resource not found").to_response()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("[error] unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    body: dict = {"error": "Server Error"}
    # Stack traces only leave the process in development
    if settings.is_development:
        body["details"] = repr(exc)
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app) -> None:
    """
    Install the error-mapping layer on a FastAPI application.

    Call once from main.py:
        register_exception_handlers(app)
    """
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DoesNotExist, does_not_exist_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
