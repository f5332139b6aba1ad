"""
Standardized Error Handling for authgate.

Every failure leaves the service through one boundary: the exception handlers
registered by setup_exception_handlers(). All errors share the body shape

    {"success": false, "message": "...", "errors": {...}}

where "errors" is a field-keyed dict and is omitted when there is nothing to
report.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class AuthGateError(Exception):
    """Base exception for authgate errors that map onto an HTTP response."""

    def __init__(
        self,
        message: str,
        error_code: str = "authgate_error",
        status_code: int = 500,
        errors: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.errors = errors
        self.headers = headers
        super().__init__(message)


class ValidationError(AuthGateError):
    """Malformed or missing input, keyed by field."""

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=422,
            errors=errors,
        )


class AuthenticationError(AuthGateError):
    """Missing, malformed, invalid or expired credentials."""

    def __init__(
        self,
        message: str = "Authentication required",
        errors: Optional[dict[str, str]] = None,
    ):
        super().__init__(
            message=message,
            error_code="authentication_required",
            status_code=401,
            errors=errors,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsError(AuthenticationError):
    """Login rejected. Unknown handle and wrong password look identical."""

    def __init__(self, message: str = "Login input error"):
        super().__init__(message=message, errors={"general": "Wrong credentials"})


class AuthorizationError(AuthGateError):
    """Authenticated but not permitted."""

    def __init__(self, message: str = "Access Denied"):
        super().__init__(
            message=message,
            error_code="permission_denied",
            status_code=403,
        )


class ConflictError(AuthGateError):
    """Duplicate unique value (username, email, role name)."""

    def __init__(self, message: str = "Resource conflict", errors: Optional[dict[str, str]] = None):
        super().__init__(
            message=message,
            error_code="conflict",
            status_code=422,
            errors=errors,
        )


class NotFoundError(AuthGateError):
    """Referenced principal or role does not exist."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} not found",
            error_code="not_found",
            status_code=404,
        )


class RateLimitError(AuthGateError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Too many requests, please try again later", headers: Optional[dict[str, str]] = None):
        super().__init__(
            message=message,
            error_code="rate_limit_exceeded",
            status_code=429,
            headers=headers,
        )


class InternalError(AuthGateError):
    """Storage or other unexpected failure."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(
            message=message,
            error_code="internal_error",
            status_code=500,
        )


class ConfigError(Exception):
    """Configuration that must prevent startup."""
    pass


# =============================================================================
# Response Helpers
# =============================================================================

def error_body(message: str, errors: Optional[dict[str, str]] = None) -> dict:
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def error_response(exc: AuthGateError) -> JSONResponse:
    """Render an AuthGateError. Also used by middleware, which runs outside the handlers."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors),
        headers=exc.headers,
    )


def _expose_internal_detail(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.debug and not settings.is_production)


# =============================================================================
# Exception Handlers
# =============================================================================

async def authgate_error_handler(request: Request, exc: AuthGateError) -> JSONResponse:
    """Handle authgate exceptions."""
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            exc.error_code, request.method, request.url.path, exc.message,
            extra={"error_code": exc.error_code, "path": request.url.path},
        )
        if not _expose_internal_detail(request):
            return JSONResponse(status_code=exc.status_code, content=error_body("Internal server error"))
    else:
        logger.info(
            "%s on %s %s: %s",
            exc.error_code, request.method, request.url.path, exc.message,
            extra={"error_code": exc.error_code, "path": request.url.path},
        )
    return error_response(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle routing-level HTTP exceptions (unknown route, wrong method)."""
    messages = {
        404: "Router Not Found",
        405: "Method Not Allowed",
    }
    message = messages.get(exc.status_code) or (str(exc.detail) if exc.detail else f"HTTP {exc.status_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request-shape errors from FastAPI, keyed by the offending field."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, error.get("msg", "Invalid value"))

    logger.info("Validation error on %s: %d issues", request.url.path, len(errors))

    return JSONResponse(
        status_code=422,
        content=error_body("Request validation failed", errors),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions. Never leaks internals in production."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )

    message = "Internal server error"
    if _expose_internal_detail(request):
        message = f"Internal server error: {exc}"

    return JSONResponse(status_code=500, content=error_body(message))


# =============================================================================
# Setup Function
# =============================================================================

def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(AuthGateError, authgate_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "AuthGateError",
    "ValidationError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "AuthorizationError",
    "ConflictError",
    "NotFoundError",
    "RateLimitError",
    "InternalError",
    "ConfigError",
    "error_body",
    "error_response",
    "setup_exception_handlers",
]
