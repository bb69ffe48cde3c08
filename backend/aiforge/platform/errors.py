"""
Consistent error handling for the AI Forge API.

Every response, success or failure, uses the same envelope:

    {"success": bool, "data": <payload>?, "error": {"code", "message", "details"?}?}

Each pipeline stage raises an AppError subclass that is converted directly
into a terminal response. Unexpected exceptions are logged server-side and
returned as a generic INTERNAL_ERROR; stack traces and store errors never
reach the response body.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error carrying an envelope code and HTTP status."""

    def __init__(
        self,
        code: str = "INTERNAL_ERROR",
        message: str = "Internal server error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        """Serialize into the error envelope."""
        error = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, status_code={self.status_code})"


class ValidationError(AppError):
    """Malformed input to a route."""

    def __init__(self, message: str = "Invalid request data", details: Optional[Any] = None):
        super().__init__("VALIDATION_ERROR", message, status.HTTP_400_BAD_REQUEST, details)


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("UNAUTHORIZED", message, status.HTTP_401_UNAUTHORIZED)


class PermissionDeniedError(AppError):
    """Valid identity, but the role or a condition denies the action."""

    def __init__(self, message: str = "Permission denied", details: Optional[Any] = None):
        super().__init__("FORBIDDEN", message, status.HTTP_403_FORBIDDEN, details)


class TenantAccessDeniedError(AppError):
    """Caller has no ACTIVE membership in the resolved tenant."""

    def __init__(self, message: str = "You do not have access to this tenant"):
        super().__init__("TENANT_ACCESS_DENIED", message, status.HTTP_403_FORBIDDEN)


class TenantInactiveError(AppError):
    """Membership confirmed but the tenant is suspended or inactive."""

    def __init__(self, message: str = "Tenant is not active"):
        super().__init__("TENANT_INACTIVE", message, status.HTTP_403_FORBIDDEN)


class NoTenantAccessError(AppError):
    """User has no active tenant membership at all."""

    def __init__(self, message: str = "User has no accessible tenant"):
        super().__init__("NO_TENANT_ACCESS", message, status.HTTP_403_FORBIDDEN)


class TenantNotFoundError(AppError):
    """No tenant signal matched an active tenant."""

    def __init__(self, message: str = "Unable to resolve tenant"):
        super().__init__("TENANT_NOT_FOUND", message, status.HTTP_404_NOT_FOUND)


class NotFoundError(AppError):
    """Requested resource does not exist (or belongs to another tenant)."""

    def __init__(self, resource: str = "Resource", code: Optional[str] = None):
        super().__init__(
            code or "NOT_FOUND",
            f"{resource} not found",
            status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource


class ConflictError(AppError):
    """Unique constraint style conflicts (duplicate email, slug)."""

    def __init__(self, message: str = "Resource already exists", code: str = "CONFLICT"):
        super().__init__(code, message, status.HTTP_409_CONFLICT)


class QuotaExceededError(AppError):
    """Tenant usage reached the configured limit for a resource."""

    def __init__(self, resource: str, current: int, limit: int):
        super().__init__(
            "QUOTA_EXCEEDED",
            f"Quota exceeded for {resource}",
            status.HTTP_429_TOO_MANY_REQUESTS,
            {"resource": resource, "current": current, "limit": limit},
        )
        self.resource = resource
        self.current = current
        self.limit = limit


class ConfigurationError(AppError):
    """
    Fatal server configuration problem (e.g. missing signing secret).

    Distinct from AuthenticationError so operators see 500s, not 401s.
    """

    def __init__(self, message: str = "Server configuration error"):
        super().__init__("SERVER_ERROR", message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class UpstreamServiceError(AppError):
    """The AI completion provider failed or returned an unusable reply."""

    def __init__(self, message: str = "AI service failed, please retry later"):
        super().__init__("AI_SERVICE_ERROR", message, status.HTTP_502_BAD_GATEWAY)


class ServiceUnavailableError(AppError):
    """A required backing service is not configured or reachable."""

    def __init__(self, message: str = "Service unavailable"):
        super().__init__("SERVICE_UNAVAILABLE", message, status.HTTP_503_SERVICE_UNAVAILABLE)


def generate_correlation_id() -> str:
    """Generate an id tying a logged failure to its response."""
    return str(uuid.uuid4())


def success_response(data: Any = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Wrap a payload in the success envelope."""
    content = {"success": True}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=content)


def error_response(error: AppError) -> JSONResponse:
    """Render an AppError as an envelope response."""
    return JSONResponse(
        status_code=error.status_code,
        content=jsonable_encoder(error.to_dict()),
    )


def _internal_error_response(correlation_id: str) -> JSONResponse:
    error = AppError(
        code="INTERNAL_ERROR",
        message="Internal server error",
        details={"correlation_id": correlation_id},
    )
    return error_response(error)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Last-resort conversion of unhandled exceptions into INTERNAL_ERROR.

    AppError raised past the exception handlers (e.g. from other middleware)
    is still rendered with its own code.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except AppError as exc:
            return error_response(exc)
        except Exception as exc:
            correlation_id = generate_correlation_id()
            tenant_context = getattr(request.state, "tenant_context", None)
            logger.error(
                "Unhandled exception",
                extra={
                    "correlation_id": correlation_id,
                    "tenant_id": getattr(tenant_context, "tenant_id", "unknown"),
                    "error_type": type(exc).__name__,
                    "path": request.url.path,
                },
                exc_info=True,
            )
            return _internal_error_response(correlation_id)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed with server error",
            extra={"code": exc.code, "path": request.url.path},
        )
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {key: value for key, value in err.items() if key not in ("ctx", "input", "url")}
        for err in exc.errors()
    ]
    return error_response(ValidationError(details=details))


def register_error_handlers(app: FastAPI) -> None:
    """Install envelope-producing handlers on an application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_middleware(ErrorHandlerMiddleware)
