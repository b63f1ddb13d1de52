"""Error taxonomy and FastAPI exception handlers.

Every client-visible failure is an ``AppError`` carrying a stable
machine-readable code plus a human-readable message. The set of failure
kinds is closed (``ErrorKind``) and each kind maps to exactly one HTTP
status, so route handlers never branch on exception classes themselves.

Response body for every error:

    {"error": {"code": "SETUP_WINDOW_EXPIRED", "message": "..."}}

5xx responses never include internal detail; the full exception is logged
server-side instead.
"""

import enum
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STATE_CONFLICT = "state_conflict"
    INSTALLATION_INVALID = "installation_invalid"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


class ErrorCode(str, enum.Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    SETUP_ALREADY_COMPLETED = "SETUP_ALREADY_COMPLETED"
    SETUP_WINDOW_EXPIRED = "SETUP_WINDOW_EXPIRED"
    INSTALLATION_INVALID = "INSTALLATION_INVALID"
    GITHUB_UNAVAILABLE = "GITHUB_UNAVAILABLE"
    UNAUTHORIZED = "UNAUTHORIZED"
    FEEDBACK_DISABLED = "FEEDBACK_DISABLED"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ConfigurationError(Exception):
    """Missing or malformed process configuration.

    Fatal at startup; never mapped to an HTTP response.
    """


class AppError(Exception):
    """Base class for every error surfaced to API clients."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to return to the client."""
        if self.status_code >= 500:
            return self.default_message
        return self.message

    def to_dict(self) -> dict:
        return {"error": {"code": self.code.value, "message": self.public_message}}


class ValidationError(AppError):
    code = ErrorCode.INVALID_INPUT
    kind = ErrorKind.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class NotFoundError(AppError):
    code = ErrorCode.NOT_FOUND
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class SetupAlreadyCompletedError(AppError):
    code = ErrorCode.SETUP_ALREADY_COMPLETED
    kind = ErrorKind.STATE_CONFLICT
    status_code = status.HTTP_409_CONFLICT
    default_message = "Setup has already been completed for this installation"


class SetupWindowExpiredError(AppError):
    code = ErrorCode.SETUP_WINDOW_EXPIRED
    kind = ErrorKind.STATE_CONFLICT
    status_code = status.HTTP_410_GONE
    default_message = "Setup window has expired for this installation"


class InstallationInvalidError(AppError):
    code = ErrorCode.INSTALLATION_INVALID
    kind = ErrorKind.INSTALLATION_INVALID
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Installation is invalid or has been revoked"


class ProviderUnavailableError(AppError):
    code = ErrorCode.GITHUB_UNAVAILABLE
    kind = ErrorKind.PROVIDER_UNAVAILABLE
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "GitHub API is unavailable"


class UnauthorizedError(AppError):
    code = ErrorCode.UNAUTHORIZED
    kind = ErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class FeedbackDisabledError(AppError):
    code = ErrorCode.FEEDBACK_DISABLED
    kind = ErrorKind.STATE_CONFLICT
    status_code = status.HTTP_409_CONFLICT
    default_message = "Feedback is not enabled for this repository"


class RateLimitedError(AppError):
    code = ErrorCode.RATE_LIMITED
    kind = ErrorKind.RATE_LIMITED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

# Expected client mistakes stay at INFO; anything that points at a broken
# dependency or a misbehaving client is louder.
_LOG_LEVELS = {
    ErrorKind.VALIDATION: logging.INFO,
    ErrorKind.NOT_FOUND: logging.INFO,
    ErrorKind.STATE_CONFLICT: logging.INFO,
    ErrorKind.INSTALLATION_INVALID: logging.WARNING,
    ErrorKind.UNAUTHORIZED: logging.WARNING,
    ErrorKind.RATE_LIMITED: logging.WARNING,
    ErrorKind.PROVIDER_UNAVAILABLE: logging.ERROR,
    ErrorKind.INTERNAL: logging.ERROR,
}


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    logger.log(
        _LOG_LEVELS[exc.kind],
        "%s on %s %s: %s %s",
        exc.kind.value, request.method, request.url.path, exc.code.value, exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _handle_rate_limit(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render SlowAPI rejections in the shared error shape."""
    return await _handle_app_error(
        request, RateLimitedError(f"Rate limit exceeded: {exc.detail}")
    )


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "")
    else:
        message = "Invalid request"
    logger.warning("Rejected request on %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationError(message).to_dict(),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=AppError().to_dict(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the structured error handlers to *app*."""
    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(RateLimitExceeded, _handle_rate_limit)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
