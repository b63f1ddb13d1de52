"""ASGI middleware for the Reposignal API.

Registered in order (outermost → innermost):
  1. CORSMiddleware            handled by FastAPI directly (not here)
  2. RequestIdMiddleware       injects / forwards X-Request-ID; stores in ContextVar
  3. SecurityHeadersMiddleware adds security response headers

The ContextVar `_request_id_var` holds the current request ID so every log
line emitted while serving a setup or bot request carries it.
"""

import uuid
from contextvars import ContextVar
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Return the current request's ID, or an empty string outside a request."""
    return _request_id_var.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Read or generate X-Request-ID and make it available for the request lifetime.

    A client-supplied ID is reused so the setup frontend and the bot can
    correlate their logs with ours; otherwise a fresh UUID4 is generated.
    The ID is always echoed back in the response header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        token = _request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security-related headers to every outgoing response.

    Setup responses also get ``Cache-Control: no-store``: verification results
    are only valid for the request that produced them.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-XSS-Protection"] = "0"
        if request.url.path.startswith("/setup"):
            response.headers["Cache-Control"] = "no-store"
        return response
