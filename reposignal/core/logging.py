"""Structured JSON logging via structlog.

Configures structlog once at application startup. All subsequent calls to
`structlog.get_logger()` (or `logging.getLogger()` via the stdlib bridge)
will use this configuration.

Renderer selection:
  debug=True   `ConsoleRenderer` with colours for local development.
  debug=False  `JSONRenderer` for machine-parseable logs in production.

The `request_id` field is injected into every log line from
`reposignal.core.middleware._request_id_var`, so setup and bot handlers
never pass it around by hand.

Installation tokens and App JWTs must never reach a log call; the GitHub
client logs installation ids and status codes only.
"""

from __future__ import annotations

import logging
import sys

import structlog

from reposignal.core.middleware import get_request_id


def _inject_request_id(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: inject request_id from the middleware ContextVar."""
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def configure_structlog(debug: bool = True) -> None:
    """Configure structlog for the application lifetime.

    Call once from `create_app()` before any routers are registered.
    Calling multiple times is safe; structlog is idempotent.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_request_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging → structlog so module loggers and third-party
    # libraries (SQLAlchemy, httpx) share the same output stream.
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )
    # httpx logs full request URLs at INFO; keep it quiet outside debug.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
