"""Sentry SDK integration for the Reposignal API.

Captures exceptions and performance traces without leaking secrets.

Key decisions:
  - `send_default_pii=False`: no user data sent by default.
  - `before_send` hook scrubs any event field whose key contains a
    sensitive keyword (private_key, api_key, secret, password, token,
    authorization, dsn). The GitHub App key and installation tokens are
    the values this guards.
  - No-op when SENTRY_DSN is empty so local and CI runs are unaffected.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = frozenset(
    {"private_key", "api_key", "secret", "password", "token", "authorization", "dsn"}
)


def _scrub_secrets(event: dict[str, Any], hint: Any) -> dict[str, Any]:
    """Sentry before_send hook: redact values for sensitive keys.

    Walks the event's `extra`, `request.headers` and `request.data` dicts
    and replaces matching values with "[REDACTED]".
    """
    _scrub_dict(event.get("extra", {}))
    request = event.get("request", {})
    for section in ("headers", "data"):
        value = request.get(section)
        if isinstance(value, dict):
            _scrub_dict(value)
    return event


def _scrub_dict(d: dict[str, Any]) -> None:
    """Recursively redact sensitive values in-place."""
    for key in list(d.keys()):
        if any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS):
            d[key] = "[REDACTED]"
        elif isinstance(d[key], dict):
            _scrub_dict(d[key])


def init_sentry(dsn: str, environment: str = "development") -> None:
    """Initialise the Sentry SDK.

    Args:
        dsn: Sentry DSN string. Empty string disables Sentry entirely.
        environment: Sentry environment tag ("development" | "production").
    """
    if not dsn or not dsn.strip():
        logger.debug("Sentry DSN not configured, skipping initialisation")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=_scrub_secrets,
    )
    logger.info("Sentry initialised (environment=%s)", environment)
