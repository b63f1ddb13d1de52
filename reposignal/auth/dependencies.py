"""Authentication dependency for bot-only routes.

The bot service authenticates with a shared API key sent as a bearer token.
The key is compared in constant time and never logged.
"""

import hmac
import logging

from fastapi import Depends, Header

from reposignal.core.config import Settings, get_settings
from reposignal.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)


async def require_bot(
    authorization: str = Header(default=""),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless it carries the configured bot API key."""
    if not authorization.startswith("Bearer "):
        logger.warning("auth: missing or malformed Authorization header on bot route")
        raise UnauthorizedError("Missing or invalid authorization header")

    token = authorization.removeprefix("Bearer ").strip()
    expected = settings.bot_api_key

    if not expected or not token or not hmac.compare_digest(
        token.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning("auth: bot API key rejected")
        raise UnauthorizedError("Invalid API key")
