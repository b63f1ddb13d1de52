"""GitHub App authentication.

Mints the short-lived JWT that identifies the App itself (not an
installation). The signing key comes from an immutable GitHubAppConfig built
at startup, never from the environment at call time.

GitHub App auth flow:
1. Generate a JWT signed with the App's private key   <- this module
2. Exchange the JWT for a short-lived installation access token
3. Use the installation token for API calls scoped to that installation
"""

import time
from collections.abc import Callable

import jwt

from reposignal.core.config import GitHubAppConfig

# Backdate to absorb clock drift between us and GitHub.
CLOCK_SKEW_SECONDS = 60
# GitHub rejects App JWTs that live longer than 10 minutes.
JWT_LIFETIME_SECONDS = 9 * 60


class AppCredentialIssuer:
    """Issues a fresh App JWT on every call. Tokens are never stored."""

    def __init__(
        self,
        config: GitHubAppConfig,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._clock = clock

    @property
    def app_name(self) -> str:
        return self._config.app_name

    def issue(self) -> str:
        now = int(self._clock())
        payload = {
            "iat": now - CLOCK_SKEW_SECONDS,
            "exp": now + JWT_LIFETIME_SECONDS,
            "iss": str(self._config.app_id),
        }
        return jwt.encode(payload, self._config.private_key, algorithm=self._config.algorithm)
