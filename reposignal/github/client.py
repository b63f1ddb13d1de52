"""GitHub API client for installation verification.

Uses httpx for async HTTP calls. Verification proves an installation is
still alive with GitHub in two sequential steps:

1. Exchange a fresh App JWT for an installation access token
2. Use that token to list the repositories visible to the installation

Nothing is cached. Each verification opens its own client, mints its own
JWT and throws the installation token away once the access check returns, so a
revoked installation is detected on the very next request.

Status classification (both steps):
  expected success (201 / 200)  -> continue
  401, 403, 404                 -> InstallationInvalidError
  anything else, or any transport error / timeout -> ProviderUnavailableError
"""

import logging

import httpx

from reposignal.core.errors import InstallationInvalidError, ProviderUnavailableError
from reposignal.github.auth import AppCredentialIssuer

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 5.0

# Statuses meaning the installation was removed or lost its grant.
INVALID_INSTALLATION_STATUSES = frozenset({401, 403, 404})


class InstallationVerifier:
    """Re-proves installation liveness against GitHub on every call."""

    def __init__(
        self,
        issuer: AppCredentialIssuer,
        *,
        api_base: str = GITHUB_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._issuer = issuer
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def verify(self, installation_id: int) -> None:
        """Raise unless GitHub confirms the installation still has repo access."""
        async with httpx.AsyncClient(
            base_url=self._api_base,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            token = await self._request_installation_token(client, installation_id)
            await self._check_repository_access(client, token, installation_id)

        logger.info("Installation %d verified with GitHub", installation_id)

    async def _request_installation_token(
        self, client: httpx.AsyncClient, installation_id: int
    ) -> str:
        try:
            response = await client.post(
                f"/app/installations/{installation_id}/access_tokens",
                headers=self._headers(self._issuer.issue()),
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Installation %d: token request failed: %s",
                installation_id, type(exc).__name__,
            )
            raise ProviderUnavailableError(
                f"Failed to request installation token: {exc}"
            ) from exc

        if response.status_code == 201:
            try:
                token = response.json()["token"]
            except (ValueError, KeyError, TypeError) as exc:
                raise ProviderUnavailableError(
                    "GitHub returned an unreadable installation token response"
                ) from exc
            if not isinstance(token, str) or not token:
                raise ProviderUnavailableError(
                    "GitHub returned an empty installation token"
                )
            return token

        self._raise_for_status(
            response.status_code, installation_id, "requesting installation token"
        )

    async def _check_repository_access(
        self, client: httpx.AsyncClient, token: str, installation_id: int
    ) -> None:
        try:
            response = await client.get(
                "/installation/repositories",
                headers=self._headers(token),
                params={"per_page": 1},
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Installation %d: repository access check failed: %s",
                installation_id, type(exc).__name__,
            )
            raise ProviderUnavailableError(
                f"Failed to validate installation access: {exc}"
            ) from exc

        if response.status_code == 200:
            return

        self._raise_for_status(
            response.status_code, installation_id, "validating installation access"
        )

    @staticmethod
    def _raise_for_status(status_code: int, installation_id: int, step: str):
        if status_code in INVALID_INSTALLATION_STATUSES:
            logger.info(
                "Installation %d rejected by GitHub (%d) while %s",
                installation_id, status_code, step,
            )
            raise InstallationInvalidError(
                f"GitHub returned status {status_code} when {step}"
            )
        logger.warning(
            "Installation %d: GitHub returned %d while %s",
            installation_id, status_code, step,
        )
        raise ProviderUnavailableError(
            f"GitHub API returned status {status_code} when {step}"
        )

    def _headers(self, bearer: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {bearer}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": self._issuer.app_name,
            "Cache-Control": "no-cache",
        }
