"""Setup orchestration for newly created installations.

State machine (per installation):

    pending --complete_setup--> completed   (terminal)
       \\--window lapses-------> expired     (terminal)

Both operations run the same checks in the same order:

  1. Look up the installation by its GitHub id          -> NotFoundError
  2. Gate on local state (cheap, no I/O)                -> 409 / 410
  3. Re-verify the installation with GitHub (no cache)  -> 403 / 502

read_context stops there and never mutates anything. complete_setup then
applies every repository update and closes the window in one transaction.
The installation row is flipped with a conditional UPDATE guarded on
``setup_completed = false`` so that of two racing requests only one can win;
the loser rolls back before any repository row is written.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.enums import EntityType
from reposignal.core.errors import (
    NotFoundError,
    SetupAlreadyCompletedError,
    SetupWindowExpiredError,
    ValidationError,
)
from reposignal.db.models import Installation, Repository
from reposignal.logs.writer import LogActor, LogEntry, write_log
from reposignal.setup.gate import SetupGate, as_utc, can_setup
from reposignal.setup.schemas import CompleteSetupRequest, SetupRepository

logger = logging.getLogger(__name__)

SETUP_COMPLETED_ACTION = "installation_setup_completed"

_GATE_ERRORS = {
    SetupGate.ALREADY_COMPLETED: SetupAlreadyCompletedError,
    SetupGate.WINDOW_EXPIRED: SetupWindowExpiredError,
}


class Verifier(Protocol):
    async def verify(self, installation_id: int) -> None: ...


@dataclass(frozen=True)
class SetupContext:
    account_login: str
    repositories: list[SetupRepository]
    setup_expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SetupService:
    """Serves the two setup operations for a single request."""

    def __init__(
        self,
        db: AsyncSession,
        verifier: Verifier,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.verifier = verifier
        self.clock = clock

    async def read_context(self, github_installation_id: int) -> SetupContext:
        installation = await self._authorize(github_installation_id)

        result = await self.db.execute(
            select(Repository)
            .where(Repository.installation_id == installation.id)
            .order_by(Repository.id)
        )
        repositories = [
            SetupRepository.model_validate(repo) for repo in result.scalars().all()
        ]

        return SetupContext(
            account_login=installation.account_login,
            repositories=repositories,
            setup_expires_at=as_utc(installation.setup_allowed_until),
        )

    async def complete_setup(self, request: CompleteSetupRequest) -> None:
        """Close the setup window and apply the chosen repository settings.

        Checks run in a fixed order: installation lookup, the window gate,
        GitHub verification, then the repository updates. Repository ids are
        only resolved while the updates are applied, so an unknown or foreign
        id is reported (400) only for an installation that passed every earlier
        check. A completed installation answers 409 even when the request
        also names a repository that does not exist.
        """
        github_installation_id = request.installation_id
        installation = await self._authorize(github_installation_id)
        account_login = installation.account_login

        try:
            await self._close_window(installation)
            await self._apply_repository_updates(installation, request)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Setup completed for installation %d (%d repositories updated)",
            github_installation_id, len(request.repositories),
        )
        await self._record_completion(github_installation_id, account_login)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _authorize(self, github_installation_id: int) -> Installation:
        """Lookup, gate, then remote verification. Raises on any failure."""
        result = await self.db.execute(
            select(Installation)
            .where(Installation.github_installation_id == github_installation_id)
            .execution_options(populate_existing=True)
        )
        installation = result.scalar_one_or_none()
        if installation is None:
            raise NotFoundError("Installation not found")

        gate = can_setup(installation, self.clock())
        if gate is not SetupGate.ALLOWED:
            raise _GATE_ERRORS[gate]()

        await self.verifier.verify(github_installation_id)
        return installation

    async def _close_window(self, installation: Installation) -> None:
        result = await self.db.execute(
            update(Installation)
            .where(
                Installation.id == installation.id,
                Installation.setup_completed.is_(False),
            )
            .values(setup_completed=True, setup_allowed_until=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(
                "Installation %d was completed by a concurrent request",
                installation.github_installation_id,
            )
            raise SetupAlreadyCompletedError()

    async def _apply_repository_updates(
        self, installation: Installation, request: CompleteSetupRequest
    ) -> None:
        flags = request.settings
        now = self.clock()
        for repo_update in request.repositories:
            result = await self.db.execute(
                update(Repository)
                .where(
                    Repository.id == repo_update.repo_id,
                    Repository.installation_id == installation.id,
                )
                .values(
                    state=repo_update.state.value,
                    allow_unclassified=flags.allow_unclassified,
                    allow_classification=flags.allow_classification,
                    allow_inference=flags.allow_inference,
                    feedback_enabled=flags.feedback_enabled,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ValidationError(
                    f"Unknown repository {repo_update.repo_id} for this installation"
                )

    async def _record_completion(
        self, github_installation_id: int, account_login: str
    ) -> None:
        """Append the audit record once the completion has committed.

        A failure here is logged; the setup itself is already durable.
        """
        try:
            await write_log(
                self.db,
                LogEntry(
                    actor=LogActor.system(),
                    action=SETUP_COMPLETED_ACTION,
                    entity_type=EntityType.INSTALLATION,
                    entity_id=f"installation:{github_installation_id}",
                    context={"account_login": account_login},
                ),
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(
                "Failed to record setup completion for installation %d",
                github_installation_id,
            )
