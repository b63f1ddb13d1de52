"""Installation sync, called by the bot when GitHub reports an installation.

This is the only code path that opens or renews a setup window. A window
is (re)opened for ``setup_window_minutes`` whenever a pending installation
is synced; a completed installation stays completed with no window.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.enums import EntityType, RepoState
from reposignal.db.models import Installation, Repository
from reposignal.installations.schemas import SyncInstallationRequest
from reposignal.logs.writer import LogActor, LogEntry, write_log

logger = logging.getLogger(__name__)


async def sync_installation(
    db: AsyncSession,
    payload: SyncInstallationRequest,
    setup_window_minutes: int,
    now: Optional[datetime] = None,
) -> Installation:
    """Upsert the installation and its repositories. The caller commits."""
    now = now or datetime.now(timezone.utc)
    data = payload.installation

    result = await db.execute(
        select(Installation).where(
            Installation.github_installation_id == data.github_installation_id
        )
    )
    installation = result.scalar_one_or_none()

    if installation is None:
        installation = Installation(
            github_installation_id=data.github_installation_id,
            setup_completed=False,
        )
        db.add(installation)

    installation.account_type = data.account_type.value
    installation.account_login = data.account_login

    # setup_completed is monotonic: a sync may set it, never clear it.
    if data.setup_completed or installation.setup_completed:
        installation.setup_completed = True
        installation.setup_allowed_until = None
    else:
        installation.setup_allowed_until = now + timedelta(minutes=setup_window_minutes)

    await db.flush()

    await write_log(
        db,
        LogEntry(
            actor=LogActor.bot(),
            action="installation_synced",
            entity_type=EntityType.INSTALLATION,
            entity_id=f"installation:{data.github_installation_id}",
            context={"account_login": data.account_login},
        ),
    )

    for repo_data in payload.repositories:
        result = await db.execute(
            select(Repository).where(Repository.github_repo_id == repo_data.github_repo_id)
        )
        repo = result.scalar_one_or_none()

        if repo is not None:
            repo.owner = repo_data.owner
            repo.name = repo_data.name
            repo.updated_at = now
            continue

        db.add(
            Repository(
                installation_id=installation.id,
                github_repo_id=repo_data.github_repo_id,
                owner=repo_data.owner,
                name=repo_data.name,
                state=(repo_data.state or RepoState.OFF).value,
            )
        )
        await db.flush()
        await write_log(
            db,
            LogEntry(
                actor=LogActor.system(),
                action="repository_created",
                entity_type=EntityType.REPOSITORY,
                entity_id=f"repo:{repo_data.owner}/{repo_data.name}",
                context={"github_repo_id": repo_data.github_repo_id},
            ),
        )

    logger.info(
        "Synced installation %d (%s) with %d repositories",
        data.github_installation_id, data.account_login, len(payload.repositories),
    )
    return installation
