"""Repository settings updates and the public repository view.

Settings are written by the bot on behalf of a repository admin; every
change lands in the audit log with the values that were sent. Only
repositories in the ``public`` state are visible through the public view.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.enums import EntityType, RepoState
from reposignal.core.errors import NotFoundError, ValidationError
from reposignal.db.models import Repository, RepositoryFeedbackAggregate
from reposignal.feedback.schemas import FeedbackSummary
from reposignal.logs.writer import LogActor, LogEntry, write_log
from reposignal.repositories.schemas import PublicRepository, RepositorySettingsUpdate

logger = logging.getLogger(__name__)

SETTINGS_UPDATED_ACTION = "repository_settings_updated"


async def update_repository_settings(
    db: AsyncSession, repo_id: int, update: RepositorySettingsUpdate
) -> Repository:
    """Apply a partial settings update. The caller commits."""
    changes = update.changes()
    if not changes:
        raise ValidationError("No settings provided")

    repo = await db.get(Repository, repo_id)
    if repo is None:
        raise NotFoundError(f"Repository not found: {repo_id}")

    for column, value in changes.items():
        setattr(repo, column, value.value if isinstance(value, RepoState) else value)
    repo.updated_at = datetime.now(timezone.utc)
    await db.flush()

    if update.actor is not None:
        actor = LogActor.user(github_id=update.actor.github_id, username=update.actor.username)
    else:
        actor = LogActor.bot()

    await write_log(
        db,
        LogEntry(
            actor=actor,
            action=SETTINGS_UPDATED_ACTION,
            entity_type=EntityType.REPOSITORY,
            entity_id=f"repo:{repo.owner}/{repo.name}",
            context={
                key: value
                for key, value in update.model_dump(mode="json", exclude={"actor"}).items()
                if key in changes
            },
        ),
    )
    logger.info("Settings updated for repository %d: %s", repo.id, sorted(changes))
    return repo


async def get_public_repository(db: AsyncSession, github_repo_id: int) -> PublicRepository:
    result = await db.execute(
        select(Repository, RepositoryFeedbackAggregate)
        .outerjoin(
            RepositoryFeedbackAggregate,
            RepositoryFeedbackAggregate.repo_id == Repository.id,
        )
        .where(
            Repository.github_repo_id == github_repo_id,
            Repository.state == RepoState.PUBLIC.value,
        )
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Repository not found")

    repo, aggregate = row
    return PublicRepository(
        github_repo_id=repo.github_repo_id,
        owner=repo.owner,
        name=repo.name,
        reposignal_description=repo.reposignal_description,
        feedback=FeedbackSummary.model_validate(aggregate) if aggregate else None,
    )
