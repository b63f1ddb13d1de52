"""Anonymous contributor feedback.

A submission is accepted only for a known repository whose owner enabled
feedback during setup (or later through the bot settings endpoint). The raw
event is stored without any contributor identity and the repository's
aggregate row is recomputed from all of its events in the same transaction.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.enums import EntityType
from reposignal.core.errors import FeedbackDisabledError, NotFoundError
from reposignal.db.models import FeedbackEvent, Repository, RepositoryFeedbackAggregate
from reposignal.feedback.schemas import FeedbackSubmission
from reposignal.logs.writer import LogActor, LogEntry, write_log

logger = logging.getLogger(__name__)

FEEDBACK_RECEIVED_ACTION = "feedback_received"


def to_bucket(average: Optional[float]) -> Optional[int]:
    """Round an average rating half-up to a whole bucket; None stays None."""
    if average is None:
        return None
    return math.floor(float(average) + 0.5)


async def submit_feedback(db: AsyncSession, submission: FeedbackSubmission) -> None:
    """Store one feedback event and refresh the aggregate. The caller commits."""
    result = await db.execute(
        select(Repository).where(Repository.github_repo_id == submission.github_repo_id)
    )
    repo = result.scalar_one_or_none()
    if repo is None:
        raise NotFoundError(f"Repository not found: {submission.github_repo_id}")
    if not repo.feedback_enabled:
        raise FeedbackDisabledError()

    db.add(
        FeedbackEvent(
            repo_id=repo.id,
            github_pr_id=submission.github_pr_id,
            difficulty_rating=submission.difficulty_rating,
            responsiveness_rating=submission.responsiveness_rating,
        )
    )
    await db.flush()

    aggregate = await refresh_aggregate(db, repo.id)

    # Anonymous: a user actor with no identity.
    await write_log(
        db,
        LogEntry(
            actor=LogActor.user(github_id=None, username=None),
            action=FEEDBACK_RECEIVED_ACTION,
            entity_type=EntityType.REPOSITORY,
            entity_id=f"repo:{repo.owner}/{repo.name}",
            context={
                "difficulty_rating": submission.difficulty_rating,
                "responsiveness_rating": submission.responsiveness_rating,
            },
        ),
    )
    logger.info(
        "Feedback recorded for repository %d (%d total)",
        repo.github_repo_id, aggregate.feedback_count,
    )


async def refresh_aggregate(db: AsyncSession, repo_id: int) -> RepositoryFeedbackAggregate:
    """Recompute averages and count from every event of the repository."""
    result = await db.execute(
        select(
            func.avg(FeedbackEvent.difficulty_rating),
            func.avg(FeedbackEvent.responsiveness_rating),
            func.count(FeedbackEvent.id),
        ).where(FeedbackEvent.repo_id == repo_id)
    )
    avg_difficulty, avg_responsiveness, count = result.one()

    existing = await db.execute(
        select(RepositoryFeedbackAggregate).where(
            RepositoryFeedbackAggregate.repo_id == repo_id
        )
    )
    aggregate = existing.scalar_one_or_none()
    if aggregate is None:
        aggregate = RepositoryFeedbackAggregate(repo_id=repo_id)
        db.add(aggregate)

    aggregate.avg_difficulty_bucket = to_bucket(avg_difficulty)
    aggregate.avg_responsiveness_bucket = to_bucket(avg_responsiveness)
    aggregate.feedback_count = int(count)
    aggregate.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return aggregate
