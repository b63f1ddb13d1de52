"""Tests for anonymous feedback: service rules, aggregates and POST /bot/feedback."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.errors import FeedbackDisabledError, NotFoundError
from reposignal.db.models import (
    AuditLog,
    FeedbackEvent,
    Repository,
    RepositoryFeedbackAggregate,
)
from reposignal.feedback.schemas import FeedbackSubmission
from reposignal.feedback.service import FEEDBACK_RECEIVED_ACTION, submit_feedback, to_bucket

from conftest import INSTALLATION_ID, seed_installation

WIDGETS_REPO_ID = INSTALLATION_ID * 1000


async def _enable_feedback(session: AsyncSession, github_repo_id: int = WIDGETS_REPO_ID) -> None:
    await session.execute(
        update(Repository)
        .where(Repository.github_repo_id == github_repo_id)
        .values(feedback_enabled=True)
    )
    await session.commit()


def _submission(difficulty=4, responsiveness=2, repo_id=WIDGETS_REPO_ID, pr_id=42):
    return FeedbackSubmission.model_validate(
        {
            "githubRepoId": repo_id,
            "githubPrId": pr_id,
            "difficultyRating": difficulty,
            "responsivenessRating": responsiveness,
        }
    )


async def _aggregate(session: AsyncSession) -> RepositoryFeedbackAggregate:
    result = await session.execute(
        select(RepositoryFeedbackAggregate).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestToBucket:
    @pytest.mark.parametrize(
        "average, bucket",
        [(None, None), (1.0, 1), (2.49, 2), (2.5, 3), (4.5, 5)],
    )
    def test_rounds_half_up(self, average, bucket):
        assert to_bucket(average) == bucket


class TestSubmitFeedback:
    async def test_stores_event_and_aggregate(self, db_session):
        await seed_installation(db_session)
        await _enable_feedback(db_session)

        await submit_feedback(db_session, _submission())

        events = (await db_session.execute(select(FeedbackEvent))).scalars().all()
        assert [(e.github_pr_id, e.difficulty_rating, e.responsiveness_rating) for e in events] == [
            (42, 4, 2)
        ]
        aggregate = await _aggregate(db_session)
        assert aggregate.avg_difficulty_bucket == 4
        assert aggregate.avg_responsiveness_bucket == 2
        assert aggregate.feedback_count == 1

    async def test_aggregate_covers_every_event(self, db_session):
        await seed_installation(db_session)
        await _enable_feedback(db_session)

        await submit_feedback(db_session, _submission(difficulty=4, responsiveness=2))
        await submit_feedback(db_session, _submission(difficulty=5, responsiveness=None, pr_id=43))

        aggregate = await _aggregate(db_session)
        # (4 + 5) / 2 rounds up; the skipped rating is left out of its average
        assert aggregate.avg_difficulty_bucket == 5
        assert aggregate.avg_responsiveness_bucket == 2
        assert aggregate.feedback_count == 2

    async def test_all_ratings_skipped(self, db_session):
        await seed_installation(db_session)
        await _enable_feedback(db_session)

        await submit_feedback(db_session, _submission(difficulty=None, responsiveness=None))

        aggregate = await _aggregate(db_session)
        assert aggregate.avg_difficulty_bucket is None
        assert aggregate.avg_responsiveness_bucket is None
        assert aggregate.feedback_count == 1

    async def test_writes_anonymous_audit_record(self, db_session):
        await seed_installation(db_session)
        await _enable_feedback(db_session)

        await submit_feedback(db_session, _submission())

        row = (await db_session.execute(select(AuditLog))).scalar_one()
        assert row.action == FEEDBACK_RECEIVED_ACTION
        assert row.actor_type == "user"
        assert row.actor_github_id is None
        assert row.actor_username is None
        assert row.entity_type == "repository"
        assert row.entity_id == "repo:octo-org/widgets"
        assert row.context == {"difficulty_rating": 4, "responsiveness_rating": 2}

    async def test_unknown_repository(self, db_session):
        with pytest.raises(NotFoundError):
            await submit_feedback(db_session, _submission(repo_id=424242))

    async def test_disabled_repository_stores_nothing(self, db_session):
        await seed_installation(db_session)

        with pytest.raises(FeedbackDisabledError):
            await submit_feedback(db_session, _submission())

        assert (await db_session.execute(select(FeedbackEvent))).scalars().all() == []
        assert (await db_session.execute(select(AuditLog))).scalars().all() == []


class TestFeedbackEndpoint:
    def _body(self, **overrides):
        body = {
            "githubRepoId": WIDGETS_REPO_ID,
            "githubPrId": 42,
            "difficultyRating": 3,
            "responsivenessRating": 5,
        }
        body.update(overrides)
        return body

    async def test_accepts_feedback(self, bot_client: AsyncClient, db_session):
        await seed_installation(db_session)
        await _enable_feedback(db_session)

        res = await bot_client.post("/bot/feedback", json=self._body())

        assert res.status_code == 200
        assert res.json() == {"success": True}
        aggregate = await _aggregate(db_session)
        assert aggregate.feedback_count == 1

    async def test_requires_bot_key(self, client: AsyncClient):
        res = await client.post("/bot/feedback", json=self._body())
        assert res.status_code == 401
        assert res.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_disabled_repository_is_409(self, bot_client: AsyncClient, db_session):
        await seed_installation(db_session)

        res = await bot_client.post("/bot/feedback", json=self._body())

        assert res.status_code == 409
        assert res.json()["error"]["code"] == "FEEDBACK_DISABLED"

    async def test_unknown_repository_is_404(self, bot_client: AsyncClient):
        res = await bot_client.post("/bot/feedback", json=self._body(githubRepoId=424242))
        assert res.status_code == 404
        assert res.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"difficultyRating": 0},
            {"difficultyRating": 6},
            {"responsivenessRating": "3"},
            {"githubPrId": "42"},
            {"githubRepoId": None},
        ],
    )
    async def test_malformed_body_is_400(self, bot_client: AsyncClient, overrides):
        res = await bot_client.post("/bot/feedback", json=self._body(**overrides))
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "INVALID_INPUT"
