"""SQLAlchemy 2.0 declarative models for installations, repositories, feedback and logs.

Uses dialect-agnostic types so models work with both PostgreSQL
(production) and SQLite (tests).
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER primary keys; Postgres gets BIGSERIAL.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class Installation(Base):
    """A GitHub App installation on a user or organisation account.

    Setup lifecycle: pending (window open) -> completed, or pending -> expired.
    ``setup_completed`` never reverts, and ``setup_allowed_until`` is cleared
    in the same statement that sets it.
    """

    __tablename__ = "installations"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    github_installation_id: Mapped[int] = mapped_column(
        BigInteger, unique=True, nullable=False
    )
    account_type: Mapped[str] = mapped_column(String(10), nullable=False)
    account_login: Mapped[str] = mapped_column(String(255), nullable=False)
    setup_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    setup_allowed_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    repositories: Mapped[list["Repository"]] = relationship(
        back_populates="installation", cascade="all, delete-orphan"
    )


class Repository(Base):
    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    installation_id: Mapped[int] = mapped_column(
        ForeignKey("installations.id", ondelete="CASCADE"), nullable=False
    )
    github_repo_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(
        String(10), nullable=False, default="off", server_default=text("'off'")
    )
    allow_unclassified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    allow_classification: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    allow_inference: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    feedback_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    reposignal_description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    installation: Mapped["Installation"] = relationship(back_populates="repositories")
    feedback_aggregate: Mapped[Optional["RepositoryFeedbackAggregate"]] = relationship(
        back_populates="repository", uselist=False
    )


class AuditLog(Base):
    """Immutable audit trail. Rows are inserted, never updated or deleted.

    actor_github_id / actor_username are only set for user actors.
    """

    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    actor_type: Mapped[str] = mapped_column(String(10), nullable=False)
    actor_github_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    actor_username: Mapped[Optional[str]] = mapped_column(String(255))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    context: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class FeedbackEvent(Base):
    """One anonymous contributor rating. Private; only aggregates are exposed.

    No contributor identity is stored, only the pull request it refers to.
    """

    __tablename__ = "feedback_events"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    github_pr_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    difficulty_rating: Mapped[Optional[int]] = mapped_column(Integer)
    responsiveness_rating: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class RepositoryFeedbackAggregate(Base):
    """Rounded averages over a repository's feedback events (one row per repo)."""

    __tablename__ = "repository_feedback_aggregates"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    avg_difficulty_bucket: Mapped[Optional[int]] = mapped_column(Integer)
    avg_responsiveness_bucket: Mapped[Optional[int]] = mapped_column(Integer)
    feedback_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    repository: Mapped["Repository"] = relationship(back_populates="feedback_aggregate")
