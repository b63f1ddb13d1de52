"""Append-only audit log writer.

Persists exactly what the caller provides; nothing is inferred and rows
are never updated. User actors carry their GitHub identity, system and bot
actors carry none.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.enums import ActorType, EntityType
from reposignal.db.models import AuditLog


@dataclass(frozen=True)
class LogActor:
    type: ActorType
    github_id: Optional[int] = None
    username: Optional[str] = None

    @classmethod
    def system(cls) -> "LogActor":
        return cls(type=ActorType.SYSTEM)

    @classmethod
    def bot(cls) -> "LogActor":
        return cls(type=ActorType.BOT)

    @classmethod
    def user(cls, github_id: Optional[int], username: Optional[str]) -> "LogActor":
        return cls(type=ActorType.USER, github_id=github_id, username=username)


@dataclass(frozen=True)
class LogEntry:
    actor: LogActor
    action: str
    entity_type: EntityType
    entity_id: str
    context: Optional[dict[str, Any]] = field(default=None)


async def write_log(db: AsyncSession, entry: LogEntry) -> AuditLog:
    """Insert one audit row and flush it. The caller owns the commit."""
    is_user = entry.actor.type == ActorType.USER
    row = AuditLog(
        actor_type=entry.actor.type.value,
        actor_github_id=entry.actor.github_id if is_user else None,
        actor_username=entry.actor.username if is_user else None,
        action=entry.action,
        entity_type=entry.entity_type.value,
        entity_id=entry.entity_id,
        context=entry.context,
    )
    db.add(row)
    await db.flush()
    return row
