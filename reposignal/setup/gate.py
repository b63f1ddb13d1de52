"""Setup window gate.

Pure decision over installation state and the current time; no I/O. Always
consulted before the remote verification so completed or expired
installations never cost a GitHub round-trip.
"""

import enum
from datetime import datetime, timezone

from reposignal.db.models import Installation


class SetupGate(str, enum.Enum):
    ALLOWED = "allowed"
    ALREADY_COMPLETED = "already_completed"
    WINDOW_EXPIRED = "window_expired"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite drops tzinfo) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def can_setup(installation: Installation, now: datetime) -> SetupGate:
    if installation.setup_completed:
        return SetupGate.ALREADY_COMPLETED
    if installation.setup_allowed_until is None:
        return SetupGate.WINDOW_EXPIRED
    if as_utc(now) > as_utc(installation.setup_allowed_until):
        return SetupGate.WINDOW_EXPIRED
    return SetupGate.ALLOWED
