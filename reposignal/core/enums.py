"""Closed value sets shared by the models, schemas and audit log."""

import enum


class AccountType(str, enum.Enum):
    USER = "user"
    ORG = "org"


class RepoState(str, enum.Enum):
    OFF = "off"
    PUBLIC = "public"
    PAUSED = "paused"


class ActorType(str, enum.Enum):
    SYSTEM = "system"
    USER = "user"
    BOT = "bot"


class EntityType(str, enum.Enum):
    INSTALLATION = "installation"
    REPOSITORY = "repository"
