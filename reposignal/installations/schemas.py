"""Pydantic schemas for the bot installation sync endpoint."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from reposignal.core.enums import AccountType, RepoState


class InstallationData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    github_installation_id: int = Field(alias="githubInstallationId", gt=0)
    account_type: AccountType = Field(alias="accountType")
    account_login: str = Field(alias="accountLogin", min_length=1, max_length=255)
    setup_completed: Optional[bool] = Field(default=None, alias="setupCompleted")


class RepositoryData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    github_repo_id: int = Field(alias="githubRepoId", gt=0)
    owner: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    state: Optional[RepoState] = None


class SyncInstallationRequest(BaseModel):
    installation: InstallationData
    repositories: list[RepositoryData] = []


class InstallationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    github_installation_id: int = Field(alias="githubInstallationId")
    account_type: AccountType = Field(alias="accountType")
    account_login: str = Field(alias="accountLogin")
    setup_completed: bool = Field(alias="setupCompleted")
    setup_allowed_until: Optional[datetime] = Field(default=None, alias="setupAllowedUntil")
