"""Pydantic schemas for the public setup endpoints.

GET  /setup/context   -> SetupContextResponse
POST /setup/complete  -> CompleteSetupRequest -> CompleteSetupResponse

Wire names are camelCase to match the setup frontend; ``installation_id``
stays snake_case as GitHub sends it in the post-install redirect. Strict
types reject ``"1"`` for an id or ``"true"`` for a flag.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

from reposignal.core.enums import RepoState


class SetupRepository(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner: str
    name: str
    state: RepoState


class SetupContextResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_login: str = Field(alias="accountLogin")
    repositories: list[SetupRepository]
    setup_expires_at: datetime = Field(alias="setupExpiresAt")


class RepositoryStateUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_id: StrictInt = Field(alias="repoId", gt=0)
    state: RepoState


class SetupSettings(BaseModel):
    """Flags applied to every repository touched by the setup."""

    model_config = ConfigDict(populate_by_name=True)

    allow_unclassified: StrictBool = Field(alias="allowUnclassified")
    allow_classification: StrictBool = Field(alias="allowClassification")
    allow_inference: StrictBool = Field(alias="allowInference")
    feedback_enabled: StrictBool = Field(alias="feedbackEnabled")


class CompleteSetupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    installation_id: StrictInt = Field(gt=0)
    repositories: list[RepositoryStateUpdate]
    settings: SetupSettings


class CompleteSetupResponse(BaseModel):
    success: bool
