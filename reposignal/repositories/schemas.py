"""Pydantic schemas for repository settings and the public repository view."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

from reposignal.core.enums import RepoState
from reposignal.feedback.schemas import FeedbackSummary


class SettingsActor(BaseModel):
    """The GitHub user on whose behalf the bot changes settings."""

    model_config = ConfigDict(populate_by_name=True)

    github_id: StrictInt = Field(alias="githubId", gt=0)
    username: str = Field(min_length=1, max_length=255)


class RepositorySettingsUpdate(BaseModel):
    """Partial update: only the fields present in the body are written."""

    model_config = ConfigDict(populate_by_name=True)

    reposignal_description: Optional[str] = Field(
        default=None, alias="reposignalDescription", max_length=2000
    )
    state: Optional[RepoState] = None
    allow_unclassified: Optional[StrictBool] = Field(default=None, alias="allowUnclassified")
    allow_classification: Optional[StrictBool] = Field(default=None, alias="allowClassification")
    allow_inference: Optional[StrictBool] = Field(default=None, alias="allowInference")
    feedback_enabled: Optional[StrictBool] = Field(default=None, alias="feedbackEnabled")
    actor: Optional[SettingsActor] = None

    def changes(self) -> dict:
        """Column values explicitly sent by the caller, actor excluded.

        Only the description may be cleared with null; a null state or flag
        is ignored.
        """
        sent = self.model_dump(exclude_unset=True, exclude={"actor"})
        return {
            key: value
            for key, value in sent.items()
            if value is not None or key == "reposignal_description"
        }


class RepositoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    github_repo_id: int = Field(alias="githubRepoId")
    owner: str
    name: str
    state: RepoState
    reposignal_description: Optional[str] = Field(alias="reposignalDescription")
    allow_unclassified: bool = Field(alias="allowUnclassified")
    allow_classification: bool = Field(alias="allowClassification")
    allow_inference: bool = Field(alias="allowInference")
    feedback_enabled: bool = Field(alias="feedbackEnabled")
    updated_at: datetime = Field(alias="updatedAt")


class PublicRepository(BaseModel):
    """What anyone may see about a repository that opted into discovery."""

    model_config = ConfigDict(populate_by_name=True)

    github_repo_id: int = Field(alias="githubRepoId")
    owner: str
    name: str
    reposignal_description: Optional[str] = Field(alias="reposignalDescription")
    feedback: Optional[FeedbackSummary] = None
