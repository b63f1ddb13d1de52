"""Pydantic schemas for bot-submitted contributor feedback."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt

# Ratings are 1 (worst) to 5 (best); either may be skipped.
RATING_MIN = 1
RATING_MAX = 5


class FeedbackSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    github_repo_id: StrictInt = Field(alias="githubRepoId", gt=0)
    github_pr_id: StrictInt = Field(alias="githubPrId", gt=0)
    difficulty_rating: Optional[StrictInt] = Field(
        default=None, alias="difficultyRating", ge=RATING_MIN, le=RATING_MAX
    )
    responsiveness_rating: Optional[StrictInt] = Field(
        default=None, alias="responsivenessRating", ge=RATING_MIN, le=RATING_MAX
    )


class FeedbackSummary(BaseModel):
    """Public view of a repository's feedback. Individual events never leave the API."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    avg_difficulty_bucket: Optional[int] = Field(alias="avgDifficultyBucket")
    avg_responsiveness_bucket: Optional[int] = Field(alias="avgResponsivenessBucket")
    feedback_count: int = Field(alias="feedbackCount")
