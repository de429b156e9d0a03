"""API request and response data models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .review import ReviewMethod


class AnalyzeRequest(BaseModel):
    """Body of ``POST /api/analyze-pr``."""

    model_config = ConfigDict(populate_by_name=True)

    owner: Optional[str] = None
    repo: Optional[str] = None
    pr_number: Optional[int] = Field(None, alias="prNumber")


class PostReviewRequest(AnalyzeRequest):
    """Body of ``POST /api/post-review``; ``body`` and ``review`` are synonyms."""

    body: Optional[str] = None
    review: Optional[str] = None

    @property
    def review_text(self) -> Optional[str]:
        return self.body or self.review


class AnalyzedPullRequest(BaseModel):
    """Pull request summary included with an analysis."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    author: str
    url: Optional[str] = None
    files_changed: int = Field(0, alias="filesChanged")


class PullRequestAnalysis(BaseModel):
    """Successful pipeline output."""

    pr: AnalyzedPullRequest
    review: str
    model: str
    method: ReviewMethod
