"""Review generation data models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReviewMethod(str, Enum):
    """How the model output was obtained."""

    API = "API"
    CLI = "CLI"


class PullRequestContext(BaseModel):
    """Pull request metadata rendered into the review prompt."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    author: str = ""


class ModelStatus(BaseModel):
    """Result of a single probe of the inference service catalog."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, protected_namespaces=())

    running: bool
    model_available: bool = Field(False, alias="modelAvailable")
    available_models: List[str] = Field(default_factory=list, alias="availableModels")
    error: Optional[str] = None

    @model_validator(mode="after")
    def _unavailable_when_down(self) -> "ModelStatus":
        if not self.running and self.model_available:
            raise ValueError("model_available requires running")
        return self


class ReviewResult(BaseModel):
    """
    Outcome of one review generation.

    Exactly one of ``review`` and ``error`` is set, matching ``success``.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    review: Optional[str] = None
    error: Optional[str] = None
    model: Optional[str] = None
    method: Optional[ReviewMethod] = None

    @model_validator(mode="after")
    def _success_or_error(self) -> "ReviewResult":
        if self.success:
            if self.review is None or self.error is not None:
                raise ValueError("successful result needs a review and no error")
            if self.method is None:
                raise ValueError("successful result needs a method")
        elif self.error is None or self.review is not None:
            raise ValueError("failed result needs an error and no review")
        return self

    @classmethod
    def ok(cls, review: str, model: str, method: ReviewMethod) -> "ReviewResult":
        return cls(success=True, review=review, model=model, method=method)

    @classmethod
    def failed(cls, error: str, model: Optional[str] = None) -> "ReviewResult":
        return cls(success=False, error=error, model=model)
