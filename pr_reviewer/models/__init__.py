"""Data models for the AI GitHub PR Reviewer."""

from .api_response import (
    AnalyzedPullRequest,
    AnalyzeRequest,
    PostReviewRequest,
    PullRequestAnalysis,
)
from .error import ClassifiedError, ErrorKind, ErrorResponse
from .github import (
    BranchRef,
    FileChange,
    PostedComment,
    PullRequestDiff,
    PullRequestSummary,
    RepositorySummary,
)
from .review import ModelStatus, PullRequestContext, ReviewMethod, ReviewResult
from .session import Session

__all__ = [
    # Review models
    "PullRequestContext",
    "ModelStatus",
    "ReviewMethod",
    "ReviewResult",
    # Error models
    "ErrorKind",
    "ClassifiedError",
    "ErrorResponse",
    # Session models
    "Session",
    # GitHub models
    "RepositorySummary",
    "BranchRef",
    "PullRequestSummary",
    "FileChange",
    "PullRequestDiff",
    "PostedComment",
    # API models
    "AnalyzeRequest",
    "PostReviewRequest",
    "AnalyzedPullRequest",
    "PullRequestAnalysis",
]
