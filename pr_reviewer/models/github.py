"""GitHub resource data models."""

from typing import List, Optional

from pydantic import BaseModel


class RepositorySummary(BaseModel):
    """Repository entry returned by the repository listing."""

    id: int
    name: str
    full_name: str
    owner: str
    description: Optional[str] = None
    updated_at: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    has_issues: bool = False
    open_issues_count: int = 0


class BranchRef(BaseModel):
    """Head or base reference of a pull request."""

    ref: str
    sha: str


class PullRequestSummary(BaseModel):
    """Open pull request entry."""

    id: int
    number: int
    title: str
    body: Optional[str] = None
    state: str
    user: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    html_url: Optional[str] = None
    diff_url: Optional[str] = None
    head: Optional[BranchRef] = None
    base: Optional[BranchRef] = None


class FileChange(BaseModel):
    """Per-file change summary of a pull request."""

    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None
    blob_url: Optional[str] = None


class PullRequestDiff(BaseModel):
    """Unified diff text plus the file-change summary of a pull request."""

    diff: str
    files: List[FileChange] = []


class PostedComment(BaseModel):
    """Issue comment created on a pull request."""

    id: int
    url: Optional[str] = None
    body: str
    created_at: Optional[str] = None
