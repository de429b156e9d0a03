"""
GitHub REST API client.

Fetches repositories, pull requests, diffs and file summaries, and creates
issue comments, authenticated with a user's OAuth access token. Every call
converts transport and status errors into a Failure at this boundary.
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from pr_reviewer.config import settings
from pr_reviewer.failures import failure_from_exception
from pr_reviewer.models.github import (
    BranchRef,
    FileChange,
    PostedComment,
    PullRequestDiff,
    PullRequestSummary,
    RepositorySummary,
)
from pr_reviewer.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class GitHubClient:
    """Thin async wrapper around the GitHub REST endpoints the reviewer needs."""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.github_api_url).rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Authorization": f"token {token}",
            "Accept": JSON_MEDIA_TYPE,
        }
        self._http_client = http_client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        accept: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Issue one request and raise a Failure on any error.

        Raises:
            Failure: UpstreamStatusFailure for non-success statuses, otherwise
                the failure matching the transport error
        """
        url = f"{self.base_url}{path}"
        headers = dict(self.headers)
        if accept:
            headers["Accept"] = accept

        start_time = time.monotonic()
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, headers=headers, params=params, json=json, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, params=params, json=json)
            response.raise_for_status()
        except Exception as e:
            failure = failure_from_exception(e, url=url)
            log_api_call(
                logger,
                service="github",
                endpoint=path,
                method=method,
                status_code=getattr(failure, "status_code", None),
                duration_ms=(time.monotonic() - start_time) * 1000,
                error=failure.message,
            )
            raise failure from e

        log_api_call(
            logger,
            service="github",
            endpoint=path,
            method=method,
            status_code=response.status_code,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return response

    async def get_authenticated_user(self) -> Dict[str, Any]:
        response = await self._request("GET", "/user")
        return response.json()

    async def get_user_repos(self) -> List[RepositorySummary]:
        """List the 50 most recently updated repositories of the user."""
        response = await self._request(
            "GET",
            "/user/repos",
            params={"sort": "updated", "direction": "desc", "per_page": 50},
        )
        return [
            RepositorySummary(
                id=repo["id"],
                name=repo["name"],
                full_name=repo["full_name"],
                owner=repo["owner"]["login"],
                description=repo.get("description"),
                updated_at=repo.get("updated_at"),
                language=repo.get("language"),
                stargazers_count=repo.get("stargazers_count") or 0,
                forks_count=repo.get("forks_count") or 0,
                has_issues=bool(repo.get("has_issues")),
                open_issues_count=repo.get("open_issues_count") or 0,
            )
            for repo in response.json()
        ]

    async def get_pull_requests(self, owner: str, repo: str) -> List[PullRequestSummary]:
        """List open pull requests, most recently updated first."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls",
            params={"state": "open", "sort": "updated", "direction": "desc"},
        )
        return [_pull_summary(pr) for pr in response.json()]

    async def get_pull_request(self, owner: str, repo: str, pr_number: int) -> Dict[str, Any]:
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}")
        return response.json()

    async def get_pull_request_diff(self, owner: str, repo: str, pr_number: int) -> str:
        """Fetch the unified diff text of a pull request."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls/{pr_number}",
            accept=DIFF_MEDIA_TYPE,
        )
        return response.text

    async def get_pull_request_files(self, owner: str, repo: str, pr_number: int) -> List[FileChange]:
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}/files")
        return [
            FileChange(
                filename=entry["filename"],
                status=entry.get("status", "modified"),
                additions=entry.get("additions") or 0,
                deletions=entry.get("deletions") or 0,
                changes=entry.get("changes") or 0,
                patch=entry.get("patch"),
                blob_url=entry.get("blob_url"),
            )
            for entry in response.json()
        ]

    async def fetch_diff(self, owner: str, repo: str, pr_number: int) -> PullRequestDiff:
        """
        Fetch the diff text and the file-change summary of a pull request.

        The file summary is informational; if it cannot be fetched the diff
        is returned with an empty file list.
        """
        diff = await self.get_pull_request_diff(owner, repo, pr_number)
        try:
            files = await self.get_pull_request_files(owner, repo, pr_number)
        except Exception as e:
            logger.warning(f"Could not fetch file summary for {owner}/{repo}#{pr_number}: {e}")
            files = []
        return PullRequestDiff(diff=diff, files=files)

    async def post_issue_comment(self, owner: str, repo: str, pr_number: int, body: str) -> PostedComment:
        """Create an issue comment on the pull request conversation."""
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{pr_number}/comments",
            json={"body": body},
        )
        data = response.json()
        return PostedComment(
            id=data["id"],
            url=data.get("html_url"),
            body=data.get("body", body),
            created_at=data.get("created_at"),
        )


def _pull_summary(pr: Dict[str, Any]) -> PullRequestSummary:
    head = pr.get("head") or {}
    base = pr.get("base") or {}
    return PullRequestSummary(
        id=pr["id"],
        number=pr["number"],
        title=pr.get("title") or "",
        body=pr.get("body"),
        state=pr.get("state", "open"),
        user=(pr.get("user") or {}).get("login", ""),
        created_at=pr.get("created_at"),
        updated_at=pr.get("updated_at"),
        html_url=pr.get("html_url"),
        diff_url=pr.get("diff_url"),
        head=BranchRef(ref=head["ref"], sha=head["sha"]) if head else None,
        base=BranchRef(ref=base["ref"], sha=base["sha"]) if base else None,
    )
