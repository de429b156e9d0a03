"""
GitHub browsing endpoints for the signed-in user.
"""

import logging

from fastapi import APIRouter, Depends

from pr_reviewer.api.dependencies import get_github_client, require_session
from pr_reviewer.models.session import Session
from pr_reviewer.services.github_client import GitHubClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["github"])


@router.get("/user")
async def get_user(session: Session = Depends(require_session)) -> dict:
    user = session.user
    return {
        "success": True,
        "user": {
            "login": user.get("login"),
            "name": user.get("name"),
            "avatar_url": user.get("avatar_url"),
            "email": user.get("email"),
        },
    }


@router.get("/repos")
async def list_repositories(github: GitHubClient = Depends(get_github_client)) -> dict:
    """List the user's most recently updated repositories."""
    repos = await github.get_user_repos()
    logger.info(f"Found {len(repos)} repositories")
    return {"success": True, "repos": [repo.model_dump() for repo in repos]}


@router.get("/repos/{owner}/{repo}/pulls")
async def list_pull_requests(
    owner: str,
    repo: str,
    github: GitHubClient = Depends(get_github_client),
) -> dict:
    """List open pull requests of a repository."""
    pulls = await github.get_pull_requests(owner, repo)
    logger.info(f"Found {len(pulls)} open pull requests in {owner}/{repo}")
    return {"success": True, "pulls": [pr.model_dump() for pr in pulls]}
