"""
Shared FastAPI dependencies: session store, review pipeline and the
authenticated session.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request

from pr_reviewer.config import settings
from pr_reviewer.models.session import Session
from pr_reviewer.services.github_client import GitHubClient
from pr_reviewer.services.github_oauth import GitHubOAuth
from pr_reviewer.services.review_pipeline import ReviewPipeline, create_review_pipeline
from pr_reviewer.services.session_store import SessionStore, create_session_store

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_id"

_session_store: Optional[SessionStore] = None
_pipeline: Optional[ReviewPipeline] = None


def get_session_store() -> SessionStore:
    """Get or create the application-wide session store."""
    global _session_store
    if _session_store is None:
        _session_store = create_session_store(
            settings.redis_url,
            ttl_seconds=settings.session_ttl_seconds,
            max_sessions=settings.max_sessions,
        )
    return _session_store


def get_pipeline() -> ReviewPipeline:
    """Get or create the application-wide review pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = create_review_pipeline()
    return _pipeline


def get_oauth() -> GitHubOAuth:
    return GitHubOAuth()


def session_id_from_request(request: Request) -> Optional[str]:
    """Read the session id from the cookie, or from a Bearer token."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        return session_id
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split("Bearer ", 1)[1].strip() or None
    return None


async def require_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> Session:
    """
    Resolve the caller's session.

    Raises:
        HTTPException: 401 if no valid session is attached
    """
    session_id = session_id_from_request(request)
    if not session_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    session = await store.get(session_id)
    if session is None:
        logger.info("Request with unknown or expired session")
        raise HTTPException(status_code=401, detail="Authentication required")
    return session


def get_github_client(session: Session = Depends(require_session)) -> GitHubClient:
    return GitHubClient(session.token)
