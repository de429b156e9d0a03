"""
GitHub OAuth login endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from pr_reviewer.api.dependencies import (
    SESSION_COOKIE,
    get_oauth,
    get_session_store,
    session_id_from_request,
)
from pr_reviewer.services.github_oauth import GitHubOAuth
from pr_reviewer.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/auth/login")
async def login(oauth: GitHubOAuth = Depends(get_oauth)) -> RedirectResponse:
    """Redirect the browser to the GitHub authorize page."""
    return RedirectResponse(oauth.get_auth_url())


@router.get("/auth/github/callback")
async def github_callback(
    code: Optional[str] = None,
    oauth: GitHubOAuth = Depends(get_oauth),
    store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    """
    Complete the OAuth flow and start a session.

    Raises:
        HTTPException: 400 if the authorization code is missing
        Failure: If the token exchange or user lookup fails
    """
    if not code:
        raise HTTPException(status_code=400, detail="Authorization code not provided")

    token = await oauth.exchange_code_for_token(code)
    user = await oauth.get_user_info(token)
    session_id = await store.create(token, user)
    logger.info(f"Session created for {user.get('login')}")

    response = JSONResponse({
        "success": True,
        "sessionToken": session_id,
        "user": {
            "login": user.get("login"),
            "name": user.get("name"),
            "avatar_url": user.get("avatar_url"),
        },
    })
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=store.ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/logout")
async def logout(request: Request, store: SessionStore = Depends(get_session_store)) -> JSONResponse:
    session_id = session_id_from_request(request)
    if session_id:
        await store.delete(session_id)

    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    response.delete_cookie(SESSION_COOKIE)
    return response
