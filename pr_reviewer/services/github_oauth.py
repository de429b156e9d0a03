"""
GitHub OAuth authorization-code flow.
"""

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from pr_reviewer.config import settings
from pr_reviewer.failures import UpstreamStatusFailure, failure_from_exception
from pr_reviewer.services.github_client import GitHubClient
from pr_reviewer.utils.logging import get_logger

logger = get_logger(__name__)

OAUTH_SCOPE = "repo,user:email"


class GitHubOAuth:
    """Builds the authorize URL and exchanges codes for access tokens."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        oauth_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.github_client_id
        self.client_secret = client_secret if client_secret is not None else settings.github_client_secret
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.redirect_uri
        self.oauth_url = (oauth_url or settings.github_oauth_url).rstrip("/")
        self._http_client = http_client

    def get_auth_url(self) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": OAUTH_SCOPE,
        })
        return f"{self.oauth_url}/authorize?{query}"

    async def exchange_code_for_token(self, code: str) -> str:
        """
        Exchange an authorization code for an access token.

        Raises:
            Failure: If the exchange fails or GitHub returns no token
        """
        url = f"{self.oauth_url}/access_token"
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        headers = {"Accept": "application/json"}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise failure_from_exception(e, url=url) from e

        token = data.get("access_token")
        if not token:
            description = data.get("error_description") or "Failed to get access token"
            logger.warning(f"OAuth code exchange rejected: {description}")
            raise UpstreamStatusFailure(401, description, url=url)
        return token

    async def get_user_info(self, token: str) -> Dict[str, Any]:
        client = GitHubClient(token, http_client=self._http_client)
        return await client.get_authenticated_user()
