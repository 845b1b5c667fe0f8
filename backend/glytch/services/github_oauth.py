import logging
from typing import Optional
from urllib.parse import urlencode
import httpx
from pydantic import ValidationError
from glytch.config import settings
from glytch.core.errors import GitHubAPIError, UpstreamAuthError
from glytch.schemas.auth import IdentityAssertion

logger = logging.getLogger(__name__)

OAUTH_SCOPE = "read:user user:email repo"
API_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
    "User-Agent": "glytch-identity",
}


def json_body(resp, step: str):
    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamAuthError(f"{step} returned a non-JSON body") from e


class GitHubIdentityProvider:
    """GitHub OAuth code exchange and user-scoped REST calls."""

    def __init__(self, client_id: str = None, client_secret: str = None, redirect_uri: str = None):
        self.client_id = client_id or settings.GITHUB_CLIENT_ID
        self.client_secret = client_secret or settings.GITHUB_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.GITHUB_REDIRECT_URI
        self.oauth_url = settings.GITHUB_OAUTH_URL
        self.api_url = settings.GITHUB_API_URL
        self.client = httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self.client.aclose()

    def authorize_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": OAUTH_SCOPE,
            "state": state,
        })
        return f"{self.oauth_url}/authorize?{query}"

    async def exchange_token(self, code: str) -> str:
        try:
            resp = await self.client.post(
                f"{self.oauth_url}/access_token",
                headers={"Accept": "application/json"},
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamAuthError(f"Token exchange transport error: {e}") from e

        if resp.status_code != 200:
            raise UpstreamAuthError(f"Token exchange failed with status {resp.status_code}")
        data = json_body(resp, "Token exchange")
        if not isinstance(data, dict):
            raise UpstreamAuthError("Token exchange returned a non-object body")
        if data.get("error"):
            raise UpstreamAuthError(data.get("error_description") or data["error"])
        token = data.get("access_token")
        if not token:
            raise UpstreamAuthError("Token exchange returned no access_token")
        return token

    async def fetch_identity(self, access_token: str) -> IdentityAssertion:
        try:
            resp = await self.client.get(
                f"{self.api_url}/user",
                headers={**API_HEADERS, "Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise UpstreamAuthError(f"Profile fetch transport error: {e}") from e

        if resp.status_code != 200:
            raise UpstreamAuthError(f"Profile fetch failed with status {resp.status_code}")
        profile = json_body(resp, "Profile fetch")
        if not isinstance(profile, dict) or profile.get("id") in (None, ""):
            raise UpstreamAuthError("GitHub profile has no id")
        try:
            return IdentityAssertion(
                id=profile["id"],
                login=profile.get("login") or "",
                email=profile.get("email"),
                avatar_url=profile.get("avatar_url"),
                name=profile.get("name"),
            )
        except ValidationError as e:
            raise UpstreamAuthError("Malformed GitHub profile") from e

    async def exchange_code(self, code: str) -> tuple[IdentityAssertion, str]:
        """Turn an authorization code into the caller's identity and token."""
        token = await self.exchange_token(code)
        identity = await self.fetch_identity(token)
        logger.info("GitHub identity %s (%s) authenticated", identity.id, identity.login)
        return identity, token

    async def list_repositories(self, access_token: Optional[str]) -> list[dict]:
        if not access_token:
            raise GitHubAPIError("No user-scoped GitHub token")
        try:
            resp = await self.client.get(
                f"{self.api_url}/user/repos",
                params={"per_page": 100, "sort": "updated", "affiliation": "owner,collaborator"},
                headers={**API_HEADERS, "Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GitHub transport error: {e}") from e
        if resp.status_code != 200:
            logger.error("GitHub repos request failed: %s", resp.status_code)
            raise GitHubAPIError(upstream_status=resp.status_code)
        try:
            repos = resp.json()
        except ValueError as e:
            raise GitHubAPIError("GitHub returned a non-JSON body") from e
        if not isinstance(repos, list):
            raise GitHubAPIError("GitHub returned an unexpected repos payload")
        return repos
