import pytest
import httpx
from json import JSONDecodeError
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse
from glytch.core.errors import GitHubAPIError, UpstreamAuthError
from glytch.services.github_oauth import GitHubIdentityProvider


def response(payload, status_code=200):
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    return mock_response


def non_json_response():
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.side_effect = JSONDecodeError("Expecting value", "<html>", 0)
    return mock_response


def make_provider(post=None, get=None):
    provider = GitHubIdentityProvider.__new__(GitHubIdentityProvider)
    provider.client_id = "client-id"
    provider.client_secret = "client-secret"
    provider.redirect_uri = "http://test/api/auth/github/callback"
    provider.oauth_url = "https://github.com/login/oauth"
    provider.api_url = "https://api.github.com"
    provider.client = AsyncMock()
    provider.client.post = AsyncMock(return_value=post)
    provider.client.get = AsyncMock(return_value=get)
    return provider


def test_authorize_url_carries_state_and_scope():
    provider = make_provider()
    url = urlparse(provider.authorize_url("abc123"))
    query = parse_qs(url.query)

    assert url.netloc == "github.com"
    assert url.path == "/login/oauth/authorize"
    assert query["state"] == ["abc123"]
    assert query["client_id"] == ["client-id"]
    assert query["scope"] == ["read:user user:email repo"]


@pytest.mark.asyncio
async def test_exchange_code_returns_identity_and_token():
    provider = make_provider(
        post=response({"access_token": "gho_token", "token_type": "bearer"}),
        get=response({
            "id": 42,
            "login": "alice",
            "email": None,
            "avatar_url": "https://avatars.githubusercontent.com/u/42",
            "name": "Alice",
        }),
    )

    identity, token = await provider.exchange_code("code-1")

    assert token == "gho_token"
    assert identity.id == "42"
    assert identity.login == "alice"
    assert identity.email is None
    assert identity.name == "Alice"
    headers = provider.client.get.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer gho_token"


@pytest.mark.asyncio
async def test_exchange_code_error_payload():
    provider = make_provider(
        post=response({"error": "bad_verification_code", "error_description": "The code passed is incorrect or expired."}),
    )

    with pytest.raises(UpstreamAuthError, match="incorrect or expired"):
        await provider.exchange_code("stale")
    provider.client.get.assert_not_called()


@pytest.mark.asyncio
async def test_exchange_code_non_success_status():
    provider = make_provider(post=response({}, status_code=500))

    with pytest.raises(UpstreamAuthError):
        await provider.exchange_code("code-1")


@pytest.mark.asyncio
@pytest.mark.parametrize("profile", [{"login": "alice"}, {"id": None, "login": "alice"}, []])
async def test_exchange_code_profile_without_id(profile):
    provider = make_provider(post=response({"access_token": "gho_token"}), get=response(profile))

    with pytest.raises(UpstreamAuthError):
        await provider.exchange_code("code-1")


@pytest.mark.asyncio
async def test_exchange_code_profile_status_error():
    provider = make_provider(post=response({"access_token": "gho_token"}), get=response({}, status_code=401))

    with pytest.raises(UpstreamAuthError):
        await provider.exchange_code("code-1")


@pytest.mark.asyncio
async def test_exchange_code_transport_error():
    provider = make_provider()
    provider.client.post = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))

    with pytest.raises(UpstreamAuthError):
        await provider.exchange_code("code-1")


@pytest.mark.asyncio
async def test_list_repositories_uses_user_token():
    repos = [{"id": 1, "full_name": "alice/project"}]
    provider = make_provider(get=response(repos))

    assert await provider.list_repositories("gho_user") == repos
    kwargs = provider.client.get.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer gho_user"
    assert kwargs["params"]["affiliation"] == "owner,collaborator"


@pytest.mark.asyncio
async def test_list_repositories_requires_token():
    provider = make_provider()

    with pytest.raises(GitHubAPIError):
        await provider.list_repositories(None)
    provider.client.get.assert_not_called()


@pytest.mark.asyncio
async def test_list_repositories_upstream_failure():
    provider = make_provider(get=response({"message": "Bad credentials"}, status_code=401))

    with pytest.raises(GitHubAPIError) as exc:
        await provider.list_repositories("gho_revoked")
    assert exc.value.upstream_status == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("token_response", [non_json_response(), response(["gho_token"]), response("gho_token")])
async def test_exchange_code_malformed_token_body(token_response):
    provider = make_provider(post=token_response)

    with pytest.raises(UpstreamAuthError):
        await provider.exchange_code("code-1")
    provider.client.get.assert_not_called()


@pytest.mark.asyncio
async def test_exchange_code_non_json_profile():
    provider = make_provider(post=response({"access_token": "gho_token"}), get=non_json_response())

    with pytest.raises(UpstreamAuthError):
        await provider.exchange_code("code-1")


@pytest.mark.asyncio
@pytest.mark.parametrize("repos_response", [non_json_response(), response({"message": "oops"})])
async def test_list_repositories_malformed_body(repos_response):
    provider = make_provider(get=repos_response)

    with pytest.raises(GitHubAPIError):
        await provider.list_repositories("gho_user")
