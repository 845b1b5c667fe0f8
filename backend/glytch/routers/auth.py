import logging
import secrets
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from glytch.config import settings
from glytch.core.deps import (
    get_current_account,
    get_identity_provider,
    get_optional_account,
    get_session_store,
    redis_client,
    set_cookie,
    set_session_cookie,
)
from glytch.core.errors import NotAuthenticated, UpstreamAuthError
from glytch.core.security import AUTH_COOKIE, SESSION_COOKIE, create_access_token
from glytch.database import get_db
from glytch.models.account import GitHubAccount
from glytch.schemas.auth import AccountResponse, IdentityAssertion
from glytch.services.github_oauth import GitHubIdentityProvider
from glytch.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

OAUTH_STATE_TTL = 600  # 10 minutes


def frontend_redirect(path: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.FRONTEND_URL}{path}", status_code=302)


def identity_from_account(account: GitHubAccount) -> IdentityAssertion:
    return IdentityAssertion(
        id=account.github_id,
        login=account.login,
        email=account.email,
        avatar_url=account.avatar_url,
        name=account.name,
    )


async def upsert_account(db: AsyncSession, identity: IdentityAssertion, access_token: str) -> GitHubAccount:
    account = await db.scalar(select(GitHubAccount).where(GitHubAccount.github_id == identity.id))
    if account is None:
        account = GitHubAccount(github_id=identity.id)
        db.add(account)
    account.login = identity.login
    account.email = identity.email
    account.avatar_url = identity.avatar_url
    account.name = identity.name
    account.access_token = access_token
    await db.commit()
    await db.refresh(account)
    return account


@router.get("/github/login")
async def github_login(
    redis: Redis = Depends(redis_client),
    provider: GitHubIdentityProvider = Depends(get_identity_provider),
):
    state = secrets.token_urlsafe(16)
    await redis.set(f"oauth_state:{state}", "1", ex=OAUTH_STATE_TTL)
    return RedirectResponse(provider.authorize_url(state), status_code=302)


@router.get("/github/callback")
async def github_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    redis: Redis = Depends(redis_client),
    store: SessionStore = Depends(get_session_store),
    provider: GitHubIdentityProvider = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db),
):
    if not code:
        return frontend_redirect("/login?error=no_code")
    if not state or not await redis.getdel(f"oauth_state:{state}"):
        logger.warning("OAuth callback with unknown state")
        return frontend_redirect("/login?error=invalid_state")

    try:
        identity, access_token = await provider.exchange_code(code)
    except UpstreamAuthError as e:
        logger.error("GitHub OAuth error: %s", e.message)
        return frontend_redirect("/login?error=oauth_failed")

    await upsert_account(db, identity, access_token)
    await store.put_identity(identity, ttl=settings.IDENTITY_TTL_SECONDS)

    response = frontend_redirect("/verify-wallet")
    set_session_cookie(response, store)
    set_cookie(
        response,
        AUTH_COOKIE,
        create_access_token(identity.id),
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return response


@router.get("/post-github-signin")
async def post_github_signin(
    store: SessionStore = Depends(get_session_store),
    account: Optional[GitHubAccount] = Depends(get_optional_account),
):
    if account is None:
        return frontend_redirect("/verify-wallet?error=no_session")
    await store.put_identity(identity_from_account(account), ttl=settings.IDENTITY_TTL_SECONDS)
    response = frontend_redirect("/verify-wallet")
    set_session_cookie(response, store)
    return response


@router.post("/sync-session")
async def sync_session(
    store: SessionStore = Depends(get_session_store),
    account: Optional[GitHubAccount] = Depends(get_optional_account),
):
    if account is None:
        raise NotAuthenticated("No session found")
    await store.put_identity(identity_from_account(account), ttl=settings.SYNCED_IDENTITY_TTL_SECONDS)
    return {"success": True}


@router.get("/me", response_model=AccountResponse)
async def me(account: GitHubAccount = Depends(get_current_account)):
    return AccountResponse(
        github_id=account.github_id,
        login=account.login,
        email=account.email,
        avatar_url=account.avatar_url,
        name=account.name,
        has_repo_access=bool(account.access_token),
    )


@router.post("/logout")
async def logout(store: SessionStore = Depends(get_session_store)):
    await store.clear()
    response = JSONResponse({"success": True})
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(AUTH_COOKIE, path="/")
    return response
