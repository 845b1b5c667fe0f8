from typing import Optional
from fastapi import Depends, Request, Response
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from glytch.config import settings
from glytch.core.errors import NotAuthenticated
from glytch.core.redis import get_redis
from glytch.core.security import (
    AUTH_COOKIE,
    SESSION_COOKIE,
    create_session_token,
    decode_session_token,
    decode_token,
    new_session_id,
)
from glytch.database import get_db
from glytch.models.account import GitHubAccount
from glytch.services.binding import BindingEngine
from glytch.services.github_oauth import GitHubIdentityProvider
from glytch.services.nonce_oracle import GitHubVerifierClient
from glytch.services.session_store import SessionStore

async def redis_client() -> Redis:
    return await get_redis()

def set_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )

def set_session_cookie(response: Response, store: SessionStore) -> None:
    set_cookie(
        response,
        SESSION_COOKIE,
        create_session_token(store.session_id),
        max_age=settings.SYNCED_IDENTITY_TTL_SECONDS,
    )

async def get_session_store(
    request: Request,
    response: Response,
    redis: Redis = Depends(redis_client),
) -> SessionStore:
    """Resolve the browser's session id, issuing a new one when missing or forged."""
    token = request.cookies.get(SESSION_COOKIE)
    session_id = decode_session_token(token) if token else None
    if session_id is None:
        session_id = new_session_id()
    store = SessionStore(redis, session_id)
    set_session_cookie(response, store)
    return store

def get_nonce_oracle() -> GitHubVerifierClient:
    return GitHubVerifierClient()

async def get_identity_provider():
    provider = GitHubIdentityProvider()
    try:
        yield provider
    finally:
        await provider.aclose()

def get_binding_engine(
    store: SessionStore = Depends(get_session_store),
    oracle: GitHubVerifierClient = Depends(get_nonce_oracle),
) -> BindingEngine:
    return BindingEngine(store, oracle)

async def get_optional_account(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[GitHubAccount]:
    token = request.cookies.get(AUTH_COOKIE)
    if not token:
        return None
    github_id = decode_token(token)
    if not github_id:
        return None
    return await db.scalar(select(GitHubAccount).where(GitHubAccount.github_id == github_id))

async def get_current_account(
    account: Optional[GitHubAccount] = Depends(get_optional_account),
) -> GitHubAccount:
    if account is None:
        raise NotAuthenticated()
    return account
