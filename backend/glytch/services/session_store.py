import logging
from typing import Optional
from pydantic import ValidationError
from redis.asyncio import Redis
from glytch.schemas.auth import IdentityAssertion
from glytch.schemas.verification import VerificationSession

logger = logging.getLogger(__name__)

# Expired verification sessions are kept this long past expires_at so that a
# late complete() reports "expired" instead of "never started".
EXPIRED_RETENTION_SECONDS = 60


class SessionStore:
    """Per-browser-session state held in Redis.

    Holds at most one identity assertion and one verification session for a
    session id. Reads fail closed: anything that cannot be parsed is treated
    as absent.
    """

    def __init__(self, redis: Redis, session_id: str):
        self.redis = redis
        self.session_id = session_id

    @property
    def identity_key(self) -> str:
        return f"session:{self.session_id}:github_user"

    @property
    def verification_key(self) -> str:
        return f"session:{self.session_id}:verification_session"

    async def put_identity(self, identity: IdentityAssertion, ttl: int) -> None:
        await self.redis.set(self.identity_key, identity.model_dump_json(), ex=ttl)

    async def get_identity(self) -> Optional[IdentityAssertion]:
        raw = await self.redis.get(self.identity_key)
        if not raw:
            return None
        try:
            return IdentityAssertion.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable identity for session %s", self.session_id[:8])
            return None

    async def put_verification_session(self, session: VerificationSession, now: int) -> None:
        ttl = session.expires_at - now
        if ttl <= 0:
            raise ValueError("verification session already expired")
        await self.redis.set(
            self.verification_key,
            session.model_dump_json(by_alias=True),
            ex=ttl + EXPIRED_RETENTION_SECONDS,
        )

    async def get_verification_session(self) -> Optional[VerificationSession]:
        """Return the stored session, expired or not; None if absent or unreadable."""
        raw = await self.redis.get(self.verification_key)
        if not raw:
            return None
        try:
            return VerificationSession.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable verification session for session %s", self.session_id[:8])
            return None

    async def clear_verification_session(self) -> None:
        await self.redis.delete(self.verification_key)

    async def clear(self) -> None:
        await self.redis.delete(self.identity_key, self.verification_key)
