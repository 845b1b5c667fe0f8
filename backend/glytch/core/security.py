import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from glytch.config import settings

SESSION_COOKIE = "glytch_sid"
AUTH_COOKIE = "glytch_auth"

def create_access_token(github_id: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode({"sub": github_id, "exp": expire}, settings.SECRET_KEY, settings.ALGORITHM)

def decode_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return str(payload["sub"])
    except (JWTError, KeyError):
        return None

def new_session_id() -> str:
    return secrets.token_urlsafe(32)

def create_session_token(session_id: str) -> str:
    """Sign a browser session id so that forged ids never reach the store."""
    return jwt.encode({"sid": session_id}, settings.SECRET_KEY, settings.ALGORITHM)

def decode_session_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) and sid else None
