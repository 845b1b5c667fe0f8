from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

class IdentityAssertion(BaseModel):
    """GitHub identity as returned by the OAuth exchange.

    ``id`` is the durable key for the GitHub account; the remaining fields are
    display-only and may be missing or change over time.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    login: str = ""
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    name: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

class AccountResponse(BaseModel):
    github_id: str
    login: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    name: Optional[str] = None
    has_repo_access: bool
