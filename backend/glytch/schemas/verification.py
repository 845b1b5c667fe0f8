from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from glytch.schemas.auth import IdentityAssertion

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class VerificationSession(CamelModel):
    github_user: IdentityAssertion
    wallet_address: str
    nonce: str
    timestamp: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at

class PrepareRequest(CamelModel):
    wallet_address: str

class PrepareResponse(CamelModel):
    github_user: IdentityAssertion
    nonce: str
    timestamp: int
    expires_at: int
    chain_id: int
    typed_data: dict[str, Any]

class CompleteRequest(CamelModel):
    signature: str

class SignedClaim(CamelModel):
    github_id: str
    github_username: str
    wallet_address: str
    nonce: str
    timestamp: int
    signature: str

class CompleteResponse(CamelModel):
    success: bool = True
    data: SignedClaim

class BindingStatusResponse(CamelModel):
    address: str
    verified: bool

class CheckSessionResponse(CamelModel):
    has_session: bool
    github_user: Optional[IdentityAssertion] = None
    state: str
