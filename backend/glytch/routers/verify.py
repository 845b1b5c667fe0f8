from typing import Optional
from fastapi import APIRouter, Depends, Query
from glytch.core.deps import get_binding_engine, get_nonce_oracle, get_optional_account, get_session_store
from glytch.config import settings
from glytch.models.account import GitHubAccount
from glytch.routers.auth import identity_from_account
from glytch.schemas.verification import (
    BindingStatusResponse,
    CheckSessionResponse,
    CompleteRequest,
    CompleteResponse,
    PrepareRequest,
    PrepareResponse,
)
from glytch.services.binding import BindingEngine, normalize_address
from glytch.services.nonce_oracle import GitHubVerifierClient
from glytch.services.session_store import SessionStore

router = APIRouter(prefix="/api/verify", tags=["verify"])

@router.post("/prepare", response_model=PrepareResponse)
async def prepare(body: PrepareRequest, engine: BindingEngine = Depends(get_binding_engine)):
    return await engine.prepare(body.wallet_address)

@router.post("/complete", response_model=CompleteResponse)
async def complete(body: CompleteRequest, engine: BindingEngine = Depends(get_binding_engine)):
    """Issue the claim for on-chain submission.

    Only the signature is taken from the request; every other claim field
    comes from the session stored at prepare time.
    """
    claim = await engine.complete(body.signature)
    return CompleteResponse(data=claim)

@router.get("/check-session", response_model=CheckSessionResponse)
async def check_session(
    store: SessionStore = Depends(get_session_store),
    engine: BindingEngine = Depends(get_binding_engine),
    account: Optional[GitHubAccount] = Depends(get_optional_account),
):
    identity = await store.get_identity()
    if identity is None and account is not None:
        identity = identity_from_account(account)
        await store.put_identity(identity, ttl=settings.IDENTITY_TTL_SECONDS)
    state = await engine.state()
    return CheckSessionResponse(has_session=identity is not None, github_user=identity, state=state.value)

@router.delete("/session")
async def cancel(engine: BindingEngine = Depends(get_binding_engine)):
    await engine.cancel()
    return {"success": True}

@router.get("/status", response_model=BindingStatusResponse)
async def binding_status(
    address: str = Query(...),
    oracle: GitHubVerifierClient = Depends(get_nonce_oracle),
):
    wallet = normalize_address(address)
    return BindingStatusResponse(address=wallet, verified=await oracle.is_verified(wallet))
