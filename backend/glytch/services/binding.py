"""GitHub to wallet binding protocol.

The engine hands the browser an EIP-712 challenge built from server-held
state, and later turns the wallet's signature into the claim that the
GitHubVerifier contract accepts. Every step re-reads the stored session; the
client never supplies identity, wallet, nonce or timestamp back to us.
"""
import enum
import logging
import re
import time
from typing import Callable, Optional
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import is_address, to_checksum_address
from glytch.config import settings
from glytch.core.errors import (
    InvalidAddress,
    InvalidSignature,
    NoIdentitySession,
    NoVerificationSession,
    SessionExpired,
)
from glytch.schemas.verification import PrepareResponse, SignedClaim, VerificationSession
from glytch.services.nonce_oracle import GitHubVerifierClient
from glytch.services.session_store import SessionStore

logger = logging.getLogger(__name__)

DOMAIN_NAME = "GLYTCH"
DOMAIN_VERSION = "1"
PRIMARY_TYPE = "GitHubBinding"

EIP712_DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]
GITHUB_BINDING_FIELDS = [
    {"name": "githubId", "type": "string"},
    {"name": "githubUsername", "type": "string"},
    {"name": "walletAddress", "type": "address"},
    {"name": "nonce", "type": "uint256"},
    {"name": "timestamp", "type": "uint256"},
]

_SIGNATURE_RE = re.compile(r"^(0x)?[0-9a-fA-F]{130}$")


class BindingState(str, enum.Enum):
    # Signing, submission and the on-chain outcome happen in the wallet and are
    # never visible here.
    IDLE = "idle"
    AWAITING_WALLET = "awaiting_wallet"
    CHALLENGE_PREPARED = "challenge_prepared"
    EXPIRED = "expired"


def normalize_address(address) -> str:
    if not isinstance(address, str) or not address.startswith("0x") or not is_address(address):
        raise InvalidAddress()
    return address.lower()


def normalize_signature(signature) -> str:
    if not isinstance(signature, str) or not _SIGNATURE_RE.match(signature):
        raise InvalidSignature("Signature must be 65 bytes of hex")
    return "0x" + signature.removeprefix("0x").lower()


def build_typed_data(session: VerificationSession, chain_id: int, verifying_contract: str) -> dict:
    """EIP-712 payload for a stored session, laid out as the contract expects."""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_FIELDS,
            PRIMARY_TYPE: GITHUB_BINDING_FIELDS,
        },
        "primaryType": PRIMARY_TYPE,
        "domain": {
            "name": DOMAIN_NAME,
            "version": DOMAIN_VERSION,
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(verifying_contract),
        },
        "message": {
            "githubId": session.github_user.id,
            "githubUsername": session.github_user.login,
            "walletAddress": to_checksum_address(session.wallet_address),
            "nonce": int(session.nonce),
            "timestamp": session.timestamp,
        },
    }


def recover_signer(typed_data: dict, signature: str) -> str:
    signable = encode_typed_data(full_message=typed_data)
    try:
        sig_bytes = bytes.fromhex(signature.removeprefix("0x"))
        recovered = Account.recover_message(signable, signature=sig_bytes)
    except Exception:
        raise InvalidSignature()
    return recovered.lower()


class BindingEngine:
    def __init__(
        self,
        store: SessionStore,
        oracle: GitHubVerifierClient,
        chain_id: int = None,
        verifying_contract: str = None,
        window_seconds: int = None,
        verify_offchain: bool = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.store = store
        self.oracle = oracle
        self.chain_id = chain_id if chain_id is not None else settings.CHAIN_ID
        self.verifying_contract = verifying_contract or settings.GITHUB_VERIFIER_ADDRESS
        self.window_seconds = window_seconds or settings.VERIFICATION_WINDOW_SECONDS
        self.verify_offchain = settings.VERIFY_SIGNATURE_OFFCHAIN if verify_offchain is None else verify_offchain
        self._clock = clock

    def now(self) -> int:
        return int(self._clock() if self._clock else time.time())

    def typed_data(self, session: VerificationSession) -> dict:
        return build_typed_data(session, self.chain_id, self.verifying_contract)

    async def state(self) -> BindingState:
        """Server-observable protocol state for this browser session."""
        session = await self.store.get_verification_session()
        if session is not None:
            if session.is_expired(self.now()):
                return BindingState.EXPIRED
            return BindingState.CHALLENGE_PREPARED
        if await self.store.get_identity() is None:
            return BindingState.IDLE
        return BindingState.AWAITING_WALLET

    async def prepare(self, wallet_address: str) -> PrepareResponse:
        identity = await self.store.get_identity()
        if identity is None:
            raise NoIdentitySession()
        wallet = normalize_address(wallet_address)

        # Always a fresh read; the verifier may have advanced since the last attempt.
        nonce = await self.oracle.get_nonce(wallet)
        timestamp = self.now()
        session = VerificationSession(
            github_user=identity,
            wallet_address=wallet,
            nonce=str(nonce),
            timestamp=timestamp,
            expires_at=timestamp + self.window_seconds,
        )
        await self.store.put_verification_session(session, now=timestamp)
        logger.info(
            "Prepared binding challenge for github %s wallet %s nonce %s",
            identity.id, wallet, session.nonce,
        )
        return PrepareResponse(
            github_user=identity,
            nonce=session.nonce,
            timestamp=session.timestamp,
            expires_at=session.expires_at,
            chain_id=self.chain_id,
            typed_data=self.typed_data(session),
        )

    async def complete(self, signature: str) -> SignedClaim:
        signature = normalize_signature(signature)

        session = await self.store.get_verification_session()
        if session is None:
            raise NoVerificationSession()
        if session.is_expired(self.now()):
            await self.store.clear_verification_session()
            logger.info("Binding challenge for wallet %s expired", session.wallet_address)
            raise SessionExpired()

        if self.verify_offchain:
            # A mismatch is usually a late signature over a superseded challenge;
            # the live challenge stays usable for the tab that owns it.
            signer = recover_signer(self.typed_data(session), signature)
            if signer != session.wallet_address:
                logger.warning(
                    "Signature recovered to %s, live challenge is for wallet %s",
                    signer, session.wallet_address,
                )
                raise NoVerificationSession("No live challenge for the signing wallet")

        await self.store.clear_verification_session()
        logger.info(
            "Binding claim issued for github %s wallet %s", session.github_user.id, session.wallet_address,
        )
        return SignedClaim(
            github_id=session.github_user.id,
            github_username=session.github_user.login,
            wallet_address=session.wallet_address,
            nonce=session.nonce,
            timestamp=session.timestamp,
            signature=signature,
        )

    async def cancel(self) -> None:
        await self.store.clear_verification_session()
