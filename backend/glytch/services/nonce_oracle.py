import logging
import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, function_signature_to_4byte_selector, to_checksum_address
from glytch.config import settings
from glytch.core.errors import OracleUnavailable

logger = logging.getLogger(__name__)

GET_NONCE_SIGNATURE = "getNonce(address)"
IS_VERIFIED_SIGNATURE = "isGitHubVerified(address)"


def encode_call(signature: str, address: str) -> str:
    selector = function_signature_to_4byte_selector(signature)
    args = encode(["address"], [to_checksum_address(address)])
    return "0x" + (selector + args).hex()


class GitHubVerifierClient:
    """Read-only view of the GitHubVerifier contract over JSON-RPC."""

    def __init__(self, rpc_url: str = None, contract_address: str = None):
        self.rpc_url = rpc_url or settings.RPC_URL
        self.contract_address = contract_address or settings.GITHUB_VERIFIER_ADDRESS

    async def _eth_call(self, data: str) -> bytes:
        client = httpx.AsyncClient(timeout=30.0)
        try:
            resp = await client.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "method": "eth_call",
                    "params": [{"to": self.contract_address, "data": data}, "latest"],
                    "id": 1,
                },
            )
        except httpx.HTTPError as e:
            logger.error("RPC transport error: %s", e)
            raise OracleUnavailable() from e
        finally:
            await client.aclose()

        if resp.status_code != 200:
            logger.error("RPC request failed with status %s", resp.status_code)
            raise OracleUnavailable()

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error("RPC returned a non-JSON body")
            raise OracleUnavailable() from e
        if not isinstance(payload, dict):
            logger.error("RPC returned a non-object body: %r", payload)
            raise OracleUnavailable()
        if payload.get("error"):
            logger.error("RPC error: %s", payload["error"])
            raise OracleUnavailable()

        result = payload.get("result")
        if not isinstance(result, str) or not result.startswith("0x") or len(result) < 66:
            logger.error("Unexpected eth_call result: %r", result)
            raise OracleUnavailable()
        try:
            return decode_hex(result)
        except ValueError as e:
            raise OracleUnavailable() from e

    async def get_nonce(self, address: str) -> int:
        raw = await self._eth_call(encode_call(GET_NONCE_SIGNATURE, address))
        try:
            (nonce,) = decode(["uint256"], raw)
        except DecodingError as e:
            raise OracleUnavailable() from e
        return nonce

    async def is_verified(self, address: str) -> bool:
        raw = await self._eth_call(encode_call(IS_VERIFIED_SIGNATURE, address))
        try:
            (verified,) = decode(["bool"], raw)
        except DecodingError as e:
            raise OracleUnavailable() from e
        return verified
