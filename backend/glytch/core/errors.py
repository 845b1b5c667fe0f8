from typing import Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse


class GlytchError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class UpstreamAuthError(GlytchError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_auth_error"
    message = "GitHub authentication failed"


class GitHubAPIError(GlytchError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "github_api_error"
    message = "GitHub API request failed"

    def __init__(self, message: Optional[str] = None, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class NotAuthenticated(GlytchError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "not_authenticated"
    message = "Not authenticated"


class NoIdentitySession(GlytchError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "no_identity_session"
    message = "No GitHub session found"


class NoVerificationSession(GlytchError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "no_verification_session"
    message = "No verification session found"


class SessionExpired(GlytchError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "session_expired"
    message = "Verification session expired"


class InvalidAddress(GlytchError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_address"
    message = "Invalid wallet address"


class InvalidSignature(GlytchError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_signature"
    message = "Invalid signature"


class OracleUnavailable(GlytchError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "oracle_unavailable"
    message = "Could not read nonce from verifier contract"


async def glytch_error_handler(request: Request, exc: GlytchError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message},
    )
