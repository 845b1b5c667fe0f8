import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from glytch.core.deps import get_current_account, get_identity_provider
from glytch.core.errors import NotAuthenticated
from glytch.models.account import GitHubAccount
from glytch.services.github_oauth import GitHubIdentityProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/github", tags=["github"])

@router.get("/repos")
async def list_repos(
    account: GitHubAccount = Depends(get_current_account),
    provider: GitHubIdentityProvider = Depends(get_identity_provider),
):
    # No shared fallback token: calls are only ever made as the signed-in user.
    if not account.access_token:
        logger.warning("GitHub account %s has no stored OAuth token", account.github_id)
        raise NotAuthenticated("GitHub token missing, please re-authenticate with GitHub")
    repos = await provider.list_repositories(account.access_token)
    return JSONResponse(repos, headers={"Cache-Control": "private, max-age=60"})
