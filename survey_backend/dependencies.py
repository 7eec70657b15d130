"""FastAPI dependencies."""
import logging

from fastapi import Depends, Header, HTTPException, Request

from survey_backend.config import Settings
from survey_backend.services.auth_service import AdminIdentity, AuthError, AuthService
from survey_backend.utils.cache import ResultsCache

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Application state
# ----------------------------------------------------------------------
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_results_cache(request: Request) -> ResultsCache:
    return request.app.state.results_cache


def get_auth_service(settings: Settings = Depends(get_app_settings)) -> AuthService:
    return AuthService(settings)


# ----------------------------------------------------------------------
# Authentication
# ----------------------------------------------------------------------
async def get_current_admin(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    auth_service: AuthService = Depends(get_auth_service),
) -> AdminIdentity:
    """Resolve the admin identity from the bearer token.

    Accepts ``Authorization: Bearer <token>``; a bare token is tolerated.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="missing_credentials")

    scheme, _, token = authorization.partition(" ")
    if not token:
        token = scheme
    elif scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="invalid_authorization_header")

    try:
        identity = auth_service.verify_token(token.strip())
    except AuthError as exc:
        detail = "token_expired" if str(exc) == "token_expired" else "invalid_token"
        raise HTTPException(status_code=401, detail=detail) from exc

    request.state.admin = identity
    logger.debug(f"Authenticated admin via bearer token: {identity.username}")
    return identity
