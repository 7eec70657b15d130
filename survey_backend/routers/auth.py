"""Authentication endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from survey_backend.dependencies import get_auth_service, get_current_admin
from survey_backend.schemas.auth import LoginRequest, TokenResponse, VerifyResponse
from survey_backend.services.auth_service import AdminIdentity, AuthError, AuthService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Authenticate the admin and issue a bearer token valid for 24 hours."""
    try:
        identity = await auth_service.authenticate(request.username, request.password)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return TokenResponse(token=auth_service.create_access_token(identity))


@router.get("/verify", response_model=VerifyResponse)
async def verify_token(admin: AdminIdentity = Depends(get_current_admin)) -> VerifyResponse:
    """Confirm the presented token is valid and report its identity."""
    return VerifyResponse(valid=True, username=admin.username)
