"""Authentication schema definitions."""
from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Login payload. Missing fields fail the credential check, not validation."""

    username: str = ""
    password: str = ""


class TokenResponse(BaseModel):
    """Signed bearer token issued on successful login."""

    token: str


class VerifyResponse(BaseModel):
    """Confirmation that the presented token is valid."""

    valid: bool
    username: str
