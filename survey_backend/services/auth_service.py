"""Authentication and authorization helpers."""
from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from survey_backend.config import Settings

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when authentication fails."""


@dataclass(frozen=True)
class AdminIdentity:
    """Identity carried by a verified token."""

    username: str


class AuthService:
    """Service responsible for admin credential checks and JWT issuance.

    There is a single admin account taken from configuration; no sessions are
    stored server side.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def credentials_match(self, username: str, password: str) -> bool:
        username_ok = secrets.compare_digest(
            username.encode("utf-8"), self.settings.admin_username.encode("utf-8")
        )
        password_ok = secrets.compare_digest(
            password.encode("utf-8"), self.settings.admin_password.encode("utf-8")
        )
        return username_ok and password_ok

    async def authenticate(self, username: str, password: str) -> AdminIdentity:
        """Check the admin credentials.

        A mismatch is answered only after a fixed delay to blunt timing-based
        enumeration.

        Raises:
            AuthError: If the username/password combination is invalid
        """
        if not self.credentials_match(username, password):
            await asyncio.sleep(self.settings.login_failure_delay_seconds)
            logger.warning(f"Failed admin login attempt for username={username!r}")
            raise AuthError("invalid_credentials")

        logger.info(f"Admin {username} authenticated")
        return AdminIdentity(username=username)

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def _access_token_payload(self, username: str) -> dict[str, str | int]:
        issued_at = datetime.now(UTC)
        expire = issued_at + timedelta(hours=self.settings.access_token_exp_hours)
        return {
            "sub": username,
            "username": username,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
        }

    def create_access_token(self, identity: AdminIdentity) -> str:
        payload = self._access_token_payload(identity.username)
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def decode_access_token(self, token: str) -> dict:
        """Verify signature, algorithm and expiry of ``token``.

        Only the configured HMAC algorithm is accepted, so tokens claiming any
        other algorithm (including ``none``) are rejected.
        """
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "iat"]},
            )
        except ExpiredSignatureError as exc:
            raise AuthError("token_expired") from exc
        except InvalidTokenError as exc:
            raise AuthError("invalid_token") from exc

    def verify_token(self, token: str) -> AdminIdentity:
        payload = self.decode_access_token(token)
        username = payload.get("username")
        if not username or not isinstance(username, str):
            raise AuthError("invalid_token")
        return AdminIdentity(username=username)
