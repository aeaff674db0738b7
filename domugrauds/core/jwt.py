"""Signed session token issuance and stateless verification."""

from __future__ import annotations

import hmac
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from domugrauds.config import Settings

JWT_ALGORITHM = "RS256"
SESSION_TOKEN_TYPE = "session"


class TokenValidationError(Exception):
    """Raised when a signed token fails the stateless check."""

    def __init__(self, detail: str, code: str) -> None:
        super().__init__(detail)
        self.detail = detail
        self.code = code


class JWTService:
    """Service for issuing and verifying RS256 session tokens."""

    def __init__(
        self,
        private_key_pem: str,
        public_key_pem: str,
        session_token_ttl_seconds: int = 7 * 24 * 60 * 60,
    ) -> None:
        self._private_key_pem = private_key_pem
        self._public_key_pem = public_key_pem
        self._session_token_ttl_seconds = session_token_ttl_seconds

    @property
    def session_token_ttl_seconds(self) -> int:
        """Return the configured session token lifetime."""
        return self._session_token_ttl_seconds

    def issue_session_token(
        self,
        account_id: str,
        email: str,
        username: str,
        expires_in_seconds: int | None = None,
    ) -> str:
        """Issue a signed token embedding the account identity."""
        issued_at = datetime.now(UTC)
        lifetime = (
            self._session_token_ttl_seconds if expires_in_seconds is None else expires_in_seconds
        )
        expires_at = issued_at + timedelta(seconds=lifetime)
        payload = {
            "jti": str(uuid4()),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "sub": account_id,
            "type": SESSION_TOKEN_TYPE,
            "email": email,
            "username": username,
        }
        return jwt.encode(payload, self._private_key_pem, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict[str, Any]:
        """Verify token signature, expiry, and required claims."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise TokenValidationError("Invalid token.", "invalid_token") from exc
        algorithm = str(header.get("alg", ""))
        if not hmac.compare_digest(algorithm, JWT_ALGORITHM):
            raise TokenValidationError("Invalid token algorithm.", "invalid_token")

        try:
            payload = jwt.decode(
                token,
                self._public_key_pem,
                algorithms=[JWT_ALGORITHM],
                options={
                    "verify_aud": False,
                    "require_jti": True,
                    "require_iat": True,
                    "require_exp": True,
                    "require_sub": True,
                },
            )
        except ExpiredSignatureError as exc:
            raise TokenValidationError("Token has expired.", "token_expired") from exc
        except JWTError as exc:
            raise TokenValidationError("Invalid token.", "invalid_token") from exc

        token_type = str(payload.get("type", ""))
        if not hmac.compare_digest(token_type, SESSION_TOKEN_TYPE):
            raise TokenValidationError("Invalid token type.", "invalid_token")
        return payload


def build_jwt_service(settings: Settings) -> JWTService:
    """Build the JWT service from application settings."""
    return JWTService(
        private_key_pem=settings.jwt.private_key_pem.get_secret_value(),
        public_key_pem=settings.jwt.public_key_pem.get_secret_value(),
        session_token_ttl_seconds=settings.jwt.session_token_ttl_seconds,
    )
