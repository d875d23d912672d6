"""Signed auth tokens (JWT, HMAC).

Verification is a pure function of the token and the secret: no store
lookup and no revocation list, so a token stays valid for its whole
lifetime even if the account changes afterwards.
"""

from datetime import timedelta

import jwt

from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError
from auth.types import TokenClaims, UserView
from utils.timezone import from_timestamp, now_utc

_REQUIRED_CLAIMS = ["sub", "iat", "exp", "id", "email"]


class AuthTokenService:
    """Issues and verifies the bearer token carrying user identity claims."""

    def __init__(self, secret: str, config: AuthConfig):
        if not secret:
            raise ValueError("auth token secret is required")
        self._secret = secret
        self._algorithm = config.jwt_algorithm
        self._lifetime = timedelta(hours=config.auth_token_expiry_hours)

    @property
    def lifetime_seconds(self) -> int:
        return int(self._lifetime.total_seconds())

    def issue(self, user: UserView, csrf_nonce: str | None = None) -> str:
        """Sign a token for user. csrf_nonce binds the CSRF token issued alongside."""
        now = now_utc()
        claims: dict[str, object] = {
            "sub": user.email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._lifetime).timestamp()),
            "id": user.id,
            "surname": user.surname,
            "name": user.name,
            "role": user.role,
            "email": user.email,
            "imagePath": user.image_path,
        }
        if csrf_nonce is not None:
            claims["csrf"] = csrf_nonce
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Raises:
            InvalidTokenError: Bad signature, malformed token, missing claims, or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        try:
            return TokenClaims(
                id=payload["id"],
                surname=payload.get("surname") or "",
                name=payload.get("name") or "",
                role=payload.get("role") or "user",
                email=payload["email"],
                image_path=payload.get("imagePath"),
                csrf_nonce=payload.get("csrf"),
                issued_at=from_timestamp(payload["iat"]),
                expires_at=from_timestamp(payload["exp"]),
            )
        except ValueError as e:
            raise InvalidTokenError(f"Invalid token claims: {e}") from e
