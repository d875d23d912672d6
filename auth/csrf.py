"""CSRF double-submit tokens.

The token is a JWT signed with its own secret (never the auth token's).
Its random nonce is also embedded in the auth token issued with it, and
verify() compares the two, so a CSRF token only works alongside the auth
token it was issued with.
"""

import hmac
import logging
import uuid
from datetime import timedelta

import jwt

from auth.config import AuthConfig
from auth.types import CsrfToken
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

CSRF_SUBJECT = "CSRF-TOKEN"


class CsrfGuard:
    """Issues and verifies anti-forgery tokens."""

    def __init__(self, secret: str, config: AuthConfig):
        if not secret:
            raise ValueError("csrf secret is required")
        self._secret = secret
        self._algorithm = config.jwt_algorithm
        self._lifetime = timedelta(hours=config.csrf_token_expiry_hours)

    @property
    def lifetime_seconds(self) -> int:
        return int(self._lifetime.total_seconds())

    def issue(self) -> CsrfToken:
        now = now_utc()
        nonce = str(uuid.uuid4())
        token = jwt.encode(
            {
                "sub": CSRF_SUBJECT,
                "iat": int(now.timestamp()),
                "exp": int((now + self._lifetime).timestamp()),
                "csrf": nonce,
            },
            self._secret,
            algorithm=self._algorithm,
        )
        return CsrfToken(token=token, nonce=nonce)

    def verify(self, token: str | None, expected_nonce: str | None = None) -> bool:
        """
        True if token is signed, unexpired, and (when expected_nonce is given)
        carries that nonce. Never raises.
        """
        if not token:
            return False
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "csrf"]},
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"CSRF token rejected: {e}")
            return False

        if payload.get("sub") != CSRF_SUBJECT:
            return False
        if expected_nonce is None:
            return True
        nonce = payload.get("csrf")
        if not isinstance(nonce, str):
            return False
        return hmac.compare_digest(nonce.encode("utf-8"), expected_nonce.encode("utf-8"))
