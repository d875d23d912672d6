"""Password reset lifecycle.

Per account: no reset pending -> reset pending (initiate) -> no reset
pending (complete). Only the latest pending token is valid; initiating
again overwrites it.
"""

import base64
import binascii
import logging
import secrets
from datetime import timedelta
from urllib.parse import urlencode

import psycopg2
import redis

from auth.config import AuthConfig
from auth.database import CredentialStore
from auth.exceptions import (
    ExpiredTokenError,
    InvalidResetTokenError,
    MalformedTokenError,
    NotificationError,
    PolicyRejectedError,
    RateLimitedError,
    UserNotFoundError,
)
from auth.passwords import PasswordHasher, PasswordPolicy, replace_password
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.types import UserCredential
from clients.email_client import EmailGatewayClient, EmailGatewayError
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def encode_reset_token(raw: str) -> str:
    """URL-safe base64 form of a raw token, as sent to the client."""
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_reset_token(encoded: str) -> str:
    """
    Inverse of encode_reset_token.

    Raises:
        MalformedTokenError: If encoded is not valid base64 text.
    """
    try:
        raw = base64.b64decode(encoded.encode("ascii"), altchars=b"-_", validate=True)
        decoded = raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError() from e
    if not decoded:
        raise MalformedTokenError()
    return decoded


class PasswordResetManager:
    """Issues one-time reset tokens and completes resets with them."""

    def __init__(
        self,
        config: AuthConfig,
        store: CredentialStore,
        policy: PasswordPolicy,
        hasher: PasswordHasher,
        email_client: EmailGatewayClient,
        security_logger: SecurityLogger,
        rate_limiter: RateLimiter | None = None,
    ):
        self._config = config
        self._store = store
        self._policy = policy
        self._hasher = hasher
        self._email_client = email_client
        self._security_logger = security_logger
        self._rate_limiter = rate_limiter
        self._window = timedelta(minutes=config.reset_token_expiry_minutes)

    def _reset_url(self, encoded_token: str) -> str:
        base = self._config.app_base_url.rstrip("/")
        return f"{base}{self._config.reset_path}?{urlencode({'token': encoded_token})}"

    def initiate(
        self,
        email: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> str:
        """
        Start a reset for email and send the link.

        Returns:
            The encoded token embedded in the link.

        Raises:
            RateLimitedError: Too many requests for this email.
            UserNotFoundError: No account has this email.
            NotificationError: Email could not be sent. The token is already
                stored; a retry must call initiate again.
        """
        if self._rate_limiter is not None:
            try:
                self._rate_limiter.check_rate_limit(email)
            except RateLimitedError:
                self._security_logger.log(
                    SecurityEvent.RATE_LIMITED,
                    email=email,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    details={"operation": "password_reset_request"},
                )
                raise

        user = self._store.find_by_email(email)
        if user is None:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "user_not_found"},
            )
            raise UserNotFoundError.by_email(email)

        raw_token = secrets.token_urlsafe(32)
        user = self._store.save(user.model_copy(update={
            "reset_token": raw_token,
            "reset_token_created_at": now_utc(),
        }))

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        encoded = encode_reset_token(raw_token)
        try:
            self._email_client.send_password_reset(
                email=user.email,
                name=user.name,
                reset_url=self._reset_url(encoded),
                app_name=self._config.app_name,
            )
        except EmailGatewayError as e:
            logger.error(f"Reset email for user {user.id} not sent: {e}")
            raise NotificationError("Could not send the password reset email") from e

        return encoded

    def _user_for_token(self, encoded_token: str) -> UserCredential:
        raw_token = decode_reset_token(encoded_token)

        user = self._store.find_by_reset_token(raw_token)
        if user is None:
            raise InvalidResetTokenError()

        created_at = user.reset_token_created_at
        if created_at is None or created_at + self._window < now_utc():
            raise ExpiredTokenError()
        return user

    def complete(
        self,
        encoded_token: str,
        new_password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserCredential:
        """
        Set a new password using a pending reset token.

        Raises:
            MalformedTokenError: Token is not valid base64.
            InvalidResetTokenError: No account has this token pending.
            ExpiredTokenError: Token is older than the reset window.
            PolicyRejectedError: New password is too short or recently used.
        """
        try:
            user = self._user_for_token(encoded_token)
            updated = replace_password(
                user,
                new_password,
                self._policy,
                self._hasher,
                self._config.password_history_size,
            )
        except (MalformedTokenError, InvalidResetTokenError, ExpiredTokenError, PolicyRejectedError) as e:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": type(e).__name__},
            )
            raise

        user = self._store.save(updated)

        # Committed: nothing below may fail the reset
        self._send_confirmation(user)

        if self._rate_limiter is not None:
            try:
                self._rate_limiter.reset_rate_limit(user.email)
            except redis.RedisError as e:
                logger.warning(f"Rate limit for user {user.id} not cleared after reset: {e}")

        try:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_COMPLETED,
                email=user.email,
                user_id=user.id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except psycopg2.Error as e:
            logger.warning(f"Reset completion for user {user.id} not recorded: {e}")

        return user

    def _send_confirmation(self, user: UserCredential) -> None:
        """Best effort: the password change is already committed."""
        try:
            self._email_client.send_password_changed(
                email=user.email,
                name=user.name,
                login_url=self._config.login_url,
                app_name=self._config.app_name,
            )
        except EmailGatewayError as e:
            logger.warning(f"Password-changed confirmation for user {user.id} not sent: {e}")
