"""Rate limiting for password reset requests.

Uses Valkey with sliding window TTL - each attempt resets the expiry, so
hammering the endpoint extends the lockout.
"""

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import RateLimitedError


class RateLimiter:
    """Per-key attempt counter in Valkey."""

    def __init__(self, valkey: ValkeyClient, config: AuthConfig, scope: str = "password_reset"):
        self._valkey = valkey
        self._attempts = config.rate_limit_attempts
        self._window_seconds = config.rate_limit_window_minutes * 60
        self._prefix = f"ratelimit:{scope}:"

    def _key(self, email: str) -> str:
        """Counter key for email (normalized to lowercase)."""
        return f"{self._prefix}{email.lower()}"

    def check_rate_limit(self, email: str) -> None:
        """
        Count one attempt for email.

        Raises:
            RateLimitedError: If the attempt exceeds the limit.
        """
        key = self._key(email)
        count = self._valkey.incr(key)
        self._valkey.expire(key, self._window_seconds)

        if count > self._attempts:
            retry_after = max(self._valkey.ttl(key), 1)
            raise RateLimitedError(retry_after_seconds=retry_after)

    def reset_rate_limit(self, email: str) -> None:
        """Clear the counter after a completed reset."""
        self._valkey.delete(self._key(email))
