"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidCredentialsError(AuthError):
    """
    Email/password pair did not authenticate.

    Raised identically for unknown email and wrong password so callers
    cannot tell which one failed.
    """

    def __init__(self):
        super().__init__("Invalid email or password")


class EmailAlreadyInUseError(AuthError):
    """Registration or admin update targets an email another account holds."""

    def __init__(self):
        super().__init__("Email already in use")


class UserNotFoundError(AuthError):
    """No account matches the lookup key."""

    @classmethod
    def by_id(cls, user_id: int) -> "UserNotFoundError":
        return cls(f"User with id '{user_id}' not found")

    @classmethod
    def by_email(cls, email: str) -> "UserNotFoundError":
        return cls(f"User with email '{email}' not found")

    @classmethod
    def by_surname(cls, surname: str) -> "UserNotFoundError":
        return cls(f"User with surname '{surname}' not found")


class InvalidTokenError(AuthError):
    """Auth token signature is invalid, the token is malformed, or it has expired."""


class CsrfInvalidError(AuthError):
    """CSRF token missing, unsigned, expired, or not bound to the caller's auth token."""


class MalformedTokenError(AuthError):
    """Reset token could not be base64-decoded."""

    def __init__(self):
        super().__init__("Reset token is invalid: decoding failed")


class InvalidResetTokenError(AuthError):
    """Decoded reset token matches no pending reset."""

    def __init__(self):
        super().__init__("Reset token is invalid: no matching reset request")


class ExpiredTokenError(AuthError):
    """Reset token is older than the reset window."""

    def __init__(self):
        super().__init__("Reset token has expired. Please request a new one")


class PolicyRejectedError(AuthError):
    """New password violates the password policy."""

    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    REUSED = "reused_recently"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class WrongOldPasswordError(AuthError):
    """Current password supplied for a password change is incorrect."""

    def __init__(self):
        super().__init__("Current password is incorrect")


class NotificationError(AuthError):
    """Reset email could not be delivered. The pending token is still stored."""


class PermissionDeniedError(AuthError):
    """Authenticated caller lacks the role required for the operation."""


class RateLimitedError(AuthError):
    """Too many attempts. Client should wait before retrying."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limited. Retry after {retry_after_seconds} seconds.")
