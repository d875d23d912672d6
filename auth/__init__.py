"""Authentication and credential lifecycle modules.

HTTP pieces (auth.api, auth.security_middleware) are imported from their
modules directly; they depend on the api package, which depends on
auth.exceptions.
"""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    EmailAlreadyInUseError,
    UserNotFoundError,
    InvalidTokenError,
    CsrfInvalidError,
    MalformedTokenError,
    InvalidResetTokenError,
    ExpiredTokenError,
    PolicyRejectedError,
    WrongOldPasswordError,
    NotificationError,
    PermissionDeniedError,
    RateLimitedError,
)
from auth.types import (
    UserCredential,
    UserView,
    TokenClaims,
    CsrfToken,
    IssuedSession,
)
from auth.config import AuthConfig
from auth.passwords import PasswordHasher, PasswordPolicy, PolicyResult, append_with_eviction
from auth.database import CredentialStore, PostgresCredentialStore
from auth.tokens import AuthTokenService
from auth.csrf import CsrfGuard
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.reset import PasswordResetManager
from auth.service import AuthService
