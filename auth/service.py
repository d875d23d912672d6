"""Authentication service - orchestrates login, registration and password changes."""

import logging

from auth.config import AuthConfig
from auth.csrf import CsrfGuard
from auth.database import CredentialStore
from auth.exceptions import (
    EmailAlreadyInUseError,
    InvalidCredentialsError,
    PolicyRejectedError,
    UserNotFoundError,
    WrongOldPasswordError,
)
from auth.passwords import PasswordHasher, PasswordPolicy, replace_password
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.tokens import AuthTokenService
from auth.types import IssuedSession, RegisterRequest, UserCredential, UserView
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"


class AuthService:
    """Orchestrates credential checks on top of the store and password policy.

    Handles:
    - Login (one generic failure for unknown email and wrong password)
    - Registration
    - Password change with history enforcement
    - Issuing the bound auth/CSRF token pair for a signed-in user
    """

    def __init__(
        self,
        config: AuthConfig,
        store: CredentialStore,
        hasher: PasswordHasher,
        policy: PasswordPolicy,
        token_service: AuthTokenService,
        csrf_guard: CsrfGuard,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._store = store
        self._hasher = hasher
        self._policy = policy
        self._token_service = token_service
        self._csrf_guard = csrf_guard
        self._security_logger = security_logger

    def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserView:
        """Check email/password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password (indistinguishable).
        """
        user = self._store.find_by_email(email)

        if user is None:
            # Same bcrypt cost as a real check
            self._hasher.burn(password)
            authenticated = False
        else:
            authenticated = self._hasher.verify(password, user.password_hash)

        if not authenticated:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                user_id=user.id if user else None,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise InvalidCredentialsError()

        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return UserView.from_credential(user)

    def register(
        self,
        request: RegisterRequest,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserView:
        """Create an account with the default role.

        Flow:
        1. Pre-check email uniqueness (the store's unique constraint backs this up)
        2. Apply the length rules to the initial password
        3. Hash and persist

        Raises:
            EmailAlreadyInUseError: Email belongs to another account.
            PolicyRejectedError: Password too short or too long.
        """
        email = str(request.email)
        if self._store.find_by_email(email) is not None:
            raise EmailAlreadyInUseError()

        self._policy.validate_initial(request.password)

        user = self._store.save(UserCredential(
            surname=request.surname,
            name=request.name,
            email=email,
            role=DEFAULT_ROLE,
            password_hash=self._hasher.hash(request.password),
            registration_date=now_utc(),
        ))

        self._security_logger.log(
            SecurityEvent.USER_REGISTERED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return UserView.from_credential(user)

    def change_password(
        self,
        email: str,
        old_password: str,
        new_password: str,
        ip_address: str | None = None,
    ) -> None:
        """Replace a known password with a new one.

        Raises:
            UserNotFoundError: No account has this email.
            WrongOldPasswordError: old_password does not match the current hash.
            PolicyRejectedError: new_password too short or among recent passwords.
        """
        user = self._store.find_by_email(email)
        if user is None:
            raise UserNotFoundError.by_email(email)

        if not self._hasher.verify(old_password, user.password_hash):
            self._security_logger.log(
                SecurityEvent.PASSWORD_CHANGE_FAILED,
                email=user.email,
                user_id=user.id,
                ip_address=ip_address,
                details={"reason": "wrong_old_password"},
            )
            raise WrongOldPasswordError()

        try:
            updated = replace_password(
                user,
                new_password,
                self._policy,
                self._hasher,
                self._config.password_history_size,
            )
        except PolicyRejectedError as e:
            self._security_logger.log(
                SecurityEvent.PASSWORD_CHANGE_FAILED,
                email=user.email,
                user_id=user.id,
                ip_address=ip_address,
                details={"reason": e.reason},
            )
            raise

        self._store.save(updated)
        self._security_logger.log(
            SecurityEvent.PASSWORD_CHANGED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
        )

    def issue_session(self, user: UserView) -> IssuedSession:
        """Issue an auth token and a CSRF token bound to it by nonce."""
        csrf = self._csrf_guard.issue()
        auth_token = self._token_service.issue(user, csrf_nonce=csrf.nonce)
        return IssuedSession(auth_token=auth_token, csrf_token=csrf.token)
