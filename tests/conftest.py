"""Shared test fixtures for the auth test suite."""

from pathlib import Path
from unittest.mock import Mock

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from auth.config import AuthConfig
from auth.csrf import CsrfGuard
from auth.exceptions import EmailAlreadyInUseError
from auth.passwords import PasswordHasher, PasswordPolicy
from auth.security_logger import SecurityLogger
from auth.tokens import AuthTokenService
from auth.types import UserCredential
from clients.email_client import EmailGatewayClient
from utils.timezone import now_utc
from utils.user_context import clear_current_user_id


# =============================================================================
# TEST CONSTANTS
# =============================================================================

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"
CSRF_SECRET = "test-csrf-secret-fedcba9876543210fedcba98"

TEST_EMAIL = "mario.rossi@example.com"
TEST_PASSWORD = "Initial-pass-1"


# =============================================================================
# IN-MEMORY CREDENTIAL STORE
# =============================================================================


class InMemoryCredentialStore:
    """CredentialStore backed by a dict, with the same uniqueness rules as the tables."""

    def __init__(self):
        self.users: dict[int, UserCredential] = {}
        self._next_id = 1

    def find_by_id(self, user_id: int) -> UserCredential | None:
        return self.users.get(user_id)

    def find_by_email(self, email: str) -> UserCredential | None:
        return next((u for u in self.users.values() if u.email == email), None)

    def find_by_surname(self, surname: str) -> UserCredential | None:
        matches = sorted((u for u in self.users.values() if u.surname == surname), key=lambda u: u.id)
        return matches[0] if matches else None

    def find_by_reset_token(self, token: str) -> UserCredential | None:
        return next((u for u in self.users.values() if u.reset_token == token), None)

    def save(self, user: UserCredential) -> UserCredential:
        holder = self.find_by_email(user.email)
        if holder is not None and holder.id != user.id:
            raise EmailAlreadyInUseError()

        if user.id is None:
            user = user.model_copy(update={"id": self._next_id})
            self._next_id += 1
        elif user.id not in self.users:
            raise LookupError(f"User {user.id} vanished during save")

        self.users[user.id] = user
        return user

    def delete(self, user_id: int) -> bool:
        return self.users.pop(user_id, None) is not None


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


# =============================================================================
# AUTH COMPONENT FIXTURES
# =============================================================================


@pytest.fixture
def config() -> AuthConfig:
    """Default policy with the cheapest bcrypt cost."""
    return AuthConfig(bcrypt_rounds=4, cookie_secure=False)


@pytest.fixture
def hasher(config) -> PasswordHasher:
    return PasswordHasher(rounds=config.bcrypt_rounds)


@pytest.fixture
def policy(config, hasher) -> PasswordPolicy:
    return PasswordPolicy(config, hasher)


@pytest.fixture
def jwt_secret() -> str:
    return JWT_SECRET


@pytest.fixture
def csrf_secret() -> str:
    return CSRF_SECRET


@pytest.fixture
def token_service(config, jwt_secret) -> AuthTokenService:
    return AuthTokenService(jwt_secret, config)


@pytest.fixture
def csrf_guard(config, csrf_secret) -> CsrfGuard:
    return CsrfGuard(csrf_secret, config)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def email_client():
    return Mock(spec=EmailGatewayClient)


@pytest.fixture
def make_user(store, hasher):
    """Factory that persists a user with a known password."""

    def _make(
        email: str = TEST_EMAIL,
        password: str = TEST_PASSWORD,
        surname: str = "Rossi",
        name: str = "Mario",
        role: str = "user",
    ) -> UserCredential:
        return store.save(UserCredential(
            surname=surname,
            name=name,
            email=email,
            role=role,
            password_hash=hasher.hash(password),
            registration_date=now_utc(),
        ))

    return _make
