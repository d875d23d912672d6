"""Password hashing, history bookkeeping, and the new-password policy.

Hashes are bcrypt (salted, one-way). History holds the hashes of previous
passwords, oldest first; the current hash lives on the credential itself and
is checked alongside the history.
"""

from dataclasses import dataclass

import bcrypt

from auth.config import AuthConfig
from auth.exceptions import PolicyRejectedError
from auth.types import UserCredential

# bcrypt ignores input past this many bytes
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt wrapper with a fixed cost factor."""

    def __init__(self, rounds: int = 12):
        self._rounds = rounds
        self._dummy_hash: bytes | None = None

    def hash(self, password: str) -> str:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))
        return hashed.decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check. Malformed hashes and over-long input verify as False."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
        except (ValueError, TypeError, UnicodeEncodeError):
            return False

    def burn(self, password: str) -> None:
        """Spend one verify's worth of time against a throwaway hash."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"timing-equalizer", bcrypt.gensalt(rounds=self._rounds))
        self.verify(password, self._dummy_hash.decode("ascii"))


def append_with_eviction(history: tuple[str, ...], password_hash: str, limit: int) -> tuple[str, ...]:
    """
    Return history with password_hash appended, oldest entries evicted past limit.

    Raises:
        ValueError: If password_hash is already in history.
    """
    if password_hash in history:
        raise ValueError("Password hash already present in history")
    appended = history + (password_hash,)
    return appended[-limit:]


def rotate_password(user: UserCredential, new_hash: str, history_size: int) -> UserCredential:
    """New credential with new_hash current and the old hash pushed to history."""
    return user.model_copy(update={
        "password_hash": new_hash,
        "password_history": append_with_eviction(user.password_history, user.password_hash, history_size),
    })


@dataclass(frozen=True)
class PolicyResult:
    """Outcome of a policy check. reason is None when ok."""

    ok: bool
    reason: str | None = None
    message: str | None = None


class PasswordPolicy:
    """Validates candidate passwords against length and reuse rules. Pure."""

    def __init__(self, config: AuthConfig, hasher: PasswordHasher):
        self._min_length = config.password_min_length
        self._history_size = config.password_history_size
        self._hasher = hasher

    def check_length(self, candidate: str) -> PolicyResult:
        if len(candidate) < self._min_length:
            return PolicyResult(
                ok=False,
                reason=PolicyRejectedError.TOO_SHORT,
                message=f"Password must be at least {self._min_length} characters long",
            )
        if len(candidate.encode("utf-8")) > BCRYPT_MAX_BYTES:
            return PolicyResult(
                ok=False,
                reason=PolicyRejectedError.TOO_LONG,
                message=f"Password must be at most {BCRYPT_MAX_BYTES} bytes long",
            )
        return PolicyResult(ok=True)

    def check(self, candidate: str, user: UserCredential) -> PolicyResult:
        """Check a new password for user without raising."""
        length = self.check_length(candidate)
        if not length.ok:
            return length

        for previous in (user.password_hash, *user.password_history):
            if self._hasher.verify(candidate, previous):
                return PolicyResult(
                    ok=False,
                    reason=PolicyRejectedError.REUSED,
                    message=f"Password cannot match any of the last {self._history_size} passwords",
                )
        return PolicyResult(ok=True)

    def validate(self, candidate: str, user: UserCredential) -> None:
        """
        Raises:
            PolicyRejectedError: With the failing rule's reason and message.
        """
        result = self.check(candidate, user)
        if not result.ok:
            raise PolicyRejectedError(result.reason, result.message)

    def validate_initial(self, candidate: str) -> None:
        """Length rules only, for passwords set at registration."""
        result = self.check_length(candidate)
        if not result.ok:
            raise PolicyRejectedError(result.reason, result.message)


def replace_password(
    user: UserCredential,
    new_password: str,
    policy: PasswordPolicy,
    hasher: PasswordHasher,
    history_size: int,
) -> UserCredential:
    """
    Validate new_password for user and return the updated credential.

    The old hash moves into history and any pending reset is cleared.

    Raises:
        PolicyRejectedError: If new_password fails the policy.
    """
    policy.validate(new_password, user)
    rotated = rotate_password(user, hasher.hash(new_password), history_size)
    return rotated.model_copy(update={"reset_token": None, "reset_token_created_at": None})
