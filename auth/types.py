"""Pydantic models for the auth domain."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator


class UserCredential(BaseModel):
    """
    A stored account, including its secret material.

    Immutable: every change produces a new record via model_copy(update=...).
    Never serialize this model into a response; use UserView.
    """

    id: int | None = None
    surname: str
    name: str
    email: str
    role: str = "user"
    image_path: str | None = None
    password_hash: str
    password_history: tuple[str, ...] = ()
    reset_token: str | None = None
    reset_token_created_at: datetime | None = None
    registration_date: datetime

    model_config = {"frozen": True, "from_attributes": True}

    @model_validator(mode="after")
    def reset_state_is_paired(self) -> "UserCredential":
        """Reset token and its timestamp are set and cleared together."""
        if (self.reset_token is None) != (self.reset_token_created_at is None):
            raise ValueError("reset_token and reset_token_created_at must be set together")
        return self

    @property
    def has_pending_reset(self) -> bool:
        return self.reset_token is not None


class UserView(BaseModel):
    """Public projection of an account returned to clients."""

    id: int
    surname: str
    name: str
    role: str
    email: str
    image_path: str | None = Field(None, alias="imagePath")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_credential(cls, user: UserCredential) -> "UserView":
        return cls(
            id=user.id,
            surname=user.surname,
            name=user.name,
            role=user.role,
            email=user.email,
            image_path=user.image_path,
        )


class LoginRequest(BaseModel):
    """Request payload for login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Request payload for registration."""

    surname: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordChangeRequest(BaseModel):
    """Request payload for an authenticated password change."""

    email: EmailStr
    old_password: str = Field(..., alias="oldPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword")

    model_config = {"populate_by_name": True}


class PasswordResetRequest(BaseModel):
    """Request payload to start a password reset."""

    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Request payload to finish a password reset."""

    token: str = Field(..., min_length=1)
    new_password: str = Field(..., alias="newPassword")

    model_config = {"populate_by_name": True}


class TokenClaims(BaseModel):
    """Identity claims carried by a verified auth token."""

    id: int
    surname: str
    name: str
    role: str
    email: str
    image_path: str | None = None
    csrf_nonce: str | None = None
    issued_at: datetime
    expires_at: datetime

    def to_view(self) -> UserView:
        return UserView(
            id=self.id,
            surname=self.surname,
            name=self.name,
            role=self.role,
            email=self.email,
            image_path=self.image_path,
        )


@dataclass(frozen=True)
class CsrfToken:
    """Signed CSRF token and the nonce it carries."""

    token: str
    nonce: str


@dataclass(frozen=True)
class IssuedSession:
    """Auth token and CSRF token issued together and bound by the CSRF nonce."""

    auth_token: str
    csrf_token: str
