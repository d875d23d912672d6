"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Durations use their natural units (minutes for short windows, hours for
    token lifetimes). Signing secrets are not part of this model; they come
    from Vault (see clients.vault_client.get_token_secrets).
    """

    # Token lifetimes
    auth_token_expiry_hours: int = Field(
        default=24,
        description="Lifetime of the signed auth token",
        ge=1,
        le=720,
    )
    csrf_token_expiry_hours: int = Field(
        default=24,
        description="Lifetime of the signed CSRF token",
        ge=1,
        le=720,
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="HMAC algorithm for both token families",
        pattern="^HS(256|384|512)$",
    )

    # Password reset
    reset_token_expiry_minutes: int = Field(
        default=5,
        description="How long a password reset link remains valid",
        ge=1,
        le=1440,
    )

    # Password policy
    password_min_length: int = Field(
        default=8,
        description="Minimum length of a new password",
        ge=8,
        le=72,
    )
    password_history_size: int = Field(
        default=5,
        description="Number of previous password hashes kept to block reuse",
        ge=1,
        le=24,
    )
    bcrypt_rounds: int = Field(
        default=12,
        description="bcrypt cost factor",
        ge=4,
        le=16,
    )

    # Rate limiting
    rate_limit_attempts: int = Field(
        default=5,
        description="Max password reset requests per email per window",
        ge=1,
        le=20,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=5,
        le=60,
    )

    # Cookies
    auth_cookie_name: str = Field(default="p2s_auth_token")
    csrf_cookie_name: str = Field(default="p2s_csrf_token")
    csrf_header_name: str = Field(default="X-CSRF-Token")
    cookie_secure: bool = Field(
        default=True,
        description="Set the Secure flag on the auth cookie",
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8082",
        description="Base URL for reset link generation",
    )
    reset_path: str = Field(default="/reset-password")
    login_url: str = Field(
        default="http://localhost:4200/auth/login",
        description="Link included in the password-changed confirmation",
    )
    app_name: str = Field(
        default="P2S",
        description="Application name for emails",
    )
