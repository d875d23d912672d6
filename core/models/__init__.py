"""Core domain models."""

from core.models.user import UserSelfUpdate, UserAdminUpdate

__all__ = [
    "UserSelfUpdate", "UserAdminUpdate",
]
