"""
User account service: lookups, profile updates, deletion.

Passwords never change here; they go through AuthService.change_password
or the reset flow so history is always enforced. The acting user comes
from the request's user context.
"""

import logging

from auth.database import CredentialStore
from auth.exceptions import EmailAlreadyInUseError, PermissionDeniedError, UserNotFoundError
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.types import UserCredential, UserView
from core.models import UserAdminUpdate, UserSelfUpdate
from utils.user_context import get_current_user_id

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class UserService:
    """Service for user account operations."""

    def __init__(self, store: CredentialStore, security_logger: SecurityLogger):
        self.store = store
        self.security_logger = security_logger

    def _require(self, user_id: int) -> UserCredential:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError.by_id(user_id)
        return user

    def _require_admin(self) -> UserCredential:
        actor = self._require(get_current_user_id())
        if actor.role != ADMIN_ROLE:
            raise PermissionDeniedError("Admin role required")
        return actor

    def get_by_id(self, user_id: int) -> UserView:
        """
        Raises:
            UserNotFoundError: If no account has this id
        """
        return UserView.from_credential(self._require(user_id))

    def get_by_email(self, email: str) -> UserView:
        user = self.store.find_by_email(email)
        if user is None:
            raise UserNotFoundError.by_email(email)
        return UserView.from_credential(user)

    def get_by_surname(self, surname: str) -> UserView:
        user = self.store.find_by_surname(surname)
        if user is None:
            raise UserNotFoundError.by_surname(surname)
        return UserView.from_credential(user)

    def update_self(self, data: UserSelfUpdate) -> UserView:
        """
        Update the current user's own profile.

        Args:
            data: New surname, name and image path

        Returns:
            Updated user

        Raises:
            UserNotFoundError: If the current user's account no longer exists
        """
        current = self._require(get_current_user_id())
        updated = self.store.save(current.model_copy(update={
            "surname": data.surname,
            "name": data.name,
            "image_path": data.image_path,
        }))
        return UserView.from_credential(updated)

    def update_by_admin(self, data: UserAdminUpdate) -> UserView:
        """
        Update any account's profile, role and email.

        Raises:
            PermissionDeniedError: If the current user is not an admin
            UserNotFoundError: If data.id matches no account
            EmailAlreadyInUseError: If the new email belongs to another account
        """
        actor = self._require_admin()
        target = self._require(data.id)

        email = str(data.email)
        if email != target.email:
            holder = self.store.find_by_email(email)
            if holder is not None and holder.id != target.id:
                raise EmailAlreadyInUseError()

        updated = self.store.save(target.model_copy(update={
            "surname": data.surname,
            "name": data.name,
            "role": data.role,
            "email": email,
            "image_path": data.image_path,
        }))

        if target.role != updated.role:
            logger.info(f"User {actor.id} changed role of user {target.id} to {updated.role}")
        return UserView.from_credential(updated)

    def delete(self, user_id: int, ip_address: str | None = None) -> None:
        """
        Permanently delete an account and its password history.

        Allowed for the account owner and for admins.

        Raises:
            PermissionDeniedError: If the caller is neither the owner nor an admin
            UserNotFoundError: If no account has this id
        """
        actor_id = get_current_user_id()
        if actor_id != user_id:
            self._require_admin()

        target = self._require(user_id)
        if not self.store.delete(user_id):
            raise UserNotFoundError.by_id(user_id)

        self.security_logger.log(
            SecurityEvent.USER_DELETED,
            email=target.email,
            user_id=target.id,
            ip_address=ip_address,
            details={"deleted_by": actor_id},
        )
