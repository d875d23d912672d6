"""Tests for UserService - lookups, profile updates, deletion."""

import pytest

from auth.exceptions import EmailAlreadyInUseError, PermissionDeniedError, UserNotFoundError
from auth.security_logger import SecurityEvent
from core.models import UserAdminUpdate, UserSelfUpdate
from core.services.user_service import UserService
from utils.user_context import user_context


@pytest.fixture
def service(store, security_logger):
    return UserService(store, security_logger)


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", surname="Verdi", name="Anna", role="admin")


def admin_update(target, **overrides) -> UserAdminUpdate:
    fields = {
        "id": target.id,
        "surname": target.surname,
        "name": target.name,
        "role": target.role,
        "email": target.email,
        "imagePath": target.image_path,
    }
    fields.update(overrides)
    return UserAdminUpdate(**fields)


class TestLookups:
    def test_get_by_id(self, service, user):
        assert service.get_by_id(user.id).email == user.email

    def test_get_by_email(self, service, user):
        assert service.get_by_email(user.email).id == user.id

    def test_get_by_surname(self, service, user):
        assert service.get_by_surname("Rossi").id == user.id

    def test_missing_id(self, service):
        with pytest.raises(UserNotFoundError, match="id '99'"):
            service.get_by_id(99)

    def test_missing_email(self, service):
        with pytest.raises(UserNotFoundError, match="nobody@example.com"):
            service.get_by_email("nobody@example.com")

    def test_missing_surname(self, service):
        with pytest.raises(UserNotFoundError, match="surname"):
            service.get_by_surname("Nessuno")


class TestUpdateSelf:
    def test_updates_profile_fields(self, service, store, user):
        with user_context(user.id):
            view = service.update_self(UserSelfUpdate(surname="Neri", name="Paolo", imagePath="/img/1.png"))

        assert view.surname == "Neri"
        assert view.image_path == "/img/1.png"
        stored = store.find_by_id(user.id)
        assert stored.name == "Paolo"
        # Credentials untouched
        assert stored.password_hash == user.password_hash
        assert stored.email == user.email

    def test_requires_user_context(self, service, user):
        with pytest.raises(RuntimeError):
            service.update_self(UserSelfUpdate(surname="Neri", name="Paolo"))


class TestUpdateByAdmin:
    def test_admin_changes_role_and_email(self, service, store, user, admin):
        with user_context(admin.id):
            view = service.update_by_admin(admin_update(user, role="admin", email="new@example.com"))

        assert view.role == "admin"
        assert store.find_by_email("new@example.com").id == user.id

    def test_non_admin_denied(self, service, user, admin):
        with user_context(user.id):
            with pytest.raises(PermissionDeniedError):
                service.update_by_admin(admin_update(admin, role="user"))

    def test_email_taken_by_other_account(self, service, user, admin):
        with user_context(admin.id):
            with pytest.raises(EmailAlreadyInUseError):
                service.update_by_admin(admin_update(user, email=admin.email))

    def test_keeping_own_email_allowed(self, service, user, admin):
        with user_context(admin.id):
            view = service.update_by_admin(admin_update(user, name="Marco"))

        assert view.name == "Marco"

    def test_missing_target(self, service, user, admin):
        with user_context(admin.id):
            with pytest.raises(UserNotFoundError):
                service.update_by_admin(admin_update(user, id=999))

    def test_history_preserved(self, service, store, user, admin):
        store.save(user.model_copy(update={"password_history": ("old-hash",)}))

        with user_context(admin.id):
            service.update_by_admin(admin_update(user, name="Marco"))

        assert store.find_by_id(user.id).password_history == ("old-hash",)


class TestDelete:
    def test_owner_can_delete_self(self, service, store, security_logger, user):
        with user_context(user.id):
            service.delete(user.id)

        assert store.find_by_id(user.id) is None
        assert security_logger.log.call_args.args[0] == SecurityEvent.USER_DELETED

    def test_admin_can_delete_other(self, service, store, user, admin):
        with user_context(admin.id):
            service.delete(user.id)

        assert store.find_by_id(user.id) is None

    def test_non_admin_cannot_delete_other(self, service, store, user, admin):
        with user_context(user.id):
            with pytest.raises(PermissionDeniedError):
                service.delete(admin.id)

        assert store.find_by_id(admin.id) is not None

    def test_missing_user(self, service, admin):
        with user_context(admin.id):
            with pytest.raises(UserNotFoundError):
                service.delete(999)

    def test_deleted_email_can_register_again(self, service, store, make_user, user):
        with user_context(user.id):
            service.delete(user.id)

        again = make_user(email=user.email)
        assert again.id != user.id
