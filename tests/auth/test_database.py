"""Tests for PostgresCredentialStore - SQL mapping over a mocked PostgresClient."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

import psycopg2.errors
import pytest

from auth.database import PostgresCredentialStore
from auth.exceptions import EmailAlreadyInUseError
from auth.types import UserCredential
from clients.postgres_client import PostgresClient

REGISTERED = datetime(2024, 3, 1, tzinfo=timezone.utc)


class EmailKeyViolation(psycopg2.errors.UniqueViolation):
    diag = SimpleNamespace(constraint_name="users_email_key")


class OtherKeyViolation(psycopg2.errors.UniqueViolation):
    diag = SimpleNamespace(constraint_name="users_reset_token_key")


def user_row(**overrides) -> dict:
    row = {
        "id": 7,
        "surname": "Rossi",
        "name": "Mario",
        "email": "mario.rossi@example.com",
        "role": "user",
        "image_path": None,
        "password_hash": "hash-current",
        "reset_token": None,
        "reset_token_created_at": None,
        "registration_date": REGISTERED,
    }
    row.update(overrides)
    return row


@pytest.fixture
def db():
    db = Mock(spec=PostgresClient)
    db.transaction.return_value = MagicMock()
    return db


@pytest.fixture
def cursor(db):
    return db.transaction.return_value.__enter__.return_value


@pytest.fixture
def cred_store(db):
    return PostgresCredentialStore(db)


class TestLookups:
    def test_find_by_email_loads_history(self, db, cred_store):
        db.execute_single.return_value = user_row()
        db.execute.return_value = [{"hashed_password": "h1"}, {"hashed_password": "h2"}]

        user = cred_store.find_by_email("mario.rossi@example.com")

        assert user.id == 7
        assert user.password_history == ("h1", "h2")
        assert db.execute_single.call_args.args[1] == ("mario.rossi@example.com",)
        assert "ORDER BY position" in db.execute.call_args.args[0]

    def test_missing_returns_none(self, db, cred_store):
        db.execute_single.return_value = None

        assert cred_store.find_by_id(99) is None
        db.execute.assert_not_called()

    def test_find_by_surname_takes_lowest_id(self, db, cred_store):
        db.execute_single.return_value = user_row()
        db.execute.return_value = []

        cred_store.find_by_surname("Rossi")

        assert "ORDER BY id LIMIT 1" in db.execute_single.call_args.args[0]

    def test_find_by_reset_token(self, db, cred_store):
        pending = datetime(2024, 3, 2, tzinfo=timezone.utc)
        db.execute_single.return_value = user_row(reset_token="tok", reset_token_created_at=pending)
        db.execute.return_value = []

        user = cred_store.find_by_reset_token("tok")

        assert user.has_pending_reset
        assert user.reset_token_created_at == pending


class TestSave:
    def test_insert_when_no_id(self, cred_store, cursor):
        cursor.fetchone.return_value = user_row()
        new_user = UserCredential(**{**user_row(id=None), "password_history": ()})

        saved = cred_store.save(new_user)

        assert saved.id == 7
        assert cursor.execute.call_args_list[0].args[0].strip().startswith("INSERT INTO users")

    def test_update_rewrites_history_in_order(self, cred_store, cursor):
        cursor.fetchone.return_value = user_row()
        user = UserCredential(**user_row(), password_history=("h1", "h2"))

        saved = cred_store.save(user)

        statements = [c.args for c in cursor.execute.call_args_list]
        assert statements[0][0].strip().startswith("UPDATE users")
        assert statements[1][0].startswith("DELETE FROM user_previous_passwords")
        assert statements[2][1] == (7, 0, "h1")
        assert statements[3][1] == (7, 1, "h2")
        assert saved.password_history == ("h1", "h2")

    def test_vanished_row(self, cred_store, cursor):
        cursor.fetchone.return_value = None

        with pytest.raises(LookupError):
            cred_store.save(UserCredential(**user_row()))

    def test_email_conflict_mapped(self, cred_store, cursor):
        cursor.execute.side_effect = EmailKeyViolation("duplicate key")

        with pytest.raises(EmailAlreadyInUseError):
            cred_store.save(UserCredential(**user_row()))

    def test_other_unique_violation_propagates(self, cred_store, cursor):
        cursor.execute.side_effect = OtherKeyViolation("duplicate key")

        with pytest.raises(psycopg2.errors.UniqueViolation):
            cred_store.save(UserCredential(**user_row()))


class TestDelete:
    def test_existing(self, db, cred_store):
        db.execute_returning.return_value = [{"id": 7}]

        assert cred_store.delete(7) is True

    def test_missing(self, db, cred_store):
        db.execute_returning.return_value = []

        assert cred_store.delete(7) is False
