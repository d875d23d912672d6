"""Credential storage.

CredentialStore is the contract the auth services depend on. Lookups are
total: a missing row is None, never an exception. PostgresCredentialStore
backs it with the users and user_previous_passwords tables (see
db/schema.sql).
"""

import logging
from typing import Protocol

import psycopg2.errors

from clients.postgres_client import PostgresClient
from auth.exceptions import EmailAlreadyInUseError
from auth.types import UserCredential

logger = logging.getLogger(__name__)

_USER_COLUMNS = """id, surname, name, email, role, image_path, password_hash,
                   reset_token, reset_token_created_at, registration_date"""


class CredentialStore(Protocol):
    """Persistence contract for UserCredential records."""

    def find_by_id(self, user_id: int) -> UserCredential | None: ...

    def find_by_email(self, email: str) -> UserCredential | None: ...

    def find_by_surname(self, surname: str) -> UserCredential | None: ...

    def find_by_reset_token(self, token: str) -> UserCredential | None: ...

    def save(self, user: UserCredential) -> UserCredential:
        """Insert when user.id is None, otherwise replace the stored record."""
        ...

    def delete(self, user_id: int) -> bool: ...


class PostgresCredentialStore:
    """CredentialStore over PostgreSQL."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def _history(self, user_id: int) -> tuple[str, ...]:
        rows = self._db.execute(
            """SELECT hashed_password FROM user_previous_passwords
               WHERE user_id = %s ORDER BY position ASC""",
            (user_id,),
        )
        return tuple(row["hashed_password"] for row in rows)

    def _to_user(self, row: dict | None) -> UserCredential | None:
        if row is None:
            return None
        return UserCredential(**row, password_history=self._history(row["id"]))

    def find_by_id(self, user_id: int) -> UserCredential | None:
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,),
        )
        return self._to_user(row)

    def find_by_email(self, email: str) -> UserCredential | None:
        """Exact match; email case is preserved as stored."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s",
            (email,),
        )
        return self._to_user(row)

    def find_by_surname(self, surname: str) -> UserCredential | None:
        """First account with this surname, lowest id first."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE surname = %s ORDER BY id LIMIT 1",
            (surname,),
        )
        return self._to_user(row)

    def find_by_reset_token(self, token: str) -> UserCredential | None:
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE reset_token = %s",
            (token,),
        )
        return self._to_user(row)

    def save(self, user: UserCredential) -> UserCredential:
        """
        Upsert user and replace its password history in one transaction.

        Raises:
            EmailAlreadyInUseError: If another account holds the email.
        """
        values = (
            user.surname,
            user.name,
            user.email,
            user.role,
            user.image_path,
            user.password_hash,
            user.reset_token,
            user.reset_token_created_at,
        )

        try:
            return self._save(user, values)
        except psycopg2.errors.UniqueViolation as e:
            if e.diag.constraint_name == "users_email_key":
                raise EmailAlreadyInUseError() from e
            raise

    def _save(self, user: UserCredential, values: tuple) -> UserCredential:
        with self._db.transaction() as cur:
            if user.id is None:
                cur.execute(
                    f"""INSERT INTO users
                        (surname, name, email, role, image_path, password_hash,
                         reset_token, reset_token_created_at, registration_date)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_USER_COLUMNS}""",
                    values + (user.registration_date,),
                )
            else:
                cur.execute(
                    f"""UPDATE users SET
                        surname = %s, name = %s, email = %s, role = %s, image_path = %s,
                        password_hash = %s, reset_token = %s, reset_token_created_at = %s
                        WHERE id = %s
                        RETURNING {_USER_COLUMNS}""",
                    values + (user.id,),
                )
            row = cur.fetchone()
            if row is None:
                raise LookupError(f"User {user.id} vanished during save")

            cur.execute("DELETE FROM user_previous_passwords WHERE user_id = %s", (row["id"],))
            for position, hashed in enumerate(user.password_history):
                cur.execute(
                    """INSERT INTO user_previous_passwords (user_id, position, hashed_password)
                       VALUES (%s, %s, %s)""",
                    (row["id"], position, hashed),
                )

        return UserCredential(**dict(row), password_history=user.password_history)

    def delete(self, user_id: int) -> bool:
        """Hard delete. History rows go with it (ON DELETE CASCADE)."""
        rows = self._db.execute_returning(
            "DELETE FROM users WHERE id = %s RETURNING id",
            (user_id,),
        )
        if rows:
            logger.info(f"Deleted user {user_id}")
        return len(rows) > 0
