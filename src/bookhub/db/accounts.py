# ABOUTME: Persistence for registered user accounts (the users table).
# ABOUTME: Maps rows to UserAccount and enforces username/email uniqueness via unique indexes.

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from bookhub.errors import ConflictError, InvalidArgumentError, StorageUnavailableError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"full_name", "location", "image_path", "rating"})
HISTORY_FIELDS = frozenset({"uploaded_books", "borrowed_books", "buyer_reviews"})


@dataclass
class UserAccount:
    """A registered user. username and email are stored case-folded."""

    user_id: str
    full_name: str
    email: str
    username: str
    password_hash: str
    salt: str
    created_at: int
    location: str | None = None
    image_path: str | None = None
    rating: float | None = None
    uploaded_books: list[str] = field(default_factory=list)
    borrowed_books: list[str] = field(default_factory=list)
    buyer_reviews: list[str] = field(default_factory=list)


def _load_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed history value: %r", raw)
        return []
    return [str(v) for v in values] if isinstance(values, list) else []


def row_to_account(row: Any) -> UserAccount:
    """Convert a users row to a UserAccount."""
    return UserAccount(
        user_id=row["user_id"],
        full_name=row["full_name"],
        email=row["email"],
        username=row["username"],
        password_hash=row["password_hash"],
        salt=row["salt"],
        created_at=row["created_at"],
        location=row["location"],
        image_path=row["image_path"],
        rating=row["rating"],
        uploaded_books=_load_list(row["uploaded_books"]),
        borrowed_books=_load_list(row["borrowed_books"]),
        buyer_reviews=_load_list(row["buyer_reviews"]),
    )


class AccountRepository:
    """Typed CRUD over the users table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except sqlite3.IntegrityError:
                self._conn.rollback()
                raise
            except sqlite3.Error as exc:
                logger.error("Storage failure while %s", action, exc_info=True)
                raise StorageUnavailableError(
                    f"Storage failure while {action}: {exc}"
                ) from exc

    def _find_one(self, column: str, value: str) -> UserAccount | None:
        with self._guard(f"looking up user by {column}"):
            row = self._conn.execute(
                f"SELECT * FROM users WHERE {column} = ?", (value,)
            ).fetchone()
        return row_to_account(row) if row else None

    def find_by_username(self, username: str) -> UserAccount | None:
        return self._find_one("username", username.casefold())

    def find_by_email(self, email: str) -> UserAccount | None:
        return self._find_one("email", email.casefold())

    def find_by_user_id(self, user_id: str) -> UserAccount | None:
        return self._find_one("user_id", user_id)

    def exists(self, username: str, email: str) -> bool:
        """True if either the username or the email is already registered."""
        with self._guard("checking user uniqueness"):
            row = self._conn.execute(
                "SELECT 1 FROM users WHERE username = ? OR email = ? LIMIT 1",
                (username.casefold(), email.casefold()),
            ).fetchone()
        return row is not None

    def insert(self, account: UserAccount) -> None:
        """Store a new account.

        Raises:
            ConflictError: If the username, email, or user_id is already taken.
        """
        row = {
            "user_id": account.user_id,
            "full_name": account.full_name,
            "email": account.email.casefold(),
            "username": account.username.casefold(),
            "password_hash": account.password_hash,
            "salt": account.salt,
            "location": account.location,
            "image_path": account.image_path,
            "rating": account.rating,
            "uploaded_books": json.dumps(account.uploaded_books),
            "borrowed_books": json.dumps(account.borrowed_books),
            "buyer_reviews": json.dumps(account.buyer_reviews),
            "created_at": account.created_at,
        }
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        try:
            with self._guard(f"registering {account.username}"):
                self._conn.execute(
                    f"INSERT INTO users ({columns}) VALUES ({placeholders})",
                    list(row.values()),
                )
                self._conn.commit()
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"User {account.username} already exists: {exc}") from exc

    def set_password(self, user_id: str, password_hash: str, salt: str) -> bool:
        """Overwrite both the salt and the hash of an account."""
        with self._guard(f"changing password for {user_id}"):
            cursor = self._conn.execute(
                "UPDATE users SET password_hash = ?, salt = ? WHERE user_id = ?",
                (password_hash, salt, user_id),
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def update_profile(self, user_id: str, **fields: str | float | None) -> bool:
        """Update profile columns (full_name, location, image_path, rating).

        Raises:
            InvalidArgumentError: On an unknown or non-editable field.
        """
        if not fields:
            return False
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Cannot update user fields: {sorted(unknown)}")

        set_clause = ", ".join(f"{name} = ?" for name in fields)
        with self._guard(f"updating profile for {user_id}"):
            cursor = self._conn.execute(
                f"UPDATE users SET {set_clause} WHERE user_id = ?",
                [*fields.values(), user_id],
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def append_history(self, user_id: str, column: str, values: list[str]) -> bool:
        """Add values to a history list, skipping ones already present.

        Returns:
            False if no user has this id.
        """
        if column not in HISTORY_FIELDS:
            raise InvalidArgumentError(f"Unknown history field {column!r}")

        with self._guard(f"updating {column} for {user_id}"):
            row = self._conn.execute(
                f"SELECT {column} FROM users WHERE user_id = ?", (user_id,)
            ).fetchone()
            if row is None:
                return False
            current = _load_list(row[column])
            current.extend(v for v in dict.fromkeys(values) if v not in current)
            self._conn.execute(
                f"UPDATE users SET {column} = ? WHERE user_id = ?",
                (json.dumps(current), user_id),
            )
            self._conn.commit()
        return True
