# ABOUTME: The credential store: registration, login validation, and password changes.
# ABOUTME: Stores only a per-user salt and SHA-256 hash, never the raw password.

import binascii
import logging
import re
import secrets
import time

from bookhub.db.accounts import AccountRepository, UserAccount
from bookhub.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    StorageUnavailableError,
    ValidationFailedError,
)
from bookhub.identity.hashing import (
    decode_salt,
    encode_salt,
    generate_salt,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

USER_ID_PREFIX = "BH"
MIN_PASSWORD_LENGTH = 8
_MAX_ID_ATTEMPTS = 20

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")


def generate_user_id() -> str:
    """Return a public user id: the BH prefix followed by six digits."""
    return f"{USER_ID_PREFIX}{100000 + secrets.randbelow(900000)}"


def validate_registration(
    full_name: str, email: str, username: str, password: str
) -> dict[str, str]:
    """Check every registration field and collect all failures.

    Returns:
        Mapping of field name to error message; empty when all fields are valid.
    """
    errors: dict[str, str] = {}
    if not full_name or not full_name.strip():
        errors["full_name"] = "Full name is required"
    if not email or not EMAIL_RE.match(email):
        errors["email"] = "Enter a valid email address"
    if not username or not USERNAME_RE.match(username):
        errors["username"] = "Username must be 3-20 letters, digits, or underscores"
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return errors


class CredentialStore:
    """Registers and authenticates users against an AccountRepository.

    Uniqueness is checked before insert and enforced again by the unique
    indexes, so of two racing registrations for the same name the first
    writer wins and the second gets ConflictError.
    """

    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    def register(
        self, full_name: str, email: str, username: str, password: str
    ) -> UserAccount:
        """Create a new account.

        A taken username or email is reported as a conflict even when other
        fields are invalid too.

        Raises:
            ConflictError: If the username or email is already registered.
            ValidationFailedError: If any field is invalid (all failures at once).
        """
        if (username or email) and self._accounts.exists(username or "", email or ""):
            raise ConflictError("Username or email already registered")

        errors = validate_registration(full_name, email, username, password)
        if errors:
            raise ValidationFailedError(errors)

        salt = generate_salt()
        account = UserAccount(
            user_id=self._unused_user_id(),
            full_name=full_name.strip(),
            email=email.casefold(),
            username=username.casefold(),
            password_hash=hash_password(password, salt),
            salt=encode_salt(salt),
            created_at=int(time.time() * 1000),
        )
        self._accounts.insert(account)
        logger.info("Registered user %s (%s)", account.username, account.user_id)
        return account

    def _unused_user_id(self) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = generate_user_id()
            if self._accounts.find_by_user_id(candidate) is None:
                return candidate
        raise ConflictError("Could not allocate a free user id")

    def _lookup(self, identifier: str) -> UserAccount | None:
        if "@" in identifier:
            return self._accounts.find_by_email(identifier)
        return self._accounts.find_by_username(identifier)

    def validate_login(self, username: str, password: str) -> bool:
        """Check a username (or email) and password.

        Returns:
            True iff the password hashed with the stored salt equals the
            stored hash. False for unknown users and on storage failure.
        """
        if not username or not password:
            return False
        try:
            account = self._lookup(username)
        except StorageUnavailableError:
            logger.error("Login check for %s failed: store unavailable", username)
            return False
        if account is None:
            return False

        try:
            salt = decode_salt(account.salt)
        except (binascii.Error, ValueError):
            logger.error("Stored salt for %s is corrupt", account.username)
            return False
        return verify_password(password, salt, account.password_hash)

    def change_password(self, username: str, old_password: str, new_password: str) -> None:
        """Replace a user's password with a freshly salted hash.

        Raises:
            NotFoundError: If the user does not exist.
            InvalidArgumentError: If old_password is wrong.
            ValidationFailedError: If new_password is too short.
        """
        account = self._accounts.find_by_username(username)
        if account is None:
            raise NotFoundError(f"User {username} not found")
        if not self.validate_login(username, old_password):
            raise InvalidArgumentError("Current password is incorrect")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailedError(
                {"password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}
            )

        salt = generate_salt()
        self._accounts.set_password(
            account.user_id, hash_password(new_password, salt), encode_salt(salt)
        )
        logger.info("Password changed for %s", account.username)

    def get_user(self, username: str) -> UserAccount | None:
        return self._accounts.find_by_username(username)

    def get_user_by_id(self, user_id: str) -> UserAccount | None:
        return self._accounts.find_by_user_id(user_id)

    def require_user(self, username: str) -> UserAccount:
        account = self.get_user(username)
        if account is None:
            raise NotFoundError(f"User {username} not found")
        return account

    def update_profile(self, user_id: str, **fields: str | float | None) -> bool:
        """Edit profile fields (full_name, location, image_path, rating)."""
        if "full_name" in fields and not (fields["full_name"] or "").strip():
            raise ValidationFailedError({"full_name": "Full name is required"})
        return self._accounts.update_profile(user_id, **fields)

    def share_book(self, user_id: str, book_id: str) -> bool:
        """Record that a user listed a book. Duplicates are ignored."""
        if not book_id or not book_id.strip():
            raise InvalidArgumentError("Book id cannot be empty")
        return self._accounts.append_history(user_id, "uploaded_books", [book_id])

    def add_borrowed_books(self, user_id: str, book_ids: list[str]) -> bool:
        """Record books a user borrowed. Duplicates are ignored."""
        return self._accounts.append_history(user_id, "borrowed_books", book_ids)
