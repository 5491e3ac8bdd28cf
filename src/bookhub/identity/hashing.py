# ABOUTME: Salted SHA-256 password hashing for stored credentials.
# ABOUTME: Salts and digests are base64 text so they can live in plain TEXT columns.

import base64
import hashlib
import hmac
import secrets

SALT_LENGTH = 16  # 128 bits


def generate_salt() -> bytes:
    """Return SALT_LENGTH bytes from the OS CSPRNG."""
    return secrets.token_bytes(SALT_LENGTH)


def encode_salt(salt: bytes) -> str:
    return base64.b64encode(salt).decode("ascii")


def decode_salt(encoded: str) -> bytes:
    return base64.b64decode(encoded)


def hash_password(password: str, salt: bytes) -> str:
    """Compute SHA-256(salt || password) and return it base64-encoded.

    Args:
        password: The plaintext password.
        salt: Per-user random salt.

    Returns:
        Base64 digest string (44 characters).
    """
    hasher = hashlib.sha256()
    hasher.update(salt)
    hasher.update(password.encode("utf-8"))
    return base64.b64encode(hasher.digest()).decode("ascii")


def verify_password(password: str, salt: bytes, expected_hash: str) -> bool:
    """Check a password against a stored salted hash in constant time."""
    return hmac.compare_digest(hash_password(password, salt), expected_hash)
