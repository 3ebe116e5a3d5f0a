"""Password hashing helpers backed by passlib."""

from __future__ import annotations

from passlib.context import CryptContext

# pbkdf2_sha256 has no 72-byte input limit, unlike bcrypt.
_password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Return a salted ``$pbkdf2-sha256$...`` hash for *password*."""
    return _password_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    """Check *password* against a stored hash; unknown or malformed hashes fail."""
    try:
        return _password_context.verify(password, stored)
    except ValueError:
        return False
