"""
Cryptographic helpers — password hashing and constant-time comparison.

Uses argon2 for passwords (via argon2-cffi) and ``hmac.compare_digest`` for
one-time codes.
"""

from __future__ import annotations

import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify *plain_password* against an argon2 *password_hash*.

    Returns:
        ``True`` if the password matches, ``False`` for a wrong password or
        a malformed/empty hash.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def constant_time_equals(expected: str, submitted: str) -> bool:
    """Compare two codes without leaking where they differ.

    Both sides are compared as UTF-8 bytes, so unequal lengths and non-ASCII
    input return ``False`` instead of raising.
    """
    return hmac.compare_digest(
        expected.encode("utf-8"), submitted.encode("utf-8")
    )
