"""
Random code generators — pure, side-effect-free functions.

All generators draw from the ``secrets`` module; these codes are one-time
authentication factors, never identifiers.
"""

from __future__ import annotations

import secrets
import string

ALPHANUMERIC_ALPHABET = string.digits + string.ascii_uppercase


def generate_numeric_code(length: int = 4) -> str:
    """Generate a cryptographically secure numeric code.

    The first digit is never zero, so the code is always exactly *length*
    digits when read back as an integer.

    Args:
        length: Number of digits (default 4).

    Returns:
        String of random decimal digits.
    """
    if length < 1:
        raise ValueError("length must be at least 1")
    low = 10 ** (length - 1)
    high = 10**length
    return str(low + secrets.randbelow(high - low))


def generate_alphanumeric_code(length: int = 6) -> str:
    """Generate a code over ``0-9A-Z``.

    Args:
        length: Number of characters (default 6).
    """
    if length < 1:
        raise ValueError("length must be at least 1")
    return "".join(secrets.choice(ALPHANUMERIC_ALPHABET) for _ in range(length))
