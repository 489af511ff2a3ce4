"""
Input normalisation helpers — pure functions, no framework imports.
"""

from __future__ import annotations


def normalize_email(email: str) -> str:
    """Lower-case and trim an email so lookups and store keys agree."""
    return email.strip().lower()
