"""
Date/time helpers — framework-agnostic.

Every store takes a ``Clock`` so tests can move time forward without
sleeping; production code uses ``utc_now``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """Render *value* as an ISO 8601 string in UTC.

    Naive datetimes are assumed to be UTC already. ``None`` passes through.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
