"""Expiry sweep over every in-memory security store."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from infrastructure.security.code_store import CodeStore
from infrastructure.security.event_log import SecurityEventLog


@dataclass(frozen=True)
class CleanupReport:
    pins_removed: int
    unlock_entries_removed: int
    events_removed: int

    def to_dict(self) -> dict:
        return asdict(self)


def run_cleanup(
    pin_store: CodeStore, unlock_store: CodeStore, event_log: SecurityEventLog
) -> CleanupReport:
    return CleanupReport(
        pins_removed=pin_store.cleanup_expired(),
        unlock_entries_removed=unlock_store.cleanup_expired(),
        events_removed=event_log.purge_expired(),
    )
