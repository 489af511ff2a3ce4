"""
Periodic expiry sweep.

Runs inside the API process (the stores are in-memory, so a separate worker
process would see different data). Started and stopped by the app lifespan.
Read-time expiry checks in the stores stay authoritative; this only bounds
memory between reads.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from infrastructure.security.code_store import CodeStore
from infrastructure.security.event_log import SecurityEventLog
from services.maintenance import CleanupReport, run_cleanup
from shared.logging import get_logger

log = get_logger(__name__)


class CleanupWorker:
    def __init__(
        self,
        pin_store: CodeStore,
        unlock_store: CodeStore,
        event_log: SecurityEventLog,
        interval_seconds: float = 3600,
    ) -> None:
        self._pin_store = pin_store
        self._unlock_store = unlock_store
        self._event_log = event_log
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> CleanupReport:
        report = run_cleanup(self._pin_store, self._unlock_store, self._event_log)
        log.info("security_cleanup_completed", **report.to_dict())
        return report

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception as e:
                # Retried on the next tick
                log.error(
                    "security_cleanup_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="security-cleanup")
        log.info("cleanup_worker_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("cleanup_worker_stopped")
