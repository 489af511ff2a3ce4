"""Step 2 of the legacy login: validate the PIN issued in step 1."""

from __future__ import annotations

from typing import Optional

from infrastructure.security.code_store import CodeStatus, CodeStore, CodeValidation
from infrastructure.security.event_log import SecurityEventLog, SecurityEventType


class PinService:
    def __init__(self, pin_store: CodeStore, event_log: SecurityEventLog) -> None:
        self._pins = pin_store
        self._events = event_log

    def validate_pin(
        self,
        user_id: str,
        code: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> CodeValidation:
        result = self._pins.validate(user_id, code)
        context = {"user_id": user_id, "ip": ip, "user_agent": user_agent}

        if result.is_valid:
            self._events.record(SecurityEventType.PIN_SUCCESS, **context)
            return result

        self._events.record(
            SecurityEventType.PIN_FAILURE,
            details={
                "reason": result.outcome.value,
                "attempts_remaining": result.attempts_remaining,
            },
            **context,
        )
        if result.just_locked:
            self._events.record(
                SecurityEventType.ACCOUNT_LOCKED,
                details={
                    "reason": "max_pin_attempts",
                    "locked_until": result.locked_until.isoformat(),
                },
                **context,
            )
        return result

    def status(self, user_id: str) -> CodeStatus:
        return self._pins.status(user_id)
