"""Bounded in-memory log of security events.

Append-only within the retention window: events are never mutated, and
every ``record`` call drops events older than the window before returning,
so memory stays bounded without a background thread.

``detect_suspicious`` is advisory. It reports which heuristic fired and
leaves enforcement to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from shared.datetime_utils import Clock, isoformat_utc, utc_now
from shared.logging import get_logger, hash_email, hash_ip

log = get_logger(__name__)


class SecurityEventType(str, Enum):
    LOGIN_ATTEMPT = "login_attempt"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    PIN_ATTEMPT = "pin_attempt"
    PIN_SUCCESS = "pin_success"
    PIN_FAILURE = "pin_failure"
    ACCOUNT_LOCKED = "account_locked"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


@dataclass(frozen=True)
class SecurityEvent:
    type: SecurityEventType
    timestamp: datetime
    user_id: Optional[str] = None
    email: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "timestamp": isoformat_utc(self.timestamp),
            "user_id": self.user_id,
            "email": self.email,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class DetectionPolicy:
    retention_hours: int = 24
    ip_threshold: int = 3
    failure_threshold: int = 10
    failure_window_minutes: int = 60


@dataclass(frozen=True)
class SuspiciousSignal:
    rule: str  # "multiple_ips" | "rapid_failures"
    count: int
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    def to_dict(self) -> dict:
        return {"type": self.rule, "count": self.count}


@dataclass
class SecurityEventLog:
    policy: DetectionPolicy = field(default_factory=DetectionPolicy)
    clock: Clock = utc_now
    _events: list[SecurityEvent] = field(default_factory=list, repr=False)

    def __len__(self) -> int:
        return len(self._events)

    def record(
        self,
        event_type: SecurityEventType,
        *,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> SecurityEvent:
        """Append an event stamped with the current time, then purge."""
        event = SecurityEvent(
            type=SecurityEventType(event_type),
            timestamp=self.clock(),
            user_id=user_id,
            email=email,
            ip=ip,
            user_agent=user_agent,
            details=MappingProxyType(dict(details or {})),
        )
        self._events.append(event)
        self.purge_expired()

        log.info(
            "security_event",
            event_type=event.type.value,
            user_id=user_id,
            email=hash_email(email),
            ip=hash_ip(ip),
            reason=event.details.get("reason"),
        )
        return event

    def purge_expired(self) -> int:
        """Drop events older than the retention window."""
        cutoff = self.clock() - timedelta(hours=self.policy.retention_hours)
        kept = [e for e in self._events if e.timestamp > cutoff]
        removed = len(self._events) - len(kept)
        if removed:
            self._events = kept
        return removed

    def query(
        self, subject_id: Optional[str] = None, within_hours: float = 24
    ) -> list[SecurityEvent]:
        """Events newer than *within_hours*, in insertion order.

        With *subject_id* only that user's events are returned.
        """
        cutoff = self.clock() - timedelta(hours=within_hours)
        return [
            e
            for e in self._events
            if e.timestamp > cutoff
            and (subject_id is None or e.user_id == subject_id)
        ]

    def detect_suspicious(
        self,
        subject_id: str,
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[SuspiciousSignal]:
        """Apply the multiple-IP and rapid-failure heuristics to *subject_id*.

        *ip* and *user_agent* describe the request being evaluated and are
        carried on the signal; only recorded events are counted.
        """
        recent = self.query(subject_id, within_hours=self.policy.retention_hours)

        distinct_ips = {e.ip for e in recent if e.ip}
        if len(distinct_ips) > self.policy.ip_threshold:
            return SuspiciousSignal(
                "multiple_ips", len(distinct_ips), ip=ip, user_agent=user_agent
            )

        window_start = self.clock() - timedelta(
            minutes=self.policy.failure_window_minutes
        )
        failures = sum(
            1
            for e in recent
            if e.type is SecurityEventType.LOGIN_FAILURE and e.timestamp > window_start
        )
        if failures > self.policy.failure_threshold:
            return SuspiciousSignal(
                "rapid_failures", failures, ip=ip, user_agent=user_agent
            )

        return None
