"""In-memory store for short-lived one-time codes.

Backs both the login PIN (step 2 of the legacy login) and account unlock
codes. One CodeStore instance per code kind is created at startup and
injected into the services that need it.

Contract:
- at most one live entry per key; ``issue`` replaces any previous entry
- a successfully validated entry is deleted immediately (one-time use)
- expiry is checked at read time; an expired entry is reported as
  ``expired`` once and then removed
- reaching ``max_attempts`` wrong codes locks the entry for the policy's
  lockout window, during which even the correct code is refused
- logical misses are returned as ``CodeValidation`` results, never raised

State is process-local and lost on restart. Separate server processes each
see their own attempt counts and lockouts.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from shared.crypto import constant_time_equals
from shared.datetime_utils import Clock, utc_now
from shared.generators import generate_alphanumeric_code, generate_numeric_code
from shared.logging import get_logger, hash_email

log = get_logger(__name__)


@dataclass(frozen=True)
class CodePolicy:
    length: int = 4
    ttl_minutes: int = 10
    max_attempts: int = 3
    lockout_minutes: int = 5
    alphanumeric: bool = False

    @classmethod
    def login_pin(cls) -> "CodePolicy":
        return cls(length=4, ttl_minutes=10, max_attempts=3, lockout_minutes=5)

    @classmethod
    def unlock_code(cls) -> "CodePolicy":
        return cls(length=6, ttl_minutes=30, max_attempts=3, lockout_minutes=5)

    def generate(self) -> str:
        if self.alphanumeric:
            return generate_alphanumeric_code(self.length)
        return generate_numeric_code(self.length)


@dataclass
class CodeEntry:
    """One outstanding code. Mutated only by the owning store."""

    key: str
    code: str
    created_at: datetime
    expires_at: datetime
    max_attempts: int
    lockout_minutes: int
    attempts: int = 0
    locked_until: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)


class CodeOutcome(str, Enum):
    VALID = "valid"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    LOCKED = "locked"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class CodeValidation:
    outcome: CodeOutcome
    attempts_remaining: int = 0
    locked_until: Optional[datetime] = None
    # True only on the attempt that triggered the lockout
    just_locked: bool = False

    @property
    def is_valid(self) -> bool:
        return self.outcome is CodeOutcome.VALID


@dataclass(frozen=True)
class CodeStatus:
    has_entry: bool
    is_expired: bool = False
    is_locked: bool = False
    attempts_remaining: int = 0
    expires_at: Optional[datetime] = None
    locked_until: Optional[datetime] = None


@dataclass(frozen=True)
class StoreStats:
    total: int
    expired: int
    locked: int
    active: int


@dataclass
class CodeStore:
    """Keyed store of one-time codes with attempt tracking and lockout.

    ``name`` only labels log lines ("login_pin", "unlock_code").
    """

    policy: CodePolicy = field(default_factory=CodePolicy.login_pin)
    name: str = "code"
    clock: Clock = utc_now
    _entries: dict[str, CodeEntry] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _subject(self, key: str) -> str:
        # unlock codes are keyed by email address
        return hash_email(key) if "@" in key else key

    def issue(self, key: str, policy: Optional[CodePolicy] = None) -> str:
        """Generate, store and return a fresh code for *key*.

        The caller delivers the code; any previous entry for *key* is
        replaced.
        """
        policy = policy or self.policy
        now = self.clock()
        self.cleanup_expired()

        code = policy.generate()
        entry = CodeEntry(
            key=key,
            code=code,
            created_at=now,
            expires_at=now + timedelta(minutes=policy.ttl_minutes),
            max_attempts=policy.max_attempts,
            lockout_minutes=policy.lockout_minutes,
        )
        self._entries[key] = entry
        log.info(
            "code_issued",
            store=self.name,
            subject=self._subject(key),
            expires_at=entry.expires_at.isoformat(),
        )
        return code

    def validate(self, key: str, submitted: str) -> CodeValidation:
        """Check *submitted* against the entry stored for *key*."""
        result = self._validate(key, submitted)
        self.cleanup_expired()
        return result

    def _validate(self, key: str, submitted: str) -> CodeValidation:
        entry = self._entries.get(key)
        if entry is None:
            return CodeValidation(CodeOutcome.NOT_FOUND)

        now = self.clock()
        if entry.is_expired(now):
            del self._entries[key]
            return CodeValidation(CodeOutcome.EXPIRED)

        if entry.is_locked(now):
            return CodeValidation(
                CodeOutcome.LOCKED, locked_until=entry.locked_until
            )

        entry.attempts += 1
        entry.last_attempt_at = now

        if constant_time_equals(entry.code, submitted):
            del self._entries[key]
            log.info("code_validated", store=self.name, subject=self._subject(key))
            return CodeValidation(
                CodeOutcome.VALID, attempts_remaining=entry.max_attempts
            )

        just_locked = False
        if entry.attempts >= entry.max_attempts:
            entry.locked_until = now + timedelta(minutes=entry.lockout_minutes)
            just_locked = True
            log.warning(
                "code_locked",
                store=self.name,
                subject=self._subject(key),
                locked_until=entry.locked_until.isoformat(),
            )

        return CodeValidation(
            CodeOutcome.MISMATCH,
            attempts_remaining=entry.attempts_remaining,
            locked_until=entry.locked_until,
            just_locked=just_locked,
        )

    def cleanup_expired(self) -> int:
        """Delete every entry past its expiry. Returns the number removed."""
        now = self.clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            log.info("codes_cleaned_up", store=self.name, removed=len(expired))
        return len(expired)

    def discard(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    # ── Support / testing escape hatches ─────────────────────────────────────

    def reset_attempts(self, key: str) -> bool:
        """Zero the attempt count and lift any lockout for *key*."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.attempts = 0
        entry.locked_until = None
        log.info("code_attempts_reset", store=self.name, subject=self._subject(key))
        return True

    def extend_expiration(self, key: str, minutes: int) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.expires_at = entry.expires_at + timedelta(minutes=minutes)
        log.info(
            "code_expiration_extended",
            store=self.name,
            subject=self._subject(key),
            minutes=minutes,
        )
        return True

    def status(self, key: str) -> CodeStatus:
        entry = self._entries.get(key)
        if entry is None:
            return CodeStatus(has_entry=False)
        now = self.clock()
        return CodeStatus(
            has_entry=True,
            is_expired=entry.is_expired(now),
            is_locked=entry.is_locked(now),
            attempts_remaining=entry.attempts_remaining,
            expires_at=entry.expires_at,
            locked_until=entry.locked_until,
        )

    def has_active(self, key: str) -> bool:
        """True when *key* has an unexpired, unlocked entry."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        now = self.clock()
        return not entry.is_expired(now) and not entry.is_locked(now)

    def peek(self, key: str) -> Optional[CodeEntry]:
        """Return a copy of the raw entry for *key* (debugging only)."""
        entry = self._entries.get(key)
        return replace(entry) if entry is not None else None

    def stats(self) -> StoreStats:
        now = self.clock()
        expired = locked = active = 0
        for entry in self._entries.values():
            if entry.is_expired(now):
                expired += 1
            elif entry.is_locked(now):
                locked += 1
            else:
                active += 1
        return StoreStats(
            total=len(self._entries), expired=expired, locked=locked, active=active
        )
