"""
Step 1 of the legacy three-step login: email + password → one-time PIN.

Every failure (unknown email, wrong password, deactivated account) returns
the same result so callers cannot enumerate accounts; the real reason is
only written to the security event log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from infrastructure.security.code_store import CodeStore
from infrastructure.security.event_log import SecurityEventLog, SecurityEventType
from repositories.protocol import UserLookup
from shared.crypto import verify_password
from shared.logging import get_logger, hash_ip
from shared.validators import normalize_email

log = get_logger(__name__)


@dataclass(frozen=True)
class CredentialResult:
    success: bool
    user_id: Optional[str] = None
    pin: Optional[str] = None


class CredentialService:
    def __init__(
        self,
        users: UserLookup,
        pin_store: CodeStore,
        event_log: SecurityEventLog,
    ) -> None:
        self._users = users
        self._pins = pin_store
        self._events = event_log

    async def validate_credentials(
        self,
        email: str,
        password: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> CredentialResult:
        """Check credentials and, on success, issue a login PIN.

        The PIN is returned to the caller instead of being delivered
        out-of-band; there is no email/SMS channel in this service.
        """
        email = normalize_email(email)
        context = {"email": email, "ip": ip, "user_agent": user_agent}

        try:
            user = await self._users.find_by_email(email)
        except Exception as e:
            self._events.record(
                SecurityEventType.LOGIN_FAILURE,
                details={"reason": "server_error", "error": type(e).__name__},
                **context,
            )
            raise

        if user is None:
            self._events.record(
                SecurityEventType.LOGIN_FAILURE,
                details={"reason": "user_not_found"},
                **context,
            )
            return CredentialResult(success=False)

        user_id = user.id_str
        reason = None
        if not verify_password(password, user.password_hash or ""):
            reason = "invalid_password"
        elif not user.is_active:
            reason = "account_deactivated"

        if reason is not None:
            self._events.record(
                SecurityEventType.LOGIN_FAILURE,
                user_id=user_id,
                details={"reason": reason},
                **context,
            )
            self._check_suspicious(user_id, **context)
            return CredentialResult(success=False)

        pin = self._pins.issue(user_id)
        self._events.record(SecurityEventType.LOGIN_SUCCESS, user_id=user_id, **context)
        self._check_suspicious(user_id, **context)
        return CredentialResult(success=True, user_id=user_id, pin=pin)

    def _check_suspicious(
        self,
        user_id: str,
        *,
        email: Optional[str],
        ip: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        signal = self._events.detect_suspicious(user_id, ip=ip, user_agent=user_agent)
        if signal is None:
            return
        log.warning(
            "suspicious_activity_detected",
            user_id=user_id,
            rule=signal.rule,
            count=signal.count,
            ip=hash_ip(ip),
        )
        self._events.record(
            SecurityEventType.SUSPICIOUS_ACTIVITY,
            user_id=user_id,
            email=email,
            ip=ip,
            user_agent=user_agent,
            details=signal.to_dict(),
        )
