"""
Account recovery: request an unlock code, then redeem it.

``request_unlock`` answers identically whether or not the email belongs to
an account. Redeeming a valid code lifts the lockout on the account's login
PIN.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from infrastructure.security.code_store import CodeStore, CodeValidation
from repositories.protocol import UserLookup
from shared.logging import get_logger, hash_ip
from shared.validators import normalize_email

log = get_logger(__name__)

UNLOCK_REQUESTED_MESSAGE = (
    "If an account with this email exists, an unlock code has been sent."
)


@dataclass(frozen=True)
class UnlockRequestResult:
    message: str
    # Only populated when debug code exposure is enabled
    unlock_code: Optional[str] = None


class RecoveryService:
    def __init__(
        self,
        users: UserLookup,
        unlock_store: CodeStore,
        pin_store: CodeStore,
        *,
        expose_debug_codes: bool = False,
    ) -> None:
        self._users = users
        self._unlocks = unlock_store
        self._pins = pin_store
        self._expose_debug_codes = expose_debug_codes

    async def request_unlock(
        self,
        email: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UnlockRequestResult:
        email = normalize_email(email)
        user = await self._users.find_by_email(email)
        if user is None:
            log.info("unlock_requested_unknown_email", ip=hash_ip(ip))
            return UnlockRequestResult(message=UNLOCK_REQUESTED_MESSAGE)

        code = self._unlocks.issue(email)
        log.info("unlock_requested", user_id=user.id_str, ip=hash_ip(ip))
        return UnlockRequestResult(
            message=UNLOCK_REQUESTED_MESSAGE,
            unlock_code=code if self._expose_debug_codes else None,
        )

    async def unlock_account(
        self,
        email: str,
        code: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> CodeValidation:
        email = normalize_email(email)
        result = self._unlocks.validate(email, code)
        if not result.is_valid:
            log.warning(
                "unlock_failed",
                reason=result.outcome.value,
                attempts_remaining=result.attempts_remaining,
                ip=hash_ip(ip),
            )
            return result

        user = await self._users.find_by_email(email)
        if user is not None:
            self._pins.reset_attempts(user.id_str)
        log.info(
            "account_unlocked",
            user_id=user.id_str if user is not None else None,
            ip=hash_ip(ip),
        )
        return result
