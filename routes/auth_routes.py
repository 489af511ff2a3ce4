"""
Legacy multi-step login, account recovery and security monitoring.

POST /auth/validate-credentials — step 1: email + password → PIN
POST /auth/validate-pin         — step 2: PIN → PIN-clearance token
POST /auth/validate-location    — step 3: clearance token + location → session
POST /auth/request-unlock       — issue an unlock code (no enumeration)
POST /auth/unlock-account       — redeem an unlock code
GET  /auth/security/events      — caller's recent security events
GET  /auth/security/pin-status  — caller's outstanding PIN
POST /auth/security/cleanup     — run the expiry sweep now

Failure messages are generic; reason codes only go to the event log.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dependencies import (
    get_credential_service,
    get_current_user_id,
    get_event_log,
    get_pin_service,
    get_pin_store,
    get_recovery_service,
    get_token_service,
    get_unlock_store,
)
from errors import AuthenticationError, RateLimitError, ValidationError
from infrastructure.security.code_store import CodeOutcome, CodeStore, CodeValidation
from infrastructure.security.event_log import SecurityEventLog
from schemas.dto.requests.auth import (
    RequestUnlockRequest,
    UnlockAccountRequest,
    ValidateCredentialsRequest,
    ValidateLocationRequest,
    ValidatePinRequest,
)
from schemas.dto.responses.auth import (
    CleanupData,
    CleanupResponse,
    CredentialsData,
    CredentialsValidatedResponse,
    PinStatusData,
    PinStatusResponse,
    PinValidatedData,
    PinValidatedResponse,
    SecurityEventItem,
    SecurityEventsData,
    SecurityEventsResponse,
    SessionData,
    SessionResponse,
    UnlockRequestedResponse,
)
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from services.credential_service import CredentialService
from services.maintenance import run_cleanup
from services.pin_service import PinService
from services.recovery_service import RecoveryService
from services.token_service import TokenService
from shared.datetime_utils import isoformat_utc
from shared.logging import get_logger
from shared.request_meta import ClientMeta, client_meta

log = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)


def _raise_if_locked(result: CodeValidation, message: str) -> None:
    if result.outcome is CodeOutcome.LOCKED or result.just_locked:
        raise RateLimitError(
            message,
            details={
                "attempts_remaining": 0,
                "locked_until": isoformat_utc(result.locked_until),
            },
        )


@router.post("/validate-credentials", response_model=CredentialsValidatedResponse)
async def validate_credentials(
    body: ValidateCredentialsRequest,
    meta: ClientMeta = Depends(client_meta),
    credentials: CredentialService = Depends(get_credential_service),
) -> CredentialsValidatedResponse:
    result = await credentials.validate_credentials(
        body.email, body.password, ip=meta.ip, user_agent=meta.user_agent
    )
    if not result.success:
        raise AuthenticationError("Invalid credentials")
    return CredentialsValidatedResponse(
        message="Credentials validated successfully",
        data=CredentialsData(user_id=result.user_id, pin=result.pin),
    )


@router.post("/validate-pin", response_model=PinValidatedResponse)
async def validate_pin(
    body: ValidatePinRequest,
    meta: ClientMeta = Depends(client_meta),
    pins: PinService = Depends(get_pin_service),
    tokens: TokenService = Depends(get_token_service),
) -> PinValidatedResponse:
    result = pins.validate_pin(
        body.user_id, body.pin, ip=meta.ip, user_agent=meta.user_agent
    )
    if not result.is_valid:
        _raise_if_locked(
            result, "Too many failed attempts. Please try again later."
        )
        raise AuthenticationError(
            "Invalid or expired PIN",
            details={"attempts_remaining": result.attempts_remaining},
        )
    return PinValidatedResponse(
        message="PIN validated successfully",
        data=PinValidatedData(
            user_id=body.user_id,
            pin_token=tokens.issue_pin_clearance(body.user_id),
        ),
    )


@router.post("/validate-location", response_model=SessionResponse)
async def validate_location(
    body: ValidateLocationRequest,
    tokens: TokenService = Depends(get_token_service),
) -> SessionResponse:
    user_id = tokens.verify_pin_clearance(body.pin_token)
    session = tokens.issue_session(user_id, body.latitude, body.longitude)
    return SessionResponse(
        message="Login successful",
        data=SessionData(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            token_type=session.token_type,
            expires_in=session.expires_in,
        ),
    )


@router.post(
    "/request-unlock",
    response_model=UnlockRequestedResponse,
    response_model_exclude_none=True,
)
async def request_unlock(
    body: RequestUnlockRequest,
    meta: ClientMeta = Depends(client_meta),
    recovery: RecoveryService = Depends(get_recovery_service),
) -> UnlockRequestedResponse:
    result = await recovery.request_unlock(
        body.email, ip=meta.ip, user_agent=meta.user_agent
    )
    return UnlockRequestedResponse(
        message=result.message, debug_unlock_code=result.unlock_code
    )


@router.post("/unlock-account", response_model=MessageResponse)
async def unlock_account(
    body: UnlockAccountRequest,
    meta: ClientMeta = Depends(client_meta),
    recovery: RecoveryService = Depends(get_recovery_service),
) -> MessageResponse:
    result = await recovery.unlock_account(
        body.email, body.unlock_code, ip=meta.ip, user_agent=meta.user_agent
    )
    if not result.is_valid:
        _raise_if_locked(
            result, "Too many failed unlock attempts. Please try again later."
        )
        raise ValidationError("Invalid or expired unlock code")
    return MessageResponse(success=True, message="Account unlocked successfully")


@router.get("/security/events", response_model=SecurityEventsResponse)
async def security_events(
    hours: int = Query(default=24, ge=1, le=24),
    user_id: str = Depends(get_current_user_id),
    event_log: SecurityEventLog = Depends(get_event_log),
) -> SecurityEventsResponse:
    events = event_log.query(user_id, within_hours=hours)
    return SecurityEventsResponse(
        data=SecurityEventsData(
            events=[SecurityEventItem(**e.to_dict()) for e in events],
            period=f"{hours} hours",
            count=len(events),
        )
    )


@router.get("/security/pin-status", response_model=PinStatusResponse)
async def pin_status(
    user_id: str = Depends(get_current_user_id),
    pins: PinService = Depends(get_pin_service),
) -> PinStatusResponse:
    status = pins.status(user_id)
    return PinStatusResponse(
        data=PinStatusData(
            has_pin=status.has_entry,
            is_expired=status.is_expired,
            is_locked=status.is_locked,
            attempts_remaining=status.attempts_remaining,
            expires_at=isoformat_utc(status.expires_at),
            locked_until=isoformat_utc(status.locked_until),
        )
    )


@router.post("/security/cleanup", response_model=CleanupResponse)
async def security_cleanup(
    user_id: str = Depends(get_current_user_id),
    pin_store: CodeStore = Depends(get_pin_store),
    unlock_store: CodeStore = Depends(get_unlock_store),
    event_log: SecurityEventLog = Depends(get_event_log),
) -> CleanupResponse:
    report = run_cleanup(pin_store, unlock_store, event_log)
    log.info("security_cleanup_requested", user_id=user_id, **report.to_dict())
    return CleanupResponse(
        message="Security data cleanup completed",
        data=CleanupData(**report.to_dict()),
    )
