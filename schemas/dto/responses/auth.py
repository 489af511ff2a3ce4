"""
Response DTOs for authentication endpoints.

Every body uses the {success, message, data} envelope.

CredentialsValidatedResponse — POST /auth/validate-credentials (200)
PinValidatedResponse         — POST /auth/validate-pin (200)
SessionResponse              — POST /auth/validate-location (200)
UnlockRequestedResponse      — POST /auth/request-unlock (200)
SecurityEventsResponse       — GET  /auth/security/events (200)
PinStatusResponse            — GET  /auth/security/pin-status (200)
CleanupResponse              — POST /auth/security/cleanup (200)
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: Optional[str] = None


class CredentialsData(BaseModel):
    user_id: str
    # Returned directly: this service has no email/SMS delivery channel
    pin: str


class CredentialsValidatedResponse(_Envelope):
    data: CredentialsData


class PinValidatedData(BaseModel):
    user_id: str
    pin_token: str


class PinValidatedResponse(_Envelope):
    data: PinValidatedData


class SessionData(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int


class SessionResponse(_Envelope):
    data: SessionData


class UnlockRequestedResponse(_Envelope):
    # Present only when debug code exposure is enabled
    debug_unlock_code: Optional[str] = None


class SecurityEventItem(BaseModel):
    type: str
    timestamp: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    details: dict[str, Any] = {}


class SecurityEventsData(BaseModel):
    events: list[SecurityEventItem]
    period: str
    count: int


class SecurityEventsResponse(_Envelope):
    data: SecurityEventsData


class PinStatusData(BaseModel):
    has_pin: bool
    is_expired: bool
    is_locked: bool
    attempts_remaining: int
    expires_at: Optional[str] = None
    locked_until: Optional[str] = None


class PinStatusResponse(_Envelope):
    data: PinStatusData


class CleanupData(BaseModel):
    pins_removed: int
    unlock_entries_removed: int
    events_removed: int


class CleanupResponse(_Envelope):
    data: CleanupData
