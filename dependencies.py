"""
FastAPI dependency providers.

Everything here reads the per-process singletons that the app lifespan put
on ``app.state``; nothing is created per request.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from errors import AuthenticationError
from infrastructure.security.code_store import CodeStore
from infrastructure.security.event_log import SecurityEventLog
from services.credential_service import CredentialService
from services.pin_service import PinService
from services.recovery_service import RecoveryService
from services.token_service import TokenService

_bearer = HTTPBearer(auto_error=False)


def get_pin_store(request: Request) -> CodeStore:
    return request.app.state.pin_store


def get_unlock_store(request: Request) -> CodeStore:
    return request.app.state.unlock_store


def get_event_log(request: Request) -> SecurityEventLog:
    return request.app.state.event_log


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credential_service


def get_pin_service(request: Request) -> PinService:
    return request.app.state.pin_service


def get_recovery_service(request: Request) -> RecoveryService:
    return request.app.state.recovery_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """Resolve the caller's user id from an ``Authorization: Bearer`` header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token is required")
    return tokens.verify_access_token(credentials.credentials)["sub"]
