"""
Request DTOs for authentication endpoints.

ValidateCredentialsRequest — POST /auth/validate-credentials
ValidatePinRequest         — POST /auth/validate-pin
ValidateLocationRequest    — POST /auth/validate-location
RequestUnlockRequest       — POST /auth/request-unlock
UnlockAccountRequest       — POST /auth/unlock-account

Older clients send camelCase keys (`userId`, `unlockCode`, `pinToken`);
both spellings are accepted.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from shared.validators import normalize_email

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
# Shape only; length and alphabet are decided by the store's CodePolicy.
_CODE_PATTERN = r"^[0-9A-Za-z]{1,16}$"


class _EmailBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(max_length=254, pattern=_EMAIL_PATTERN)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize(cls, v: object) -> object:
        return normalize_email(v) if isinstance(v, str) else v


class ValidateCredentialsRequest(_EmailBody):
    """Request body for POST /auth/validate-credentials (step 1)."""

    password: str = Field(min_length=1, max_length=128)


class ValidatePinRequest(BaseModel):
    """Request body for POST /auth/validate-pin (step 2).

    ``pin`` is the code returned by step 1.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("user_id", "userId"),
    )
    pin: str = Field(pattern=_CODE_PATTERN)


class ValidateLocationRequest(BaseModel):
    """Request body for POST /auth/validate-location (step 3)."""

    model_config = ConfigDict(populate_by_name=True)

    pin_token: str = Field(
        min_length=1, validation_alias=AliasChoices("pin_token", "pinToken")
    )
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class RequestUnlockRequest(_EmailBody):
    """Request body for POST /auth/request-unlock."""


class UnlockAccountRequest(_EmailBody):
    """Request body for POST /auth/unlock-account.

    ``unlock_code`` is the code from /auth/request-unlock.
    """

    unlock_code: str = Field(
        pattern=_CODE_PATTERN,
        validation_alias=AliasChoices("unlock_code", "unlockCode"),
    )
