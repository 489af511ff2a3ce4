"""
JWT minting and verification for the legacy login.

Three token types share one signing key:
- ``pin_clearance`` — short-lived proof that steps 1 and 2 succeeded; the
  only thing step 3 checks, so no server-side state is kept between steps
- ``access`` / ``refresh`` — the session handed out by step 3

HS256 with JWT_SECRET, or RS256 when both JWT_PRIVATE_KEY and
JWT_PUBLIC_KEY are set.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import jwt

from config import JWTSettings
from errors import AuthenticationError, ConfigurationError
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

TOKEN_TYPE_PIN_CLEARANCE = "pin_clearance"
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"


class TokenService:
    def __init__(self, settings: JWTSettings, clock: Clock = utc_now) -> None:
        if not settings.is_configured:
            raise ConfigurationError(
                "JWT_SECRET must be set when RS256 keys are not provided"
            )
        self._settings = settings
        self._clock = clock
        if settings.use_rs256:
            # Support keys provided via env with literal \n sequences
            self._signing_key: Any = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key: Any = settings.jwt_public_key.replace("\\n", "\n")
            self._algorithm = "RS256"
        else:
            self._signing_key = self._verify_key = settings.jwt_secret
            self._algorithm = "HS256"

    def _encode(
        self, user_id: str, token_type: str, ttl_seconds: int, **extra: Any
    ) -> str:
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            "type": token_type,
            **extra,
        }
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def _decode(self, token: str, expected_type: str) -> dict:
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        if claims.get("type") != expected_type or not claims.get("sub"):
            raise AuthenticationError("Invalid token")
        return claims

    def issue_pin_clearance(self, user_id: str) -> str:
        return self._encode(
            user_id,
            TOKEN_TYPE_PIN_CLEARANCE,
            self._settings.pin_clearance_ttl_seconds,
        )

    def verify_pin_clearance(self, token: str) -> str:
        """Return the user id carried by a valid PIN-clearance token."""
        return self._decode(token, TOKEN_TYPE_PIN_CLEARANCE)["sub"]

    def issue_session(
        self,
        user_id: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> SessionTokens:
        extra: dict[str, Any] = {"amr": ["pwd", "pin"]}
        if latitude is not None and longitude is not None:
            extra["loc"] = [latitude, longitude]

        access = self._encode(
            user_id,
            TOKEN_TYPE_ACCESS,
            self._settings.access_token_ttl_seconds,
            **extra,
        )
        refresh = self._encode(
            user_id, TOKEN_TYPE_REFRESH, self._settings.refresh_token_ttl_seconds
        )
        log.info("session_issued", user_id=user_id, algorithm=self._algorithm)
        return SessionTokens(
            access_token=access,
            refresh_token=refresh,
            expires_in=self._settings.access_token_ttl_seconds,
        )

    def verify_access_token(self, token: str) -> dict:
        return self._decode(token, TOKEN_TYPE_ACCESS)
