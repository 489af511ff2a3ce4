"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Code and monitoring thresholds live here rather than in the store modules
so deployments can tune them without a code change.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors import ConfigurationError


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "credential-guard"
    users_collection: str = "users"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "credential-guard"
    jwt_audience: str = "credential-guard.api"
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 604800
    # Lifetime of the token handed out after step 2 of the legacy login
    pin_clearance_ttl_seconds: int = 300

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)

    @property
    def is_configured(self) -> bool:
        return self.use_rs256 or bool(self.jwt_secret)


class CodePolicySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Login PIN (legacy multi-step login, step 2)
    pin_length: int = 4
    pin_ttl_minutes: int = 10
    pin_max_attempts: int = 3
    pin_lockout_minutes: int = 5
    pin_alphanumeric: bool = False

    # Account unlock code
    unlock_code_length: int = 6
    unlock_code_ttl_minutes: int = 30
    unlock_max_attempts: int = 3
    unlock_lockout_minutes: int = 5


class SecurityMonitorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    event_retention_hours: int = 24
    suspicious_ip_threshold: int = 3
    suspicious_failure_threshold: int = 10
    suspicious_failure_window_minutes: int = 60
    cleanup_interval_seconds: int = 3600

    # Attach freshly issued unlock codes to API responses (development only)
    expose_debug_codes: bool = False


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_name: str = "credential-guard"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    codes: Optional[CodePolicySettings] = None
    monitor: Optional[SecurityMonitorSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.codes is None:
            self.codes = CodePolicySettings()
        if self.monitor is None:
            self.monitor = SecurityMonitorSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def load_settings() -> AppSettings:
    """Build AppSettings from the environment, failing fast on bad config.

    Raises:
        ConfigurationError: a required variable is missing or malformed, or
            no JWT signing material is configured.
    """
    try:
        settings = AppSettings()
    except PydanticValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            f"Invalid or missing configuration: {', '.join(missing) or e}"
        ) from e
    ensure_signing_configured(settings)
    return settings


def ensure_signing_configured(settings: AppSettings) -> None:
    if not settings.jwt.is_configured:
        raise ConfigurationError(
            "JWT_SECRET must be set when RS256 keys are not provided"
        )
