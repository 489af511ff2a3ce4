"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings, CodePolicySettings, ensure_signing_configured, load_settings
from errors import register_error_handlers
from infrastructure.security.code_store import CodePolicy, CodeStore
from infrastructure.security.event_log import DetectionPolicy, SecurityEventLog
from repositories.user_repository import UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.credential_service import CredentialService
from services.pin_service import PinService
from services.recovery_service import RecoveryService
from services.token_service import TokenService
from shared.logging import get_logger, setup_logging
from workers.cleanup_worker import CleanupWorker

log = get_logger(__name__)


def _pin_policy(codes: CodePolicySettings) -> CodePolicy:
    return CodePolicy(
        length=codes.pin_length,
        ttl_minutes=codes.pin_ttl_minutes,
        max_attempts=codes.pin_max_attempts,
        lockout_minutes=codes.pin_lockout_minutes,
        alphanumeric=codes.pin_alphanumeric,
    )


def _unlock_policy(codes: CodePolicySettings) -> CodePolicy:
    return CodePolicy(
        length=codes.unlock_code_length,
        ttl_minutes=codes.unlock_code_ttl_minutes,
        max_attempts=codes.unlock_max_attempts,
        lockout_minutes=codes.unlock_lockout_minutes,
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = load_settings()
    else:
        ensure_signing_configured(settings)

    setup_logging(settings.logging, is_production=settings.is_production)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings

        users = UserRepository(app.state.db, settings.db.users_collection)
        pin_store = CodeStore(policy=_pin_policy(settings.codes), name="login_pin")
        unlock_store = CodeStore(
            policy=_unlock_policy(settings.codes), name="unlock_code"
        )
        monitor = settings.monitor
        event_log = SecurityEventLog(
            policy=DetectionPolicy(
                retention_hours=monitor.event_retention_hours,
                ip_threshold=monitor.suspicious_ip_threshold,
                failure_threshold=monitor.suspicious_failure_threshold,
                failure_window_minutes=monitor.suspicious_failure_window_minutes,
            )
        )

        app.state.pin_store = pin_store
        app.state.unlock_store = unlock_store
        app.state.event_log = event_log
        app.state.token_service = TokenService(settings.jwt)
        app.state.credential_service = CredentialService(users, pin_store, event_log)
        app.state.pin_service = PinService(pin_store, event_log)
        app.state.recovery_service = RecoveryService(
            users,
            unlock_store,
            pin_store,
            expose_debug_codes=monitor.expose_debug_codes,
        )

        worker = CleanupWorker(
            pin_store,
            unlock_store,
            event_log,
            interval_seconds=monitor.cleanup_interval_seconds,
        )
        worker.start()
        app.state.cleanup_worker = worker
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await worker.stop()
        await mongo_client.close()
        log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app
