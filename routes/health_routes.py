"""
Health check endpoint.

GET /health — checks MongoDB connectivity and reports in-memory store sizes.
Rules:
- MongoDB failure → "unhealthy" (503): credential checks cannot run without it.
- Store sizes are informational and never affect the status.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        log.warning("health_mongodb_unreachable", error=str(e))
        checks["mongodb"] = "error"
        overall = "unhealthy"

    state = request.app.state
    stores = {
        "pins": len(state.pin_store),
        "unlock_codes": len(state.unlock_store),
        "security_events": len(state.event_log),
    }

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks, "stores": stores},
    )
