"""
Recordbook Backend: Health Check Route
=======================================

What:  GET /api/health, a liveness probe that also reports the bindings.
How:   Reads what the application factory bound on `app.state`; performs no
       store query, so it answers even when the database is unreachable.
Who:   Called by the frontend on load and by container health checks.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from recordbook.schemas.record import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports server time, whether a database is bound, and the bound collaborators.",
)
async def health_check(request: Request) -> HealthResponse:
    bindings = request.app.state.bindings
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return HealthResponse(
        status="ok",
        time=now.replace("+00:00", "Z"),
        has_db=bindings.get("DB", False),
        env=sorted(name for name, bound in bindings.items() if bound),
    )
