"""
DevServe — Health Check Route
===============================

What:  Liveness endpoint for monitors and load balancer probes.
How:   Reports uptime plus the size of the in-process registries, which makes
       leaked reload channels or an unexpected cache size visible.
"""

import time

from fastapi import APIRouter, Request

from devserve import __version__
from devserve.schemas.health import HealthResponse

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    return HealthResponse(
        status="healthy",
        version=__version__,
        dev=state.settings.dev,
        reload_channels=len(state.broadcaster),
        cached_assets=len(state.vendor_cache),
        rate_limit_buckets=len(state.rate_limiter),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
