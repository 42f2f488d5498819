"""
Liveness endpoint.

Answers without touching the database or MetaAPI. It reports whether a
MetaAPI token is configured, because without one every connect and
refresh fails with a configuration error while the process looks healthy.
"""

from fastapi import APIRouter

from algoedge.core.config import settings
from algoedge.interfaces.schemas import HealthResponse
from algoedge.shared.security.rate_limiting import limiter

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Liveness plus the MetaAPI and rate-limit configuration state.",
)
@limiter.exempt
def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=settings.version,
        metaapi_configured=bool(settings.metaapi_token),
        rate_limiting=limiter.enabled,
    )
