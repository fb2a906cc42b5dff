from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.rate_limit import get_rate_limiter
from app.schemas.rate_limit import RateLimitHealthResponse
from app.services.rate_limiter import RateLimiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the API is operational.
    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/rate-limit", response_model=RateLimitHealthResponse)
async def rate_limit_health(
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RateLimitHealthResponse:
    """Report whether the shared window store is configured and reachable.

    Always returns 200: an unreachable store degrades rate limiting to fail
    open, it does not make the service unhealthy.
    """

    store = limiter.store
    available = await store.ping() if store is not None else False

    return RateLimitHealthResponse(
        enabled=settings.rate_limit.enabled,
        store_configured=store is not None,
        store_available=available,
        degraded=not available,
    )
