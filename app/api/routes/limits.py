from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.rate_limit import get_rate_limiter
from app.schemas.rate_limit import PolicyListResponse, PolicyResponse
from app.services.rate_limiter import RateLimiter

router = APIRouter(tags=["Rate limits"])


@router.get("/rate-limits", response_model=PolicyListResponse)
async def list_policies(
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> PolicyListResponse:
    """List the read-only policy registry, sorted by name."""

    registry = limiter.registry
    return PolicyListResponse(
        policies=[
            PolicyResponse(
                name=policy.name,
                window_seconds=policy.window_seconds,
                max_requests=policy.max_requests,
                key_prefix=policy.key_prefix,
            )
            for policy in (registry[name] for name in sorted(registry))
        ]
    )
