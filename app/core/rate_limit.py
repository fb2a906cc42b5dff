"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(rate_limit("auth"))`` only.
- Explicit lifetime: the limiter lives on ``app.state``, created and closed
  by the application lifespan rather than a module-level global.
- Safe degradation: store outages never surface as errors (fail open).

Usage:
    @router.post("/login", dependencies=[Depends(rate_limit("auth"))])
    async def login(): ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Callable

from fastapi import HTTPException, Request, Response, status

from app.core.config import settings
from app.services.policies import PolicyRegistry
from app.services.rate_limiter import RateLimitDecision, RateLimiter
from app.utils.rate_limit_headers import rate_limit_headers

logger = logging.getLogger(__name__)

UserIdResolver = Callable[[Request], str | int | None]


def _rejection_message(decision: RateLimitDecision) -> str:
    reset_at = datetime.fromtimestamp(decision.reset_at_ms / 1000, tz=timezone.utc)
    return f"Rate limit exceeded. Please try again after {reset_at.isoformat(timespec='seconds')}"


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the limiter owned by the running application.

    Raises:
        RuntimeError: If the application lifespan did not install a limiter.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise RuntimeError("Rate limiter is not initialized; use create_app() lifespan")
    return limiter


def rate_limit(
    policy_name: str,
    *,
    user_id_resolver: UserIdResolver | None = None,
    registry: PolicyRegistry | None = None,
) -> Callable[[Request, Response], Awaitable[RateLimitDecision | None]]:
    """Build a dependency enforcing the named policy.

    Args:
        policy_name: Registered policy name (e.g., "auth", "contact-form").
        user_id_resolver: Optional callable returning the authenticated
            principal id for the request; when it returns a value the caller
            is limited per account instead of per address.
        registry: Optional registry used to validate ``policy_name`` now,
            so typos fail at import/startup rather than on first request.

    Returns:
        Async FastAPI dependency returning the decision (None when disabled).

    Raises:
        UnknownPolicyError: If ``registry`` is given and lacks the policy.
    """

    if registry is not None:
        registry.resolve(policy_name)

    async def enforce_rate_limit(request: Request, response: Response) -> RateLimitDecision | None:
        """Check the caller and raise HTTP 429 when the policy is exhausted.

        Raises:
            HTTPException: 429 Too Many Requests when rejected.
        """

        if not settings.rate_limit.enabled:
            return None

        limiter = get_rate_limiter(request)
        user_id = user_id_resolver(request) if user_id_resolver else None
        decision = await limiter.check_request(request.headers, policy_name, user_id=user_id)

        headers = rate_limit_headers(decision) if settings.rate_limit.include_headers else {}

        if decision.allowed:
            response.headers.update(headers)
            return decision

        logger.warning(
            "rate_limit.rejected",
            extra={
                "policy": policy_name,
                "key_type": "user" if user_id is not None else "ip",
                "route": request.url.path,
                "retry_after_s": decision.retry_after_seconds,
            },
        )

        if not headers:
            headers = {"Retry-After": str(decision.retry_after_seconds or 1)}

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=_rejection_message(decision),
            headers=headers,
        )

    return enforce_rate_limit
