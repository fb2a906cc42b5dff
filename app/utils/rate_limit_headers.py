"""Map rate limit decisions to HTTP response headers."""

from __future__ import annotations

import math

from app.services.rate_limiter import RateLimitDecision


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Build standard rate limit headers for a decision.

    ``X-RateLimit-Reset`` is the absolute window end in epoch seconds.
    ``Retry-After`` is only present when the request was rejected.

    Args:
        decision: Result of RateLimiter.check().

    Returns:
        dict[str, str]: Header name to value.
    """

    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(math.ceil(decision.reset_at_ms / 1000)),
    }
    if not decision.allowed:
        headers["Retry-After"] = str(decision.retry_after_seconds or 1)
    return headers
