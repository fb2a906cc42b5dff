"""Rate limiter orchestration.

Combines client identification, the policy registry and the shared window
store into one decision. Availability of protected endpoints takes priority
over strict enforcement: when no store is configured, or the store cannot be
reached, every check is allowed (fail open).

Rejected attempts are recorded in the window like allowed ones, so a caller
that keeps retrying while blocked keeps its window full.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractWindowStore
from app.core.logging import hash_for_log
from app.services.policies import PolicyRegistry, RateLimitPolicy, build_policy_registry
from app.utils.client_identifier import identify_client, identify_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate limit check.

    Attributes:
        allowed: Whether the caller may proceed.
        limit: Max attempts per window for the applied policy.
        remaining: Best-effort attempts left in the window after this one.
        reset_at_ms: Epoch milliseconds at which the current window ends.
        retry_after_seconds: Suggested wait when blocked; None when allowed.
        degraded: True when the decision was made without consulting the store.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_seconds: int | None = None
    degraded: bool = False


class RateLimiter:
    """Sliding-window rate limiter with fail-open degradation.

    Args:
        store: Shared window store, or None when no store is provisioned.
        registry: Named policies; defaults to the built-in table.
        clock: Time source returning UNIX time in seconds.
    """

    def __init__(
        self,
        store: AbstractWindowStore | None,
        *,
        registry: PolicyRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._registry = registry if registry is not None else build_policy_registry()
        self._clock = clock

    @property
    def store(self) -> AbstractWindowStore | None:
        return self._store

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def store_configured(self) -> bool:
        return self._store is not None

    def resolve_policy(self, policy: RateLimitPolicy | str) -> RateLimitPolicy:
        if isinstance(policy, RateLimitPolicy):
            return policy
        return self._registry.resolve(policy)

    @staticmethod
    def store_key(identifier: str, policy: RateLimitPolicy) -> str:
        """Namespaced store key for an identifier under a policy."""
        return f"{policy.key_prefix}:{identifier}"

    def _fail_open(
        self,
        identifier: str,
        policy: RateLimitPolicy,
        *,
        now_ms: int,
        reason: str,
    ) -> RateLimitDecision:
        logger.warning(
            "rate_limit.fail_open",
            extra={
                "policy": policy.name,
                "key_hash": hash_for_log(identifier),
                "reason": reason,
            },
        )
        return RateLimitDecision(
            allowed=True,
            limit=policy.max_requests,
            remaining=policy.max_requests,
            reset_at_ms=now_ms + policy.window_ms,
            degraded=True,
        )

    async def check(
        self,
        identifier: str,
        policy: RateLimitPolicy | str,
    ) -> RateLimitDecision:
        """Decide whether ``identifier`` may proceed under ``policy``.

        Performs at most one store round trip and never raises for store
        failures.

        Args:
            identifier: Caller key from identify_client() or identify_user().
            policy: Policy instance or registered policy name.

        Returns:
            RateLimitDecision: Allowance and response metadata.

        Raises:
            UnknownPolicyError: If a policy name is not registered.
        """

        resolved = self.resolve_policy(policy)
        now_ms = int(self._clock() * 1000)

        if self._store is None:
            return self._fail_open(identifier, resolved, now_ms=now_ms, reason="store_not_configured")

        window = await self._store.check(
            self.store_key(identifier, resolved),
            window_ms=resolved.window_ms,
            max_requests=resolved.max_requests,
            now_ms=now_ms,
        )
        if not window.available:
            return self._fail_open(identifier, resolved, now_ms=now_ms, reason="store_unavailable")

        reset_at_ms = now_ms + resolved.window_ms

        if window.count >= resolved.max_requests:
            retry_after = max(1, math.ceil((reset_at_ms - now_ms) / 1000))
            logger.info(
                "rate_limit.exceeded",
                extra={
                    "policy": resolved.name,
                    "key_hash": hash_for_log(identifier),
                    "count": window.count,
                    "limit": resolved.max_requests,
                    "retry_after_s": retry_after,
                },
            )
            return RateLimitDecision(
                allowed=False,
                limit=resolved.max_requests,
                remaining=0,
                reset_at_ms=reset_at_ms,
                retry_after_seconds=retry_after,
            )

        remaining = max(0, resolved.max_requests - window.count - 1)
        logger.debug(
            "rate_limit.allowed",
            extra={
                "policy": resolved.name,
                "key_hash": hash_for_log(identifier),
                "limit": resolved.max_requests,
                "remaining": remaining,
            },
        )
        return RateLimitDecision(
            allowed=True,
            limit=resolved.max_requests,
            remaining=remaining,
            reset_at_ms=reset_at_ms,
        )

    async def check_request(
        self,
        headers: Mapping[str, str],
        policy: RateLimitPolicy | str,
        *,
        user_id: str | int | None = None,
    ) -> RateLimitDecision:
        """Identify the caller from request metadata and check it.

        Authenticated callers (``user_id`` given) are limited per account,
        everyone else per network address.
        """

        if user_id is not None:
            identifier = identify_user(user_id)
        else:
            identifier = identify_client(headers)
        return await self.check(identifier, policy)

    async def close(self) -> None:
        """Close the store client, if any."""
        if self._store is not None:
            await self._store.close()
