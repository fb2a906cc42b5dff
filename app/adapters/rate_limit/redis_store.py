"""Redis sliding-window store.

Each ``(key_prefix, identifier)`` pair owns one sorted set. Members are
``"{timestamp_ms}:{nonce}"`` scored by ``timestamp_ms``; the nonce keeps two
attempts in the same millisecond from overwriting each other.

A check is one ``MULTI/EXEC`` pipeline, so Redis applies the prune, count,
insert and expiry of one caller without interleaving another caller's
commands on the same key:

    ZREMRANGEBYSCORE key -inf now-window
    ZCARD key
    ZADD key now now:nonce
    PEXPIRE key window

A marker scored exactly ``now - window`` has aged out: the window is the
half-open interval ``(now - window, now]``.

Failures (connection, timeout, protocol or malformed replies) are logged and
reported as an unavailable result; they never reach the caller.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.adapters.rate_limit.base import UNAVAILABLE, AbstractWindowStore, WindowCheck
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)

_PIPELINE_LENGTH = 4
_COUNT_INDEX = 1


class RedisSlidingWindowStore(AbstractWindowStore):
    """Sliding-window store backed by Redis sorted sets.

    The client is injected and owned by the application lifespan; this class
    never creates or reconnects it (redis-py reconnects transparently).
    """

    def __init__(self, client: Redis, *, timeout_seconds: float = 0.5) -> None:
        """Initialize the store.

        Args:
            client: ``redis.asyncio.Redis`` instance.
            timeout_seconds: Deadline for one pipeline round trip.

        Raises:
            ValueError: If timeout_seconds is not positive.
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._client = client
        self._timeout = timeout_seconds

    async def _execute(self, key: str, *, window_ms: int, now_ms: int) -> list[Any]:
        member = f"{now_ms}:{uuid.uuid4().hex}"
        pipe = self._client.pipeline(transaction=True)
        pipe.zremrangebyscore(key, "-inf", now_ms - window_ms)
        pipe.zcard(key)
        pipe.zadd(key, {member: now_ms})
        pipe.pexpire(key, window_ms)
        return await pipe.execute()

    def _unavailable(self, key: str, reason: str, exc: BaseException | None = None) -> WindowCheck:
        logger.warning(
            "window_store.unavailable",
            extra={
                "key_hash": hash_for_log(key),
                "reason": reason,
                "error_type": type(exc).__name__ if exc else None,
                "error_msg": str(exc) if exc else None,
            },
        )
        return UNAVAILABLE

    async def check(
        self,
        key: str,
        *,
        window_ms: int,
        max_requests: int,
        now_ms: int,
    ) -> WindowCheck:
        """Prune, count and record one attempt in a single round trip."""

        try:
            results = await asyncio.wait_for(
                self._execute(key, window_ms=window_ms, now_ms=now_ms),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            return self._unavailable(key, "timeout", exc)
        except RedisError as exc:
            return self._unavailable(key, "redis_error", exc)
        except OSError as exc:
            return self._unavailable(key, "connection_error", exc)

        if not isinstance(results, (list, tuple)) or len(results) != _PIPELINE_LENGTH:
            return self._unavailable(key, "malformed_response")

        count = results[_COUNT_INDEX]
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            return self._unavailable(key, "malformed_response")

        if count >= max_requests:
            logger.debug(
                "window_store.saturated",
                extra={
                    "key_hash": hash_for_log(key),
                    "count": count,
                    "limit": max_requests,
                },
            )

        return WindowCheck(count=count, available=True)

    async def ping(self) -> bool:
        try:
            return bool(await asyncio.wait_for(self._client.ping(), timeout=self._timeout))
        except (asyncio.TimeoutError, RedisError, OSError) as exc:
            logger.warning(
                "window_store.ping_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return False

    async def close(self) -> None:
        await self._client.aclose()
