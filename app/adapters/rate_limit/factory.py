"""Factory for the shared window store."""

from __future__ import annotations

import logging

from redis.asyncio import Redis

from app.adapters.rate_limit.base import AbstractWindowStore
from app.adapters.rate_limit.redis_store import RedisSlidingWindowStore
from app.core.config import RateLimitSettings, settings

logger = logging.getLogger(__name__)


def create_redis_client(rate_limit_settings: RateLimitSettings | None = None) -> Redis | None:
    """Build the process-wide Redis client from configuration.

    The client connects lazily on first command and reconnects on transient
    network errors. Returns None when no URL is configured, which disables
    rate limiting (every check fails open).

    Args:
        rate_limit_settings: Optional settings; defaults to global settings.

    Returns:
        Redis | None: Configured client, or None if the store is not provisioned.
    """

    cfg = rate_limit_settings or settings.rate_limit

    if not cfg.redis_url:
        logger.warning(
            "rate_limit.store_not_configured",
            extra={"reason": "redis_url_missing", "behavior": "fail_open"},
        )
        return None

    return Redis.from_url(
        cfg.redis_url,
        socket_timeout=cfg.timeout_seconds,
        socket_connect_timeout=cfg.connect_timeout_seconds,
        health_check_interval=30,
    )


def create_window_store(
    client: Redis | None,
    rate_limit_settings: RateLimitSettings | None = None,
) -> AbstractWindowStore | None:
    """Wrap a Redis client in the sliding-window store.

    Args:
        client: Client from create_redis_client(), or None.
        rate_limit_settings: Optional settings; defaults to global settings.

    Returns:
        AbstractWindowStore | None: Store instance, or None without a client.
    """

    if client is None:
        return None

    cfg = rate_limit_settings or settings.rate_limit
    return RedisSlidingWindowStore(client, timeout_seconds=cfg.timeout_seconds)
