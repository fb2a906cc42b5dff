from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (lifespan, middleware, handlers, routers) and
owns the lifetime of the shared store client: built once at startup, placed
on ``app.state`` with the limiter, closed on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractWindowStore
from app.adapters.rate_limit.factory import create_redis_client, create_window_store
from app.api.routes import health_router, limits_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.services.policies import build_policy_registry
from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], AbstractWindowStore | None]


def _default_store_factory() -> AbstractWindowStore | None:
    client = create_redis_client(settings.rate_limit)
    return create_window_store(client, settings.rate_limit)


def create_app(*, store_factory: StoreFactory | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store_factory: Optional callable producing the window store at
            startup (tests inject fakes here). Defaults to a Redis-backed
            store built from ``RATE_LIMIT_*`` settings, or no store at all
            when ``RATE_LIMIT_REDIS_URL`` is unset.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.

    Raises:
        PolicyConfigurationError: If configured policy overrides are invalid.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    # Policies are validated eagerly so misconfiguration fails at startup
    registry = build_policy_registry(settings.rate_limit.policies)
    make_store = store_factory or _default_store_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        limiter = RateLimiter(make_store(), registry=registry)
        app.state.rate_limiter = limiter
        logger.info(
            "rate_limit.started",
            extra={
                "store_configured": limiter.store_configured,
                "policies": sorted(registry),
                "enabled": settings.rate_limit.enabled,
            },
        )
        try:
            yield
        finally:
            await limiter.close()
            logger.info("rate_limit.stopped")

    app = FastAPI(
        title="Sliding Window Rate Limiter",
        description=(
            "Distributed sliding-window rate limiting for horizontally scaled "
            "services, backed by Redis sorted sets. Fails open when the store "
            "is unavailable."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    return app
