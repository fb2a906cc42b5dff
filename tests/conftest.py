"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any import that builds settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.pop("RATE_LIMIT_REDIS_URL", None)
os.environ.pop("RATE_LIMIT_POLICIES", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections import defaultdict

import fakeredis
import fakeredis.aioredis
import pytest

from app.adapters.rate_limit.base import AbstractWindowStore, WindowCheck


class FakeClock:
    """Deterministic clock used to drive window arithmetic."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class MemoryWindowStore(AbstractWindowStore):
    """Single-process window store with the same pruning rules as Redis."""

    def __init__(self) -> None:
        self.markers: dict[str, list[int]] = defaultdict(list)
        self.available = True
        self.closed = False

    async def check(self, key, *, window_ms, max_requests, now_ms) -> WindowCheck:
        if not self.available:
            return WindowCheck(count=0, available=False)
        kept = [ts for ts in self.markers[key] if ts > now_ms - window_ms]
        count = len(kept)
        kept.append(now_ms)
        self.markers[key] = kept
        return WindowCheck(count=count, available=True)

    async def ping(self) -> bool:
        return self.available

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryWindowStore:
    return MemoryWindowStore()


@pytest.fixture
def redis_client():
    """Isolated fakeredis client emulating MULTI/EXEC atomicity."""
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
