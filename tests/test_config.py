"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from app.core.config import RateLimitSettings
from app.services.policies import build_policy_registry


def test_defaults_disable_store(monkeypatch) -> None:
    monkeypatch.delenv("RATE_LIMIT_REDIS_URL", raising=False)

    cfg = RateLimitSettings()

    assert cfg.redis_url is None
    assert cfg.enabled is True
    assert cfg.include_headers is True
    assert cfg.policies == {}


def test_reads_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("RATE_LIMIT_TIMEOUT_SECONDS", "0.25")

    cfg = RateLimitSettings()

    assert cfg.redis_url == "redis://cache:6379/1"
    assert cfg.timeout_seconds == 0.25


def test_policy_overrides_from_json(monkeypatch) -> None:
    monkeypatch.setenv(
        "RATE_LIMIT_POLICIES",
        '{"auth": {"window_seconds": 300, "max_requests": 3}, '
        '"search": {"window_seconds": 10, "max_requests": 50}}',
    )

    registry = build_policy_registry(RateLimitSettings().policies)

    assert registry.resolve("auth").max_requests == 3
    assert registry.resolve("search").window_seconds == 10


def test_invalid_policy_override_rejected(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_POLICIES", '{"auth": {"window_seconds": 0, "max_requests": 3}}')

    with pytest.raises(ValidationError):
        RateLimitSettings()


def test_non_positive_timeout_rejected(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValidationError):
        RateLimitSettings()
