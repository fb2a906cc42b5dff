"""Tests for the application factory, lifecycle and introspection routes."""

from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import AppSettings, Settings


def test_health() -> None:
    with TestClient(create_app(store_factory=lambda: None)) as client:
        resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_rate_limit_health_without_store() -> None:
    with TestClient(create_app(store_factory=lambda: None)) as client:
        body = client.get("/health/rate-limit").json()

    assert body["store_configured"] is False
    assert body["store_available"] is False
    assert body["degraded"] is True


def test_rate_limit_health_with_store(memory_store) -> None:
    with TestClient(create_app(store_factory=lambda: memory_store)) as client:
        body = client.get("/health/rate-limit").json()

    assert body["store_configured"] is True
    assert body["store_available"] is True
    assert body["degraded"] is False


def test_rate_limit_health_with_unreachable_store(memory_store) -> None:
    memory_store.available = False
    with TestClient(create_app(store_factory=lambda: memory_store)) as client:
        resp = client.get("/health/rate-limit")

    assert resp.status_code == 200
    assert resp.json()["degraded"] is True


def test_lists_policy_registry() -> None:
    with TestClient(create_app(store_factory=lambda: None)) as client:
        body = client.get("/v1/rate-limits").json()

    names = [p["name"] for p in body["policies"]]
    assert names == sorted(["auth", "api", "ai", "content-submission", "contact-form"])
    contact = next(p for p in body["policies"] if p["name"] == "contact-form")
    assert contact == {
        "name": "contact-form",
        "window_seconds": 900,
        "max_requests": 5,
        "key_prefix": "rl:contact-form",
    }


def test_store_is_closed_on_shutdown(memory_store) -> None:
    with TestClient(create_app(store_factory=lambda: memory_store)):
        assert memory_store.closed is False

    assert memory_store.closed is True


def test_default_factory_without_redis_url_disables_store() -> None:
    app = create_app()
    with TestClient(app):
        assert app.state.rate_limiter.store_configured is False


def test_debug_flag_comes_from_app_settings() -> None:
    assert create_app(store_factory=lambda: None).debug is False

    with patch("app.core.app_factory.settings", Settings(app=AppSettings(debug=True))):
        app = create_app(store_factory=lambda: None)

    assert app.debug is True
