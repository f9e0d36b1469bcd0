"""Integration tests for the rate limit dependency and routes."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from window_guard.adapters.rate_limit.in_memory import configure
from window_guard.core.app_factory import create_app
from window_guard.core.config import settings


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=1000.0)


@pytest.fixture
def client(clock: Mock, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(settings.app, "rate_limit_enabled", True)
    monkeypatch.setattr(settings.app, "rate_limit_requests", 2)
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", True)
    limiter = configure(60_000, 2, clock=clock)
    return TestClient(create_app(rate_limiter=limiter))


def test_admits_until_limit_then_returns_429(client: TestClient) -> None:
    first = client.post("/v1/limits/check", headers={"X-API-Key": "key-a"})
    second = client.post("/v1/limits/check", headers={"X-API-Key": "key-a"})
    third = client.post("/v1/limits/check", headers={"X-API-Key": "key-a"})

    assert first.status_code == 200
    assert first.json() == {
        "admitted": True,
        "enforced": True,
        "limit": 2,
        "remaining": 1,
        "reset_at": 1060,
    }
    assert second.json()["remaining"] == 0

    assert third.status_code == 429
    assert third.headers["Retry-After"] == "60"
    assert third.headers["X-RateLimit-Limit"] == "2"
    assert third.headers["X-RateLimit-Remaining"] == "0"
    assert third.headers["X-RateLimit-Reset"] == "1060"
    error = third.json()["error"]
    assert error["code"] == "rate_limit_exceeded"
    assert error["details"]["retry_after"] == 60
    assert "request_id" in error


def test_retry_after_shrinks_as_time_passes(client: TestClient, clock: Mock) -> None:
    for _ in range(2):
        client.post("/v1/limits/check")

    clock.return_value = 1045.2
    resp = client.post("/v1/limits/check")

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "15"


def test_window_reset_admits_again(client: TestClient, clock: Mock) -> None:
    for _ in range(3):
        client.post("/v1/limits/check")

    clock.return_value = 1060.0
    resp = client.post("/v1/limits/check")

    assert resp.status_code == 200
    assert resp.json()["remaining"] == 1


def test_api_keys_are_limited_separately(client: TestClient) -> None:
    for _ in range(2):
        client.post("/v1/limits/check", headers={"X-API-Key": "key-a"})

    assert client.post("/v1/limits/check", headers={"X-API-Key": "key-a"}).status_code == 429
    assert client.post("/v1/limits/check", headers={"X-API-Key": "key-b"}).status_code == 200
    # No key: falls back to the client address, a separate bucket again.
    assert client.post("/v1/limits/check").status_code == 200


def test_headers_can_be_limited_to_retry_after(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", False)
    for _ in range(2):
        client.post("/v1/limits/check")

    resp = client.post("/v1/limits/check")

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"
    assert "X-RateLimit-Limit" not in resp.headers


def test_disabled_limiter_is_not_consulted(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

    for _ in range(5):
        resp = client.post("/v1/limits/check")
        assert resp.status_code == 200
        assert resp.json()["enforced"] is False

    assert client.get("/v1/limits/stats").json()["admitted"] == 0


def test_stats_reflect_admissions_rejections_and_evictions(
    client: TestClient, clock: Mock
) -> None:
    client.post("/v1/limits/check", headers={"X-API-Key": "a"})
    client.post("/v1/limits/check", headers={"X-API-Key": "a"})
    client.post("/v1/limits/check", headers={"X-API-Key": "a"})
    clock.return_value = 1001.0
    client.post("/v1/limits/check", headers={"X-API-Key": "b"})
    clock.return_value = 1002.0
    client.post("/v1/limits/check", headers={"X-API-Key": "c"})

    stats = client.get("/v1/limits/stats").json()

    assert stats == {
        "enabled": True,
        "limit": 2,
        "window_duration_ms": 60_000,
        "max_tracked_tokens": 2,
        "entries": 2,
        "evictions": 1,
        "admitted": 4,
        "rejected": 1,
    }


def test_stats_and_health_do_not_consume(client: TestClient) -> None:
    for _ in range(5):
        assert client.get("/health").status_code == 200
        assert client.get("/v1/limits/stats").status_code == 200

    assert client.post("/v1/limits/check").status_code == 200


def test_each_app_owns_its_limiter(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_requests", 1)
    first = TestClient(create_app())
    second = TestClient(create_app())

    assert first.post("/v1/limits/check").status_code == 200
    assert first.post("/v1/limits/check").status_code == 429
    assert second.post("/v1/limits/check").status_code == 200


@pytest.mark.parametrize("api_key", ["", "k" * 257])
def test_malformed_api_key_is_rejected_without_consuming(client: TestClient, api_key: str) -> None:
    resp = client.post("/v1/limits/check", headers={"X-API-Key": api_key})

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "invalid_caller_key"
    assert error["details"]["hint"]
    assert client.get("/v1/limits/stats").json()["admitted"] == 0


def test_longest_allowed_api_key_is_accepted(client: TestClient) -> None:
    resp = client.post("/v1/limits/check", headers={"X-API-Key": "k" * 256})

    assert resp.status_code == 200
    assert resp.json()["remaining"] == 1
