"""Tests for global exception handlers.

Validates status mapping, the Retry-After contract for throttling, and that
unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from window_guard.core.errors import AppError, RateLimitAppError, ValidationAppError
from window_guard.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="bad_input", message="Bad input", details={"hint": "fix it"})

        response = client.get("/test-validation")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "bad_input"
        assert error["details"]["hint"] == "fix it"
        assert "request_id" in error

    def test_rate_limit_error_returns_429_with_retry_after(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-throttle")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded. Try again later.",
                retry_after_seconds=42,
                headers={"X-RateLimit-Limit": "5"},
            )

        response = client.get("/test-throttle")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.json()["error"]["code"] == "rate_limit_exceeded"
        assert "details" not in response.json()["error"]

    def test_rate_limit_error_without_headers_still_sets_retry_after(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-throttle-bare")
        async def test_endpoint():
            raise RateLimitAppError(code="rate_limit_exceeded", message="slow down", retry_after_seconds=0)

        response = client.get("/test-throttle-bare")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "0"

    def test_rate_limit_error_is_an_app_error(self):
        exc = RateLimitAppError(code="rate_limit_exceeded", message="slow down", retry_after_seconds=3)

        assert isinstance(exc, AppError)
        assert str(exc) == "slow down"


class TestGeneralExceptionHandler:
    """Fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def test_endpoint():
            raise RuntimeError("store corrupted at slot 7")

        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "slot 7" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert "Traceback" not in json.dumps(data)
        assert "ValueError" not in json.dumps(data)
        assert "request_id" in data["error"]

    def test_handlers_registered(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers
