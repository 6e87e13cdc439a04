"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from erp_gateway.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    NotFoundAppError,
    RateLimitAppError,
    UpstreamAppError,
    ValidationAppError,
)
from erp_gateway.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "error_type, expected",
    [
        (ValidationAppError, 400),
        (AuthenticationAppError, 403),
        (NotFoundAppError, 404),
        (RateLimitAppError, 429),
        (UpstreamAppError, 502),
        (ConfigurationAppError, 500),
        (AppError, 400),
    ],
)
def test_status_mapping(error_type, expected) -> None:
    assert status_code_for(error_type(code="c", message="m")) == expected


class TestAppErrorHandler:
    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise ValidationAppError(code="invalid_arguments", message="Bad arguments")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "invalid_arguments"
        assert data["error"]["message"] == "Bad arguments"
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_rate_limit_error_sets_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit")
        async def endpoint():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded",
                details={"retry_after": 8, "limit": 3, "remaining": 0, "reset_time": 1_700_000_010_000},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "8"
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Reset"] == "1700000010"
        assert response.json()["error"]["details"]["retry_after"] == 8

    def test_upstream_error_returns_502(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-upstream")
        async def endpoint():
            raise UpstreamAppError(
                code="erp_http_error",
                message="ERP API returned HTTP 500",
                details={"upstream_status": 500},
            )

        response = client.get("/test-upstream")

        assert response.status_code == 502
        assert "Retry-After" not in response.headers
        assert response.json()["error"]["details"] == {"upstream_status": 500}


class TestGeneralExceptionHandler:
    def test_unexpected_exception_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def endpoint():
            raise RuntimeError("database connection failed")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "database connection" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        response_text = bytes(response.body).decode()
        assert json.loads(response_text)["error"]["code"] == "internal_server_error"
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
