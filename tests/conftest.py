"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any gateway import so the settings
singleton and the tenant registry are built from test values.
"""

import os

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("ERP_API_KEY", "test-erp-key")
os.environ.setdefault("ERP_BASE_URL", "https://erp.test/api/v1")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeClock:
    """Deterministic epoch-millisecond clock for limiter tests."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
