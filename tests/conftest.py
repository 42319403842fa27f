"""Pytest configuration and fixtures shared across all test modules.

Environment variables are seeded before any import of ``app.core.config``
so the global settings never pick up a developer's local .env values.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("ENCRYPTION_KEY", "a" * 64)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.app_factory import create_app
from app.core.config import AppSettings, LogSettings, SecuritySettings, Settings

TEST_ENCRYPTION_KEY = "a" * 64


class FakeClock:
    """Deterministic clock used to drive window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build isolated Settings; keyword arguments override AppSettings fields."""

    def _make(*, encryption_key: str | None = TEST_ENCRYPTION_KEY, **app_overrides: Any) -> Settings:
        app_fields: dict[str, Any] = {
            "api_key_required": True,
            "api_keys": "test-api-key-123",
        }
        app_fields.update(app_overrides)
        return Settings(
            app=AppSettings(**app_fields),
            security=SecuritySettings(encryption_key=encryption_key),
            log=LogSettings(level="WARNING"),
        )

    return _make


@pytest.fixture
def app(make_settings, fake_clock) -> FastAPI:
    cfg = make_settings()
    limiter = InMemoryFixedWindowRateLimiter(
        window_seconds=cfg.app.rate_limit_window_seconds,
        clock=fake_clock,
    )
    return create_app(cfg, rate_limiter=limiter)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123", "X-Workspace-ID": "ws-123"}
