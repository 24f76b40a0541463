"""
tests/conftest.py -- Shared test fixtures for SiteCMS.

This module provides:
  - FakeClock: manually advanced clock for limiter window tests
  - MemoryCookieStore: dict-backed CookieStore that records attributes
  - settings: explicit Settings instance (no .env, no environment lookups)
  - api_client: TestClient over the real app with a patched lifespan

The env vars must be set before any auth/core import so get_settings()
picks up the test secret and admin credentials.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any auth/core import; get_settings() is cached.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("AUTH_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "hunter2-but-longer")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter as request_limiter
from api.main import app
from auth.limiter import LoginRateLimiter
from auth.session import CookieAttributes
from core.config import Settings

ADMIN_USERNAME = os.environ["ADMIN_USERNAME"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock returning a settable wall-clock time in seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryCookieStore:
    """CookieStore that keeps cookies in a dict and remembers the last attributes."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})
        self.attributes: dict[str, CookieAttributes] = {}

    def get(self, name: str) -> str | None:
        return self.values.get(name)

    def set(self, name: str, value: str, attributes: CookieAttributes) -> None:
        self.values[name] = value
        self.attributes[name] = attributes

    def delete(self, name: str) -> None:
        self.values.pop(name, None)
        self.attributes.pop(name, None)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        debug=True,
        auth_secret="unit-secret-fedcba9876543210fedcba9876543210",
        admin_username="admin",
        admin_password="s3cret-pass",
    )


@pytest.fixture
def cookies() -> MemoryCookieStore:
    return MemoryCookieStore()


def _patch_lifespan(login_limiter: LoginRateLimiter):
    """Return a lifespan that wires a fresh limiter into app.state.

    The purge_task is a long-sleeping coroutine so shutdown can .cancel() it.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.login_limiter = login_limiter
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client(clock: FakeClock) -> Generator[tuple[TestClient, LoginRateLimiter, FakeClock], None, None]:
    """Yield (client, login_limiter, clock) with fresh limiter state per test.

    The slowapi request throttle is shared module state, so it is reset too.
    """
    login_limiter = LoginRateLimiter(clock=clock)
    app.router.lifespan_context = _patch_lifespan(login_limiter)
    request_limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, login_limiter, clock

    request_limiter.reset()


@pytest.fixture
def lenient_client(clock: FakeClock) -> Generator[tuple[TestClient, LoginRateLimiter], None, None]:
    """Like api_client, but unhandled errors come back as 500 responses instead of raising."""
    login_limiter = LoginRateLimiter(clock=clock)
    app.router.lifespan_context = _patch_lifespan(login_limiter)
    request_limiter.reset()

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, login_limiter

    request_limiter.reset()
