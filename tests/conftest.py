"""pytest configuration and fixtures for llm-query-service tests.

Apps are built with create_app() and a StubSession factory, so no model
file or llama-cpp-python install is needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from query_service.core.config import Settings
from query_service.main import create_app
from tests.stubs import StubSession


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_env_vars() -> dict[str, str]:
    """Provide test environment variables."""
    return {
        "PORT": "3100",
        "QUERY_HOST": "127.0.0.1",
        "QUERY_LOG_LEVEL": "DEBUG",
        "QUERY_MODEL_PATH": "test-models/stub.gguf",
        "QUERY_MAX_QUEUE_SIZE": "0",
    }


@pytest.fixture
def mock_env(test_env_vars: dict[str, str], monkeypatch: pytest.MonkeyPatch) -> None:
    """Set test environment variables."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)


# =============================================================================
# Session / App Fixtures
# =============================================================================


@pytest.fixture
def stub_session() -> StubSession:
    """Instrumented session with no latency."""
    return StubSession()


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an app backed by a stub session."""
    return Settings(
        model_path="unused.gguf",
        log_level="WARNING",
        shutdown_timeout=2.0,
    )


@pytest.fixture
def make_app(test_settings: Settings) -> Callable[..., FastAPI]:
    """Build an app whose lifespan loads the given session."""

    def _make(session: StubSession, **overrides: object) -> FastAPI:
        settings = test_settings.model_copy(update=overrides)
        return create_app(settings=settings, session_factory=lambda _settings: session)

    return _make


@pytest.fixture
def app(make_app: Callable[..., FastAPI], stub_session: StubSession) -> FastAPI:
    return make_app(stub_session)


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with the app lifespan running.

    ASGITransport does not drive lifespan events, so startup and shutdown
    run through the router's lifespan context here.
    """
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="https://testserver") as client:
            yield client
