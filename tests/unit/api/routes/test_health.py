"""Unit tests for status API routes.

Tests the /status liveness endpoint and the /status/queue statistics endpoint.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from httpx import AsyncClient

from query_service.api.routes.health import router
from tests.stubs import StubSession


STATUS_ENDPOINT = "/status"
QUEUE_ENDPOINT = "/status/queue"


class TestStatusEndpoint:
    """Test GET /status."""

    def test_status_returns_running(self, app: FastAPI) -> None:
        with TestClient(app) as client:
            response = client.get(STATUS_ENDPOINT)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "running"}

    def test_status_never_touches_session(
        self, app: FastAPI, stub_session: StubSession
    ) -> None:
        with TestClient(app) as client:
            for _ in range(3):
                client.get(STATUS_ENDPOINT)

        assert stub_session.call_count == 0

    def test_status_without_lifespan(self) -> None:
        bare = FastAPI()
        bare.include_router(router)

        response = TestClient(bare).get(STATUS_ENDPOINT)

        assert response.json() == {"status": "running"}


class TestQueueStatusEndpoint:
    """Test GET /status/queue."""

    def test_queue_status_reports_counters(
        self, make_app: Callable[..., FastAPI], stub_session: StubSession
    ) -> None:
        app = make_app(stub_session, max_queue_size=8)

        with TestClient(app) as client:
            client.post("/query", json={"query": "hello"})
            response = client.get(QUEUE_ENDPOINT)

        data = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert data["running"] is True
        assert data["in_flight"] is False
        assert data["pending"] == 0
        assert data["max_queue_size"] == 8
        assert data["total_submitted"] == 1
        assert data["total_completed"] == 1
        assert data["session"]["model_id"] == "stub"
        assert data["session"]["status"] == "loaded"

    def test_queue_status_without_serializer_is_503(self) -> None:
        bare = FastAPI()
        bare.include_router(router)

        response = TestClient(bare).get(QUEUE_ENDPOINT)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert "error" in response.json()


class TestStatusAsync:
    """Status endpoints over the async client."""

    async def test_status_async(self, async_client: AsyncClient) -> None:
        response = await async_client.get(STATUS_ENDPOINT)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "running"

    async def test_queue_status_async(self, async_client: AsyncClient) -> None:
        await async_client.post("/query", json={"query": "ping"})

        response = await async_client.get(QUEUE_ENDPOINT)

        assert response.json()["total_completed"] == 1
