"""Unit tests for the POST /query route.

Tests cover:
- 200 with {"query", "answer"} on success
- 400 "No query provided" for missing, empty, blank or non-string queries,
  none of which reach the session
- 500 "Failed to process the query" when the session faults
- 503 when the queue is full or the serializer is gone
"""

from __future__ import annotations

from collections.abc import Callable, Generator

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from query_service.api.error_handlers import register_exception_handlers
from query_service.api.routes.query import router
from query_service.core.constants import (
    HEADER_REQUEST_ID,
    MSG_NO_QUERY,
    MSG_PROCESSING_FAILED,
)
from tests.stubs import StubSession


QUERY_ENDPOINT = "/query"


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


class TestQuerySuccess:
    """Test successful queries."""

    def test_returns_query_and_answer(self, client: TestClient) -> None:
        response = client.post(QUERY_ENDPOINT, json={"query": "hello"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"query": "hello", "answer": "answer-for-hello"}

    def test_query_echoed_verbatim(self, client: TestClient) -> None:
        response = client.post(QUERY_ENDPOINT, json={"query": " spaced "})

        assert response.json()["query"] == " spaced "

    def test_request_id_header(self, client: TestClient) -> None:
        response = client.post(QUERY_ENDPOINT, json={"query": "hello"})

        assert len(response.headers[HEADER_REQUEST_ID]) == 32

    def test_extra_fields_ignored(self, client: TestClient) -> None:
        response = client.post(QUERY_ENDPOINT, json={"query": "hello", "stream": True})

        assert response.status_code == status.HTTP_200_OK


class TestQueryValidation:
    """Test the synchronous validation path."""

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"query": None},
            {"query": ""},
            {"query": "   "},
            {"query": 42},
            {"query": ["hello"]},
            {"question": "hello"},
        ],
    )
    def test_invalid_query_is_400(
        self, client: TestClient, stub_session: StubSession, body: dict[str, object]
    ) -> None:
        response = client.post(QUERY_ENDPOINT, json=body)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": MSG_NO_QUERY}
        assert stub_session.call_count == 0

    def test_missing_body_is_400(self, client: TestClient, stub_session: StubSession) -> None:
        response = client.post(QUERY_ENDPOINT)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": MSG_NO_QUERY}
        assert stub_session.call_count == 0

    def test_malformed_json_is_400(self, client: TestClient) -> None:
        response = client.post(
            QUERY_ENDPOINT,
            content=b'{"query": ',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestQueryFailures:
    """Test failures after admission."""

    def test_session_fault_is_generic_500(self, make_app: Callable[..., FastAPI]) -> None:
        session = StubSession(fail_on={"explode"})

        with TestClient(make_app(session)) as client:
            failed = client.post(QUERY_ENDPOINT, json={"query": "explode"})
            after = client.post(QUERY_ENDPOINT, json={"query": "fine"})

        assert failed.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert failed.json() == {"error": MSG_PROCESSING_FAILED}
        assert "simulated" not in failed.text
        assert after.status_code == status.HTTP_200_OK
        assert after.json()["answer"] == "answer-for-fine"
        assert session.call_count == 2

    def test_no_serializer_is_503(self) -> None:
        bare = FastAPI()
        register_exception_handlers(bare)
        bare.include_router(router)

        response = TestClient(bare).post(QUERY_ENDPOINT, json={"query": "hello"})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert "Retry-After" in response.headers

    def test_validation_checked_before_serializer(self) -> None:
        bare = FastAPI()
        register_exception_handlers(bare)
        bare.include_router(router)

        response = TestClient(bare).post(QUERY_ENDPOINT, json={"query": ""})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
