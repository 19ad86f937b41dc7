"""Unit tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from query_service.core.constants import (
    MSG_NO_QUERY,
    MSG_PROCESSING_FAILED,
    MSG_QUEUE_FULL,
    MSG_SERVICE_UNAVAILABLE,
)
from query_service.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    InferenceError,
    ModelNotFoundError,
    NonRetriableError,
    QueryServiceError,
    QueueFullError,
    RetriableError,
    ServiceUnavailableError,
    SessionLoadError,
    ValidationError,
)


class TestHierarchy:
    """Test base classes and retry categories."""

    @pytest.mark.parametrize("exc_class", [QueueFullError, ServiceUnavailableError])
    def test_retriable_errors(self, exc_class: type[RetriableError]) -> None:
        error = exc_class()

        assert isinstance(error, RetriableError)
        assert isinstance(error, QueryServiceError)
        assert error.retry_after_ms > 0

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError(),
            InferenceError(),
            ModelNotFoundError("missing", model_path="/m.gguf"),
            SessionLoadError("broken", model_path="/m.gguf"),
            ConfigurationError("bad", setting="model_path"),
        ],
    )
    def test_non_retriable_errors(self, error: QueryServiceError) -> None:
        assert isinstance(error, NonRetriableError)
        assert not isinstance(error, RetriableError)

    def test_all_names_end_in_error(self) -> None:
        for cls in [
            QueryServiceError,
            RetriableError,
            NonRetriableError,
            QueueFullError,
            ServiceUnavailableError,
            ValidationError,
            InferenceError,
            ModelNotFoundError,
            SessionLoadError,
            ConfigurationError,
        ]:
            assert cls.__name__.endswith("Error")


class TestDefaults:
    """Test default messages and codes."""

    def test_default_messages(self) -> None:
        assert ValidationError().message == MSG_NO_QUERY
        assert InferenceError().message == MSG_PROCESSING_FAILED
        assert QueueFullError().message == MSG_QUEUE_FULL
        assert ServiceUnavailableError().message == MSG_SERVICE_UNAVAILABLE

    def test_error_codes_are_strings(self) -> None:
        assert QueueFullError().error_code == ErrorCode.QUEUE_FULL.value
        assert InferenceError().error_code == "INFERENCE_ERROR"
        assert QueryServiceError("x", error_code="CUSTOM").error_code == "CUSTOM"

    def test_queue_full_attributes(self) -> None:
        error = QueueFullError(max_queue_size=8, current_size=8)

        assert error.max_queue_size == 8
        assert error.current_size == 8

    def test_extra_kwargs_become_attributes(self) -> None:
        error = QueryServiceError("x", request_id="abc")

        assert error.request_id == "abc"  # type: ignore[attr-defined]
