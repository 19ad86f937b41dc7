"""Custom exceptions for llm-query-service.

All custom exceptions end in "Error" and carry a machine-readable code.

Exception Hierarchy:
    QueryServiceError (base)
    ├── RetriableError (transient errors)
    │   ├── QueueFullError
    │   └── ServiceUnavailableError
    └── NonRetriableError (permanent errors)
        ├── ValidationError
        ├── InferenceError
        ├── ModelNotFoundError
        ├── SessionLoadError
        └── ConfigurationError
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from query_service.core.constants import (
    MSG_NO_QUERY,
    MSG_PROCESSING_FAILED,
    MSG_QUEUE_FULL,
    MSG_SERVICE_UNAVAILABLE,
)


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """Error codes for llm-query-service exceptions.

    Used in logs; client responses only carry the generic message.
    """

    # Base error
    QUERY_SERVICE_ERROR = "QUERY_SERVICE_ERROR"

    # Retriable errors
    QUEUE_FULL = "QUEUE_FULL"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Non-retriable errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INFERENCE_ERROR = "INFERENCE_ERROR"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    SESSION_LOAD_FAILED = "SESSION_LOAD_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class QueryServiceError(Exception):
    """Base exception for all llm-query-service errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.QUERY_SERVICE_ERROR,
        **kwargs: Any,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Retriable Error Base
# =============================================================================


class RetriableError(QueryServiceError):
    """Base class for transient errors that may succeed on retry.

    Attributes:
        retry_after_ms: Suggested retry delay in milliseconds.
    """

    def __init__(
        self,
        message: str,
        retry_after_ms: int = 1000,
        error_code: str | ErrorCode = ErrorCode.QUERY_SERVICE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.retry_after_ms = retry_after_ms


# =============================================================================
# Non-Retriable Error Base
# =============================================================================


class NonRetriableError(QueryServiceError):
    """Base class for permanent errors that should not be retried."""


# =============================================================================
# Retriable Exceptions
# =============================================================================


class QueueFullError(RetriableError):
    """The serializer queue has reached its configured limit.

    Attributes:
        max_queue_size: Configured admission limit.
        current_size: Number of requests queued when this one was rejected.
    """

    def __init__(
        self,
        message: str = MSG_QUEUE_FULL,
        max_queue_size: int | None = None,
        current_size: int | None = None,
        retry_after_ms: int = 1000,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            retry_after_ms=retry_after_ms,
            error_code=ErrorCode.QUEUE_FULL,
            **kwargs,
        )
        self.max_queue_size = max_queue_size
        self.current_size = current_size


class ServiceUnavailableError(RetriableError):
    """The serializer is not accepting work (not started or shutting down)."""

    def __init__(
        self,
        message: str = MSG_SERVICE_UNAVAILABLE,
        retry_after_ms: int = 5000,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            retry_after_ms=retry_after_ms,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            **kwargs,
        )


# =============================================================================
# Non-Retriable Exceptions
# =============================================================================


class ValidationError(NonRetriableError):
    """The inbound query is missing, empty or not a string.

    Attributes:
        field: Name of the invalid field.
    """

    def __init__(
        self,
        message: str = MSG_NO_QUERY,
        field: str | None = "query",
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            **kwargs,
        )
        self.field = field


class InferenceError(NonRetriableError):
    """Generating an answer failed.

    Raised by sessions with the underlying cause chained, and re-raised by
    the serializer to callers with the generic message only.
    """

    def __init__(
        self,
        message: str = MSG_PROCESSING_FAILED,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.INFERENCE_ERROR,
            **kwargs,
        )


class ModelNotFoundError(NonRetriableError):
    """The configured model file does not exist.

    Attributes:
        model_path: The path that was looked up.
    """

    def __init__(
        self,
        message: str,
        model_path: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.MODEL_NOT_FOUND,
            **kwargs,
        )
        self.model_path = model_path


class SessionLoadError(NonRetriableError):
    """The model could not be loaded into a session."""

    def __init__(
        self,
        message: str,
        model_path: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.SESSION_LOAD_FAILED,
            **kwargs,
        )
        self.model_path = model_path


class ConfigurationError(NonRetriableError):
    """Service configuration is invalid.

    Attributes:
        setting: Name of the problematic setting.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            **kwargs,
        )
        self.setting = setting
