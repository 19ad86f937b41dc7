"""Error handlers for FastAPI exception handling.

Every failure is rendered as a flat body:

    {"error": "Human-readable message"}

Only validation and back-pressure errors describe what went wrong. Anything
that happens after a query is admitted is reported with the same generic
message, and the detail stays in the server logs.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from query_service.core.constants import MSG_NO_QUERY, MSG_PROCESSING_FAILED
from query_service.core.exceptions import (
    QueryServiceError,
    QueueFullError,
    RetriableError,
    ServiceUnavailableError,
    ValidationError,
)
from query_service.core.logging import get_logger
from query_service.models.responses import ErrorResponse


logger = get_logger(__name__)


# =============================================================================
# Status Code Mapping
# =============================================================================


def get_status_code_for_error(error: Exception) -> int:
    """Determine HTTP status code based on exception type.

    Args:
        error: The exception to get status code for.

    Returns:
        Appropriate HTTP status code.
    """
    if isinstance(error, (ValidationError, RequestValidationError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, (QueueFullError, ServiceUnavailableError, RetriableError)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def build_error_response(error: Exception) -> ErrorResponse:
    """Build the client-facing body for an exception.

    Args:
        error: The exception that occurred.

    Returns:
        ErrorResponse whose message never includes internal detail.
    """
    if isinstance(error, (ValidationError, RequestValidationError)):
        return ErrorResponse(error=MSG_NO_QUERY)
    if isinstance(error, RetriableError):
        return ErrorResponse(error=error.message)
    return ErrorResponse(error=MSG_PROCESSING_FAILED)


# =============================================================================
# Exception Handlers
# =============================================================================


async def validation_error_handler(
    _request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle ValidationError and malformed request bodies with 400."""
    response = build_error_response(exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=response.model_dump(),
    )


async def retriable_error_handler(
    _request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle RetriableError exceptions with a Retry-After header."""
    retriable_exc = exc if isinstance(exc, RetriableError) else None
    if retriable_exc is None:
        return await generic_error_handler(_request, exc)

    retry_after_seconds = max(1, retriable_exc.retry_after_ms // 1000)

    return JSONResponse(
        status_code=get_status_code_for_error(retriable_exc),
        content=build_error_response(retriable_exc).model_dump(),
        headers={"Retry-After": str(retry_after_seconds)},
    )


async def query_service_error_handler(
    _request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle the remaining QueryServiceError types with a masked 500."""
    error_code = getattr(exc, "error_code", None)
    logger.warning("request_error", error_code=error_code, error=str(exc))
    return JSONResponse(
        status_code=get_status_code_for_error(exc),
        content=build_error_response(exc).model_dump(),
    )


async def generic_error_handler(
    _request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions with a masked 500."""
    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=MSG_PROCESSING_FAILED).model_dump(),
    )


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)

    app.add_exception_handler(QueueFullError, retriable_error_handler)
    app.add_exception_handler(ServiceUnavailableError, retriable_error_handler)
    app.add_exception_handler(RetriableError, retriable_error_handler)

    app.add_exception_handler(QueryServiceError, query_service_error_handler)

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_error_handler)
