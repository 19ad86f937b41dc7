"""Status API routes for llm-query-service.

/status is a pure liveness probe and never touches the serializer.
/status/queue reports serializer counters and session metadata.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from query_service.core.constants import STATUS_RUNNING
from query_service.models.responses import (
    ErrorResponse,
    QueueStatusResponse,
    StatusResponse,
)


if TYPE_CHECKING:
    from query_service.services.serializer import RequestSerializer


REASON_NOT_INITIALIZED = "Request serializer not initialized"

router = APIRouter(tags=["status"])


@router.get(
    "/status",
    response_model=StatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def service_status() -> StatusResponse:
    """Return 200 while the process is serving HTTP."""
    return StatusResponse(status=STATUS_RUNNING)


@router.get(
    "/status/queue",
    response_model=QueueStatusResponse,
    responses={
        503: {"description": "Serializer not initialized", "model": ErrorResponse},
    },
    summary="Queue statistics",
)
async def queue_status(request: Request) -> JSONResponse:
    """Report queue depth, the in-flight flag and lifetime counters.

    Args:
        request: FastAPI request to access app state.

    Returns:
        JSONResponse with serializer statistics and session metadata.
    """
    serializer: RequestSerializer | None = getattr(
        request.app.state, "serializer", None
    )
    if serializer is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ErrorResponse(error=REASON_NOT_INITIALIZED).model_dump(),
        )

    response = QueueStatusResponse(
        **serializer.stats(),
        session=asdict(serializer.session.session_info),
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response.model_dump(),
    )
