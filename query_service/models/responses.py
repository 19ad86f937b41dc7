"""Response body models for the query API."""

from typing import Any

from pydantic import BaseModel, Field

from query_service.core.constants import STATUS_RUNNING


class StatusResponse(BaseModel):
    """Body of GET /status."""

    status: str = Field(default=STATUS_RUNNING, examples=["running"])


class QueryResponse(BaseModel):
    """Body of a successful POST /query."""

    query: str = Field(description="Query text as sent by the caller")
    answer: str = Field(description="Answer generated by the model")


class ErrorResponse(BaseModel):
    """Flat error body shared by every failure response."""

    error: str = Field(examples=["No query provided"])


class QueueStatusResponse(BaseModel):
    """Body of GET /status/queue."""

    running: bool
    in_flight: bool
    pending: int
    max_queue_size: int = Field(description="0 means unbounded")
    total_submitted: int
    total_completed: int
    total_failed: int
    total_discarded: int
    session: dict[str, Any] | None = None
