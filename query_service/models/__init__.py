"""Value objects and HTTP schemas for llm-query-service."""

from query_service.models.query import Query
from query_service.models.requests import QueryRequest
from query_service.models.responses import (
    ErrorResponse,
    QueryResponse,
    QueueStatusResponse,
    StatusResponse,
)


__all__: list[str] = [
    "ErrorResponse",
    "Query",
    "QueryRequest",
    "QueryResponse",
    "QueueStatusResponse",
    "StatusResponse",
]
