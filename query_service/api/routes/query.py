"""Query API route.

POST /query validates the body synchronously, then hands the query to the
RequestSerializer and waits for its turn. Validation failures never enter
the queue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response

from query_service.core.constants import HEADER_REQUEST_ID
from query_service.core.exceptions import (
    InferenceError,
    QueryServiceError,
    ServiceUnavailableError,
)
from query_service.core.logging import bind_request_id, get_logger, reset_request_id
from query_service.models.query import Query
from query_service.models.requests import QueryRequest
from query_service.models.responses import ErrorResponse, QueryResponse


if TYPE_CHECKING:
    from query_service.services.serializer import RequestSerializer


router = APIRouter(tags=["query"])
logger = get_logger(__name__)


def _get_serializer(request: Request) -> RequestSerializer:
    """Get the serializer from app state.

    Raises:
        ServiceUnavailableError: If the lifespan has not set one up.
    """
    serializer: RequestSerializer | None = getattr(
        request.app.state, "serializer", None
    )
    if serializer is None:
        raise ServiceUnavailableError()
    return serializer


@router.post(
    "/query",
    response_model=QueryResponse,
    summary="Answer a query",
    description="Queues the query for the model session and returns its answer.",
    responses={
        400: {"description": "No query provided", "model": ErrorResponse},
        500: {"description": "Failed to process the query", "model": ErrorResponse},
        503: {"description": "Queue full or service unavailable", "model": ErrorResponse},
    },
)
async def answer_query(
    request: Request,
    response: Response,
    body: QueryRequest,
) -> QueryResponse:
    """Answer one query.

    Args:
        request: FastAPI request object.
        response: Response used to attach the request id header.
        body: Parsed request body.

    Returns:
        QueryResponse echoing the query with the generated answer.

    Raises:
        ValidationError: Missing or empty query (400).
        QueueFullError: Admission limit reached (503).
        InferenceError: Any failure after admission (500).
    """
    query = Query.parse(body.query)
    serializer = _get_serializer(request)

    pending = serializer.submit(query)
    response.headers[HEADER_REQUEST_ID] = pending.request_id
    token = bind_request_id(pending.request_id)
    try:
        answer = await pending
    except QueryServiceError:
        raise
    except Exception as e:
        logger.exception("query_unexpected_error", request_id=pending.request_id)
        raise InferenceError() from e
    finally:
        reset_request_id(token)

    return QueryResponse(query=query.text, answer=answer)
