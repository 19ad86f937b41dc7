"""Request body models for the query API."""

from typing import Any

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Body of POST /query.

    The field is loose: a missing, empty or non-string query is
    reported as "No query provided" by Query.parse() rather than as a schema
    error.
    """

    query: Any = Field(
        default=None,
        description="Natural-language question for the model",
        examples=["What is the capital of France?"],
    )
