"""Services for llm-query-service.

Services:
- serializer: RequestSerializer, the single-consumer FIFO in front of the session
"""

from query_service.services.serializer import (
    PendingRequest,
    RequestSerializer,
    RequestState,
)


__all__: list[str] = ["PendingRequest", "RequestSerializer", "RequestState"]
