"""Inference sessions for llm-query-service.

Sessions:
- base: InferenceSession ABC
- llamacpp: LlamaCppSession (llama-cpp-python chat session)
"""

from query_service.providers.base import InferenceSession, SessionMetadata
from query_service.providers.llamacpp import LlamaCppSession


__all__: list[str] = [
    "InferenceSession",
    "LlamaCppSession",
    "SessionMetadata",
]
