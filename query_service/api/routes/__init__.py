"""API route handlers for llm-query-service.

Routes:
- health: /status, /status/queue
- query: /query
"""

__all__: list[str] = []
