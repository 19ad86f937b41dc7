"""HTTP surface of llm-query-service."""
