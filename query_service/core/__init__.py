"""Core configuration, logging and exceptions for llm-query-service."""
