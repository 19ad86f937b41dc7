"""llm-query-service: answer natural-language queries with one local LLM session.

Concurrent HTTP requests are serialized into a single FIFO stream of prompts
against a llama-cpp-python chat session.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
