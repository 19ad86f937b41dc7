"""Service defaults and public message strings.

Client-facing error messages live here so routes, handlers and tests agree
on the exact wording.
"""

# =============================================================================
# Service Defaults
# =============================================================================

DEFAULT_SERVICE_NAME = "llm-query-service"
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_MODEL_PATH = "./models/capybarahermes-2.5-mistral-7b.Q6_K.gguf"
DEFAULT_CONTEXT_LENGTH = 4096
DEFAULT_GPU_LAYERS = -1  # All layers on GPU/Metal
DEFAULT_MAX_HISTORY_TURNS = 16
DEFAULT_SHUTDOWN_TIMEOUT = 30.0
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, respectful and honest assistant. "
    "Always answer as helpfully as possible."
)


# =============================================================================
# Client-facing Messages
# =============================================================================

STATUS_RUNNING = "running"
MSG_NO_QUERY = "No query provided"
MSG_PROCESSING_FAILED = "Failed to process the query"
MSG_QUEUE_FULL = "Query queue is full"
MSG_SERVICE_UNAVAILABLE = "Service unavailable"

HEADER_REQUEST_ID = "X-Request-ID"
