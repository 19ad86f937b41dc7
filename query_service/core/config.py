"""Core configuration module for llm-query-service.

Loads settings from QUERY_* prefixed environment variables using Pydantic Settings.
The listening port also honours a bare PORT variable, which is what most
process managers and container platforms set.

Patterns applied:
- pydantic-settings BaseSettings (Pydantic v2 split)
- env_prefix = "QUERY_" for namespace isolation
- @field_validator + @classmethod (Pydantic v2 pattern)
- @lru_cache for singleton pattern
- PEP 604 union syntax (X | None)
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from query_service.core.constants import (
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_ENVIRONMENT,
    DEFAULT_GPU_LAYERS,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_HISTORY_TURNS,
    DEFAULT_MODEL_PATH,
    DEFAULT_PORT,
    DEFAULT_SERVICE_NAME,
    DEFAULT_SHUTDOWN_TIMEOUT,
    DEFAULT_SYSTEM_PROMPT,
)


class Settings(BaseSettings):
    """Application settings loaded from QUERY_* environment variables.

    Example: PORT=8080, QUERY_MODEL_PATH=/models/mistral.gguf

    Attributes:
        service_name: Service identifier for logging and tracing.
        port: HTTP port (1-65535). Read from PORT or QUERY_PORT. Default: 3000.
        host: Bind address. Default: 0.0.0.0.
        environment: Deployment environment. Default: development.
        log_level: Logging verbosity. Default: INFO.
        model_path: Path to the GGUF model loaded once at startup.
        context_length: Context window handed to llama.cpp.
        gpu_layers: Layers on GPU (-1 = all). Default: -1.
        system_prompt: System message that opens the chat session.
        max_history_turns: Exchanges kept in the chat session (0 = none).
        max_queue_size: Queued requests admitted before 503 (0 = unbounded).
        shutdown_timeout: Seconds to drain the queue on shutdown.
        tracing_enabled: Install the OpenTelemetry tracer provider.
        otlp_endpoint: Optional OTLP gRPC endpoint for span export.
    """

    # =========================================================================
    # Core Settings
    # =========================================================================
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name for identification",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "QUERY_PORT", "port"),
        description="HTTP server port",
    )
    host: str = Field(
        default=DEFAULT_HOST,
        description="HTTP server bind address",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default=DEFAULT_ENVIRONMENT,
        description="Deployment environment",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Model / Session Configuration
    # =========================================================================
    model_path: str = Field(
        default=DEFAULT_MODEL_PATH,
        description="Path to the GGUF model file",
    )
    context_length: int = Field(
        default=DEFAULT_CONTEXT_LENGTH,
        ge=256,
        description="Context window in tokens",
    )
    gpu_layers: int = Field(
        default=DEFAULT_GPU_LAYERS,
        description="Number of layers to offload to GPU (-1 = all)",
    )
    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="System prompt that opens the chat session",
    )
    max_history_turns: int = Field(
        default=DEFAULT_MAX_HISTORY_TURNS,
        ge=0,
        description="Number of user/assistant exchanges kept in the session",
    )

    # =========================================================================
    # Serializer Settings
    # =========================================================================
    max_queue_size: int = Field(
        default=0,
        ge=0,
        description="Maximum queued requests before rejecting with 503 (0 = unbounded)",
    )
    shutdown_timeout: float = Field(
        default=DEFAULT_SHUTDOWN_TIMEOUT,
        gt=0,
        description="Seconds to wait for queued requests on shutdown",
    )

    # =========================================================================
    # Tracing
    # =========================================================================
    tracing_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC endpoint (e.g. http://localhost:4317)",
    )

    # =========================================================================
    # Pydantic v2 Model Configuration
    # =========================================================================
    model_config = {
        "env_prefix": "QUERY_",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
        "protected_namespaces": (),
    }

    # =========================================================================
    # Validators (Pydantic v2 pattern: @field_validator + @classmethod)
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Raises:
            ValueError: If log level is not valid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            msg = f"log_level must be one of {valid_levels}, got '{v}'"
            raise ValueError(msg)
        return normalized

    @field_validator("model_path")
    @classmethod
    def validate_model_path(cls, v: str) -> str:
        """Reject a blank model path; existence is checked when loading."""
        if not v.strip():
            msg = "model_path must not be empty"
            raise ValueError(msg)
        return v


@lru_cache
def get_settings() -> Settings:
    """Get singleton Settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()
