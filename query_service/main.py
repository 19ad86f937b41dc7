"""FastAPI application entrypoint for llm-query-service.

Patterns applied:
- asynccontextmanager lifespan (not the deprecated @app.on_event)
- configure_logging(force=True) in lifespan startup overrides import-time defaults
- One session per process: built and loaded at startup, handed to the
  RequestSerializer, unloaded at shutdown
- Docs disabled in production
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from query_service import __version__
from query_service.api.error_handlers import register_exception_handlers
from query_service.api.routes.health import router as health_router
from query_service.api.routes.query import router as query_router
from query_service.core.config import Settings, get_settings
from query_service.core.logging import configure_logging, get_logger
from query_service.observability.tracing import (
    TracingMiddleware,
    setup_tracing,
    shutdown_tracing,
)
from query_service.providers.base import InferenceSession
from query_service.providers.llamacpp import LlamaCppSession
from query_service.services.serializer import RequestSerializer


# =============================================================================
# Application Metadata
# =============================================================================
APP_NAME = "llm-query-service"
APP_DESCRIPTION = "Answers natural-language queries with one local LLM chat session"
APP_VERSION = __version__

SessionFactory = Callable[[Settings], InferenceSession]


def build_llamacpp_session(settings: Settings) -> InferenceSession:
    """Create the llama-cpp session described by settings (not yet loaded)."""
    return LlamaCppSession(
        model_path=settings.model_path,
        context_length=settings.context_length,
        n_gpu_layers=settings.gpu_layers,
        system_prompt=settings.system_prompt or None,
        max_history_turns=settings.max_history_turns,
    )


def create_app(
    settings: Settings | None = None,
    session_factory: SessionFactory | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use. Defaults to get_settings().
        session_factory: Builds the InferenceSession at startup.
            Defaults to build_llamacpp_session.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    factory = session_factory or build_llamacpp_session

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Load the session, start the serializer, and tear both down."""
        # =====================================================================
        # STARTUP
        # =====================================================================
        configure_logging(
            level=settings.log_level,
            service_name=settings.service_name,
            force=True,
        )
        logger = get_logger(__name__)

        if settings.tracing_enabled:
            setup_tracing(settings.service_name, settings.otlp_endpoint)

        logger.info(
            "Application starting",
            service=settings.service_name,
            version=APP_VERSION,
            environment=settings.environment,
            port=settings.port,
            model_path=settings.model_path,
        )

        session = factory(settings)
        # Model loading can take minutes; keep the loop free meanwhile
        await asyncio.to_thread(session.load)

        serializer = RequestSerializer(
            session,
            max_queue_size=settings.max_queue_size,
        )
        serializer.start()

        app.state.serializer = serializer
        app.state.initialized = True
        app.state.environment = settings.environment
        app.state.service_name = settings.service_name

        try:
            yield
        finally:
            # =================================================================
            # SHUTDOWN
            # =================================================================
            drain = await serializer.shutdown(timeout=settings.shutdown_timeout)
            session.unload()
            app.state.serializer = None
            app.state.initialized = False

            if settings.tracing_enabled:
                shutdown_tracing()

            logger.info("Application shutting down", service=settings.service_name, **drain)

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )

    if settings.tracing_enabled:
        app.add_middleware(TracingMiddleware, exclude_paths=["/status"])

    app.include_router(health_router)
    app.include_router(query_router)

    register_exception_handlers(app)

    return app


# =============================================================================
# FastAPI Application Instance
# =============================================================================
app = create_app()
