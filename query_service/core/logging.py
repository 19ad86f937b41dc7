"""Structured logging module for llm-query-service.

Every log line is one JSON object carrying timestamp, level, logger name,
the service name and, while a query is being handled, its request_id.

Patterns applied:
- get_logger() returns lazy proxies; the lifespan applies settings with
  configure_logging(force=True) and every module logger follows
- Request id carried in a ContextVar: the /query route binds it for the
  caller, the serializer worker binds it around each dispatch, and
  asyncio.to_thread copies it into the session thread
- Underscore-prefix for unused structlog processor params
"""

import contextvars
from typing import Any, TextIO

import structlog
from structlog._config import BoundLoggerLazyProxy
from structlog.types import EventDict, Processor


_configured: bool = False

_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


# =============================================================================
# Request Id Context
# =============================================================================
_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def bind_request_id(request_id: str | None) -> contextvars.Token[str | None]:
    """Make request_id appear on every log event in the current context.

    Returns:
        Token for reset_request_id().
    """
    return _request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token[str | None]) -> None:
    _request_id_var.reset(token)


def current_request_id() -> str | None:
    return _request_id_var.get()


# =============================================================================
# Processors
# =============================================================================
def add_request_id(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the bound request id unless the event already names one."""
    request_id = _request_id_var.get()
    if request_id is not None:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _add_service(service_name: str) -> Processor:
    def add_service(
        _logger: object, _method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


# =============================================================================
# Configuration
# =============================================================================
def configure_logging(
    level: str = "INFO",
    service_name: str | None = None,
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Configure structlog for JSON output.

    Later calls are ignored unless force=True, so importing modules that call
    get_logger() early cannot undo the lifespan's configuration.

    Args:
        level: Minimum level name; unknown names fall back to INFO.
        service_name: Stamped on every event as "service" when given.
        stream: Output stream. Defaults to whatever sys.stdout is when
            each event is written.
        force: Reconfigure even if already configured.
    """
    global _configured

    if _configured and not force:
        return

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        add_request_id,
    ]
    if service_name:
        processors.append(_add_service(service_name))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _LEVELS.get(level.upper(), _LEVELS["INFO"])
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """Allow the next configure_logging() call to take effect (tests)."""
    global _configured
    _configured = False


def get_logger(name: str) -> Any:
    """Return a lazy structlog logger named name.

    Modules call this at import time, before the lifespan applies the real
    settings. The proxy resolves the current configuration on every call,
    so a later configure_logging(force=True) reaches these loggers too.
    """
    configure_logging()
    # structlog.get_logger(logger=...) collides with wrap_logger's own
    # positional "logger" parameter, so build the lazy proxy directly.
    return BoundLoggerLazyProxy(
        None, initial_values={"logger": name}, logger_factory_args=()
    )
