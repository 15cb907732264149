"""Structured logging configuration."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .config import Settings, settings as default_settings

SERVICE_NAME = "level-lens"

# Library loggers that are chatty at INFO; uvicorn.access duplicates our request log
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


def _add_service_info(config: Settings) -> Processor:
    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", config.environment)
        return event_dict

    return processor


def setup_logging(config: Optional[Settings] = None) -> None:
    """Configure structlog and the stdlib root logger for the service.

    Development gets coloured console output; every other environment
    emits one JSON object per line with tracebacks rendered inline.
    """
    config = config or default_settings
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        _add_service_info(config),
    ]

    if config.is_development():
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer()]
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    quiet_level = logging.INFO if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str, **initial_context: Any) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
        **initial_context: Initial context to bind to the logger

    Returns:
        Configured logger instance
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def add_request_context(
    request_id: str,
    method: str,
    path: str,
    user_agent: Optional[str] = None,
    **kwargs: Any
) -> Dict[str, Any]:
    """Create request context for logging.

    Args:
        request_id: Unique request identifier
        method: HTTP method
        path: Request path
        user_agent: Optional client user agent
        **kwargs: Additional context

    Returns:
        Context dictionary
    """
    context = {
        "request_id": request_id,
        "method": method,
        "path": path,
        **kwargs
    }

    if user_agent:
        context["user_agent"] = user_agent

    return context


def add_generation_context(
    kind: str,
    level: str,
    text: str,
    **kwargs: Any
) -> Dict[str, Any]:
    """Create generation context for logging.

    Args:
        kind: Session kind serving the request
        level: Target CEFR level
        text: Input text (only its length is logged)
        **kwargs: Additional context

    Returns:
        Context dictionary
    """
    return {
        "session_kind": kind,
        "level": level,
        "text_length": len(text),
        **kwargs
    }
