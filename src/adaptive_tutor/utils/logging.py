from __future__ import annotations

import logging
from typing import Optional

import structlog

# Transport libraries log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Initialize stdlib logging and structlog for the engine.

    Component modules log through `logging.getLogger(__name__)`; the generation
    orchestrator emits structlog events (`generation_cache_hit`, `generation_degraded`,
    ...) whose keyword fields are rendered as console key/values or as JSON lines.
    Values bound with `structlog.contextvars` (e.g. a subject) are merged into every event.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: Optional[str] = None):
    """Return a structlog logger that follows the global configuration."""
    return structlog.get_logger(name)
