"""structlog configuration for the ingestion CLI.

Local runs get coloured console lines; ``APP_ENV=production`` (or
``--json-logs``) switches to one JSON object per line.  chromadb, httpx and
openai log through the standard library, so the root logger is given the
same processor chain and renderer.
"""

import logging
import os
import sys

import structlog


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _select_renderer(json_output: bool, app_env: str) -> structlog.types.Processor:
    if json_output or app_env == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Set up structlog and the stdlib root logger at *log_level*.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Emit JSON regardless of ``APP_ENV``.
    """
    level = log_level.upper()
    processors = _shared_processors()
    renderer = _select_renderer(json_output, os.environ.get("APP_ENV", "development"))

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *processors, renderer],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Named logger; configures defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
