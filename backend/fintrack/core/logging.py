"""Logging setup for stdlib loggers and structlog.

Library modules log through ``logging.getLogger(__name__)``; the HTTP layer
uses ``structlog.get_logger()``. Both end up on the same root handler.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Configure structured logging defaults for the application.

    Args:
        level: Root log level name (e.g., "INFO", "DEBUG").
        json_output: Render structlog events as JSON (production) instead of
            the human-readable console format.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
