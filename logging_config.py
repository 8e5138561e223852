import logging

import structlog


def configure_logging(development: bool) -> None:
    """Console output while developing, one JSON object per line in production."""
    renderer = (
        structlog.dev.ConsoleRenderer()
        if development
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if development else logging.INFO
        ),
        cache_logger_on_first_use=False,
    )
