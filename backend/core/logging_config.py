"""Application-wide logging configuration."""

import logging

from rich.logging import RichHandler

from core.config import settings


def setup_logging() -> None:
    """Route all logging through a single rich console handler."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_suppress=[logging],
    )
    root_logger.handlers = [rich_handler]

    # Library loggers are noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
