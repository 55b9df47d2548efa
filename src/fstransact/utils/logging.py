"""structlog configuration for command-line use.

Library code only calls ``structlog.get_logger()``; entry points call
``configure_logging`` once so events go to stderr and never mix with the
command's own output.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Route structlog events to stderr at the given level.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...)
        json_format: Render events as JSON lines instead of console output
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
