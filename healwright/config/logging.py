"""structlog setup for healwright.

Library modules only call ``structlog.get_logger``. Configuration happens
once, from the CLI or from the host test suite (e.g. a ``conftest.py``).
"""

import logging
import sys
from typing import TextIO

import structlog

# Chatty at DEBUG while a healing attempt drives the page
_NOISY_LOGGERS = ("asyncio", "urllib3")


def setup_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Route healwright's structlog events through stdlib logging.

    Output defaults to stderr so log lines never mix with CLI results on
    stdout. JSON is used when requested or when ``stream`` is not a TTY.
    """
    out = stream or sys.stderr
    level = logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO)

    if json_output or not out.isatty():
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=out, level=level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
