"""structlog setup for the watcher process."""

import logging
import sys
from typing import Any, List, Union

import structlog

LogLevel = Union[int, str]

# Libraries that log every subprocess call or request on their own.
_NOISY_LOGGERS = ("git.cmd", "git.util", "uvicorn.access")


def configure_logging(level: LogLevel = "INFO", *, json_logs: bool = False) -> None:
    """Route structlog through standard logging on stderr.

    Console output is colored only when stderr is a terminal. ``json_logs``
    switches to one JSON object per line for log collectors.

    Args:
        level: Logging level for the root logger
        json_logs: Render events as JSON instead of console lines
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logging.basicConfig(
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
        format="%(message)s",
    )
    # request_completed from the API middleware replaces uvicorn's access log
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
