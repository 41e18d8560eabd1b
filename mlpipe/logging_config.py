"""Structured logging for mlpipe, built on structlog.

Only lifecycle events are logged: dataset loads and splits, pipeline fits,
non-convergence, evaluation summaries, artifact saves and loads. Row-level
inference never logs.

A training run binds its task and trainer once with ``run_context`` and every
event emitted inside the block carries them.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog

LOGGER_NAME = "mlpipe"

# Libraries whose INFO chatter would drown the lifecycle events
_QUIET_LOGGERS = ("joblib", "sklearn")


def _processors() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    stream: TextIO | None = None,
) -> structlog.stdlib.BoundLogger:
    """Route structlog and stdlib logging through one handler.

    Args:
        level: Log level name for the mlpipe logger (DEBUG, INFO, WARNING, ERROR)
        json_format: One JSON object per line when True, colored console lines otherwise
        stream: Destination stream; stderr by default so CLI output stays clean

    Returns:
        The mlpipe logger.
    """
    chain = _processors()
    if json_format:
        renderer: structlog.typing.Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None and sys.stderr.isatty())

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=chain,
        )
    )

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.handlers = [handler]
    app_logger.setLevel(level.upper())
    app_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return get_logger()


def get_logger() -> structlog.stdlib.BoundLogger:
    """Get the mlpipe logger."""
    return structlog.get_logger(LOGGER_NAME)


@contextmanager
def run_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield
