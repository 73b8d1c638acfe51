"""Logging setup for the bot and web processes.

Both roles write structlog records to stdout. Records emitted through the
standard library by discord.py, aiohttp and redis go through the same
formatter, so one log stream can be filtered by ``role``.
"""

import logging
import sys

import structlog
from structlog.stdlib import BoundLogger

from blobmirror.config.models import LoggingConfig

# Third-party loggers that are too chatty at INFO.
NOISY_LOGGERS = ("discord", "aiohttp.access")

PROCESSORS: list[structlog.typing.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _install_stdout_handler(level: int) -> logging.Handler:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    root_logger.addHandler(handler)
    return handler


def _renderer(format: str) -> structlog.typing.Processor:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(config: LoggingConfig, role: str | None = None) -> None:
    """Initialize logging for one process.

    Args:
        config: Logging configuration specifying level and format.
        role: Process role ("bot" or "web"), added to every record when set.
    """
    level = getattr(logging, config.level)
    handler = _install_stdout_handler(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.contextvars.clear_contextvars()
    if role is not None:
        structlog.contextvars.bind_contextvars(role=role)

    structlog.configure(
        processors=PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(config.format),
            ],
        )
    )


def get_logger(name: str | None = None) -> BoundLogger:
    """Return a logger named after a component, e.g. "registry"."""
    return structlog.stdlib.get_logger(name)
