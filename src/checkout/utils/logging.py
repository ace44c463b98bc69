"""Logging setup for the Checkout service.

Standard library handlers carry the output and structlog shapes it. Production
and staging write JSON lines; everywhere else gets the rich console renderer.
Under test only the console handler is installed, so runs leave no log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

from checkout.config import Settings, get_settings

LEVEL_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}
STRUCTURED_ENVIRONMENTS = ("production", "staging")
QUIET_LOGGERS = ("protean", "urllib3", "asyncio", "sqlalchemy.engine")
MAX_LOG_BYTES = 10 * 1024 * 1024


def get_log_level(settings: Settings | None = None) -> str:
    """``LOG_LEVEL`` when set, otherwise the default for the environment."""
    settings = settings or get_settings()
    return (settings.log_level or LEVEL_BY_ENVIRONMENT.get(settings.environment.lower(), "INFO")).upper()


def _rotating_file(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def build_handlers(settings: Settings, level: str) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    if settings.environment.lower() == "test":
        return [console]

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    return [
        console,
        _rotating_file(log_dir / "checkout.log", level),
        _rotating_file(log_dir / "checkout_error.log", logging.ERROR),
    ]


def _renderer(settings: Settings):
    if settings.environment.lower() in STRUCTURED_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=True, max_frames=2),
    )


def configure_logging(settings: Settings | None = None) -> None:
    """Install root handlers and the structlog pipeline for this process."""
    settings = settings or get_settings()
    level = get_log_level(settings)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = build_handlers(settings, level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**kwargs: Any) -> None:
    """Bind values (the caller's user id, an order id) to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
