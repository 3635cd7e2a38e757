import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

import rich.logging
from rich.console import Console

from .log_context import ContextFilter, SuppressHeartbeatFilter
from .settings import Settings, get_settings

_CONFIGURED = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [heartbeat=%(heartbeat)s] %(message)s"
RICH_FORMAT = "%(name)s [heartbeat=%(heartbeat)s] - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
FILE_MAX_BYTES = 5 * 1024**2
FILE_BACKUP_COUNT = 2


def _ensure_base_logging(settings: Settings) -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = logging.DEBUG if settings.dev else logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    context_filter = (
        SuppressHeartbeatFilter() if settings.suppress_heartbeat_logs else ContextFilter()
    )

    stream_handler = rich.logging.RichHandler(
        rich_tracebacks=True,
        show_path=settings.dev,
        console=Console(soft_wrap=False, stderr=True),
    )
    stream_handler.setFormatter(logging.Formatter(RICH_FORMAT, DATE_FORMAT))
    stream_handler.addFilter(context_filter)
    root.addHandler(stream_handler)

    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=FILE_MAX_BYTES,
            backupCount=FILE_BACKUP_COUNT,
            encoding="utf-8",
            delay=True,  # create file lazily on first emit
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    logging.getLogger("uvicorn").setLevel(logging.WARNING)

    _CONFIGURED = True


def configure_logging(
    settings: Optional[Settings] = None,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure root logging once and return the named logger.
    Records carry the ``heartbeat`` flag; with ``suppress_heartbeat_logs``
    records emitted during a heartbeat check are dropped by the handlers.
    """
    _ensure_base_logging(settings or get_settings())
    return logging.getLogger(logger_name)
