from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from remote_asset.config.models import FileLoggingSettings, LoggingSettings

LOG_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at DEBUG.
_QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")


def _resolve_level(name: str) -> int:
    level = logging.getLevelNamesMapping().get(name.strip().upper())
    if level is None:
        raise ValueError(f"Invalid logging level: {name}")
    return level


def _build_file_handler(settings: FileLoggingSettings, level: int, formatter: logging.Formatter) -> logging.Handler:
    file_path = Path(settings.path.strip())
    file_path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(file_path),
        when="midnight",
        interval=1,
        backupCount=settings.rotation.backup_count,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def init_logging(settings: LoggingSettings) -> None:
    """
    Configure the root logger for the command line entry point.

    Library code only ever calls ``logging.getLogger(__name__)``; embedding
    applications keep their own configuration and never need this.
    """

    root_logger = logging.getLogger()
    level = _resolve_level(settings.level)
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if not settings.file.path.strip():
        return

    try:
        root_logger.addHandler(_build_file_handler(settings.file, level, formatter))
    except OSError:
        root_logger.error(
            "File logging handler failed to initialize path=%s",
            settings.file.path,
            exc_info=True,
        )


__all__ = ["init_logging"]
