"""
Process-wide logging setup for SFTP-FileDesk.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where records go and how verbose each logger is.
"""

import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

# paramiko logs every channel open/close at INFO
NOISY_LOGGERS = ("paramiko",)


def resolve_level(name: str, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its numeric value."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def _add_handler(root_logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)


def setup_logging(config: LogConfig) -> None:
    """
    Configure the root logger for the process.

    Args:
        config: LogConfig object containing settings.

    Records go to config.file (parent directories are created) and/or
    stderr. Transport library loggers are held at WARNING unless the level
    is DEBUG. Entries in config.loggers set individual logger levels last,
    so they override both.
    """
    level = resolve_level(config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _add_handler(root_logger, logging.FileHandler(log_path, mode="a", encoding="utf-8"), level)

    if config.console:
        _add_handler(root_logger, logging.StreamHandler(sys.stderr), level)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    for name, logger_level in config.loggers.items():
        logging.getLogger(name).setLevel(resolve_level(logger_level, level))
