"""
Logging configuration for SubShare.

Handlers live on the top-level "subshare" logger only; module loggers are its
children and propagate to it, so every module writes to the same console
stream and the same rotating file. Configured through LOG_LEVEL, LOG_DIR,
LOG_TO_FILE and DEBUG_MODE environment variables.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "subshare"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class SubShareLogger:
    """Owns the handlers of the package logger."""

    def __init__(self, name: str = ROOT_LOGGER):
        self.name = name
        self.logger = logging.getLogger(name)
        self.level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
        self.debug_mode = _env_flag("DEBUG_MODE", "false")
        self.log_dir = os.getenv("LOG_DIR", "./logs")
        self.log_to_file = _env_flag("LOG_TO_FILE", "true")

    def _line_format(self, colored: bool) -> str:
        location = "%(name)s.%(funcName)s:%(lineno)d" if self.debug_mode else "%(name)s"
        prefix = "%(log_color)s" if colored else ""
        return f"{prefix}%(asctime)s [%(levelname)8s] {location} - %(message)s"

    def _console_handler(self) -> logging.Handler:
        handler = colorlog.StreamHandler(sys.stdout)
        handler.setFormatter(colorlog.ColoredFormatter(
            self._line_format(colored=True),
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
        ))
        return handler

    def _file_handler(self) -> logging.Handler:
        Path(self.log_dir).mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            os.path.join(self.log_dir, f"{self.name}.log"),
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=5,
            encoding='utf-8'
        )
        handler.setFormatter(logging.Formatter(self._line_format(colored=False), datefmt=DATE_FORMAT))
        return handler

    def configure(self) -> logging.Logger:
        """(Re)build the handlers. Safe to call more than once."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.setLevel(self.level)
        self.logger.addHandler(self._console_handler())
        if self.log_to_file:
            self.logger.addHandler(self._file_handler())
        self.logger.propagate = False
        return self.logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the subshare hierarchy.

    Args:
        name: Logger name, usually __name__. If None, uses the caller's module name.

    Returns:
        Logger that propagates to the configured package logger.
    """
    if name is None:
        name = sys._getframe(1).f_globals.get('__name__', ROOT_LOGGER)

    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        SubShareLogger().configure()

    return logging.getLogger(name)


def setup_logging() -> None:
    """
    Apply the current environment to the package logger.

    Called once from the application lifespan and the Celery worker.
    """
    logger = SubShareLogger().configure()
    logger.info("Logging system initialized")
    logger.debug(f"Handlers: {[h.__class__.__name__ for h in logger.handlers]}")
