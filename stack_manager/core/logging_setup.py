"""File logging for the TUI (the terminal itself belongs to Textual)."""

import logging
from pathlib import Path
from typing import Optional

from .config_loader import Settings

LOGGER_NAME = "stack_manager"
LOG_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(settings: Settings, default_path: Path) -> Path:
    """Attach a file handler to the package logger.

    Calling this again replaces the previous handler, so the level and path
    follow the latest settings.
    """
    global _handler

    log_path = Path(settings.log_file).expanduser() if settings.log_file else default_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(settings.log_level)
    logger.propagate = False

    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    _handler = handler

    logger.info("Logging to %s at %s", log_path, settings.log_level)
    return log_path
