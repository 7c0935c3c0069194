from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from btoengine.config.settings import LoggingConfig

_HANDLER_TAG = "_btoengine_handler"


def setup_logging(config: Optional[LoggingConfig] = None, *, logger_name: str = "btoengine") -> logging.Logger:
    """
    Configure the package logger from LoggingConfig.

    Installs a console handler and, when ``config.file`` is set, a rotating
    file handler. Calling it again replaces the handlers it installed before.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, str(config.level).upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            path, maxBytes=config.max_size, backupCount=config.backup_count, encoding="utf-8",
        ))
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_TAG, True)
        logger.addHandler(handler)
    return logger
