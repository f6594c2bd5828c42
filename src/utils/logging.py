"""
Watershed EJ Index - Logging Configuration
Console plus per-run file logging; JSON records in production
"""

import logging
import os
import sys
from datetime import datetime

from pythonjsonlogger import jsonlogger

from config.settings import get_settings

settings = get_settings()

# Third-party loggers that flood DEBUG output during map rendering and file IO
QUIET_LOGGERS = ["matplotlib", "PIL", "pyogrio", "fiona"]

BANNER_WIDTH = 60


def _build_formatter() -> logging.Formatter:
    if settings.ENVIRONMENT == "production":
        return jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S"
        )

    return logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )


def setup_logging(name: str = "ej_index") -> logging.Logger:
    """
    Configure the run logger and route module loggers through it.

    Handlers:
    - stdout, JSON when ENVIRONMENT is production
    - LOG_DIR/{name}_{YYYYmmdd_HHMMSS}.log when LOG_DIR is set

    Args:
        name: Logger name, also the log file prefix

    Returns:
        Configured logger instance
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = _build_formatter()

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(os.path.join(settings.LOG_DIR, f"{name}_{stamp}.log"))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Module loggers (get_logger(__name__)) have no handlers of their own
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = list(logger.handlers)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        module_name: Name of the module (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(module_name)


def log_banner(logger: logging.Logger, title: str) -> None:
    """Log a stage heading framed by rules"""
    logger.info("\n" + "=" * BANNER_WIDTH)
    logger.info(title)
    logger.info("=" * BANNER_WIDTH)
