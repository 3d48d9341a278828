"""
Logging Configuration Module

All modules log through the "directrent" logger hierarchy, configured once
from LoggingConfig (DIRECTRENT_LOG_LEVEL / DIRECTRENT_LOG_FILE).

Usage:
    from directrent.logging_config import setup_logging, get_logger, log_duration

    setup_logging()  # Call once at application startup
    logger = get_logger(__name__)

    with log_duration(logger, "Price model training"):
        ...
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from directrent.config import get_config

PACKAGE_LOGGER = "directrent"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO during training
NOISY_LIBRARIES = ("joblib", "xgboost", "sklearn", "numexpr")

_logging_configured = False


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    force: bool = False,
) -> None:
    """Configure the package logger.

    Args:
        level: Log level name. Defaults to the configured level.
        log_file: Optional file to log to in addition to stdout. Defaults
            to the configured log file.
        force: Reconfigure even if logging was already set up.
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    settings = get_config().logging
    numeric_level = getattr(logging, (level or settings.level).upper(), logging.INFO)
    log_file = log_file or settings.log_file

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(numeric_level)
    package_logger.handlers.clear()

    _attach(package_logger, logging.StreamHandler(sys.stdout), numeric_level)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _attach(package_logger, logging.FileHandler(log_path, encoding="utf-8"), numeric_level)

    package_logger.propagate = False

    for library in NOISY_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the package hierarchy; configures logging on first use."""
    if not _logging_configured:
        setup_logging()

    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


@contextmanager
def log_duration(logger: logging.Logger, label: str) -> Iterator[None]:
    """Log how long the wrapped block took, at INFO."""
    started = time.perf_counter()
    yield
    logger.info("%s completed in %.2fs", label, time.perf_counter() - started)


def reset_logging() -> None:
    """Reset logging configuration (useful for testing)."""
    global _logging_configured
    _logging_configured = False
    logging.getLogger(PACKAGE_LOGGER).handlers.clear()
