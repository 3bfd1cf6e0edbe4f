"""
Unified logging for the harness - no duplicate handlers.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict

LOG_DIR = Path("logs")
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_SIZE_MB = 10
BACKUP_COUNT = 5

_loggers: Dict[str, logging.Logger] = {}
_file_handler_added = False


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Get or create a logger."""
    if name in _loggers:
        return _loggers[name]
    logger = logging.getLogger(name)
    logger.setLevel(level)
    _loggers[name] = logger
    return logger


def setup_file_logging(
    filename: str = "harness.log",
    level: int = logging.INFO,
    use_rotation: bool = True,
) -> Path:
    """Set up file logging once per process.

    Relative file names are placed under ``logs/``.

    Returns:
        Path of the log file
    """
    global _file_handler_added

    log_path = Path(filename)
    if not log_path.is_absolute() and log_path.parent == Path("."):
        log_path = LOG_DIR / log_path.name

    if _file_handler_added:
        return log_path

    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if use_rotation:
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=MAX_LOG_SIZE_MB * 1024 * 1024,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    else:
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")

    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    _file_handler_added = True
    return log_path


def setup_console_logging(level: int = logging.INFO) -> None:
    """Set up console logging."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) is sys.stdout:
            handler.setLevel(level)
            return

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def quiet_http_loggers() -> None:
    """Silence the per-request chatter of httpx/httpcore used by solana-py."""
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure console (and optionally file) logging from config values."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    setup_console_logging(numeric_level)
    if log_file:
        setup_file_logging(log_file, numeric_level)
    quiet_http_loggers()

    root_logger = logging.getLogger()
    root_logger.debug(f"Logging initialized at {level.upper()}")
    return root_logger
