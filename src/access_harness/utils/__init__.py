"""Harness utilities."""

from .logger import get_logger, setup_console_logging, setup_file_logging, setup_logging

__all__ = ["get_logger", "setup_console_logging", "setup_file_logging", "setup_logging"]
