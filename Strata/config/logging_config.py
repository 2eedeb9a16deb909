"""Logging setup for Strata.

Provides JSON or colored text output, an optional rotating log file, and
per-component levels.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from typing import Optional


class JSONFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict)


class StandardFormatter(logging.Formatter):
    """Text formatter, colored when stdout is a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        if sys.stdout.isatty():
            color = self.COLORS.get(record.levelname, "")
            reset = self.RESET
        else:
            color = reset = ""

        result = (
            f"{self.formatTime(record)} {color}{record.levelname:8s}{reset} "
            f"[{record.name}] {record.getMessage()}"
        )

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "standard",
    log_file: Optional[str] = None,
    component_levels: Optional[dict] = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> None:
    """Set up logging for Strata.

    Args:
        log_level: Root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format style ("standard" or "json")
        log_file: Optional path to a rotating log file
        component_levels: Dict mapping logger names to levels, e.g.
                         {"Strata.ingestion": "DEBUG"}
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(_level(log_level))

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = StandardFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_level(log_level))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(_level(log_level))
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Failed to set up file logging: {e}")

    if component_levels:
        for component, level in component_levels.items():
            logging.getLogger(component).setLevel(_level(level))

    logging.getLogger("STRATA").info(f"Logging initialized: level={log_level}, format={log_format}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module."""
    return logging.getLogger(name)


__all__ = ["setup_logging", "get_logger", "JSONFormatter", "StandardFormatter"]
