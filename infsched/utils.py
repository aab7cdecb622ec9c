"""
Utility functions for infsched.

Includes logging setup, name sanitizing and retry backoff.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Global console for pretty output
console = Console()

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9\-]")
MAX_LABEL_LENGTH = 63


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "structured",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for the operator.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        log_file: Optional path to a log file
        console_output: Also log to console

    Returns:
        Configured "infsched" logger
    """
    logger = logging.getLogger("infsched")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_time=False)
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(StructuredFormatter())
        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "stage"):
            log_data["stage"] = record.stage
        if hasattr(record, "event"):
            log_data["event"] = record.event
        if hasattr(record, "metadata"):
            log_data["metadata"] = record.metadata

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def sanitize_name(name: str) -> str:
    """
    Sanitize a string into a valid Kubernetes label value / DNS label.

    Lowercases, replaces invalid characters with hyphens, trims leading and
    trailing hyphens and truncates to 63 characters.
    """
    sanitized = _INVALID_NAME_CHARS.sub("-", name.lower()).strip("-")
    if len(sanitized) > MAX_LABEL_LENGTH:
        sanitized = sanitized[:MAX_LABEL_LENGTH].rstrip("-")
    return sanitized


def backoff_delay(
    failures: int,
    backoff_seconds: float = 1.0,
    backoff_multiplier: float = 2.0,
    max_seconds: float = 300.0,
) -> float:
    """
    Exponential backoff delay for the n-th consecutive failure (1-indexed).

    Args:
        failures: Number of consecutive failures so far
        backoff_seconds: Delay after the first failure
        backoff_multiplier: Multiplier for each further failure
        max_seconds: Upper bound on the delay

    Returns:
        Delay in seconds
    """
    if failures <= 0:
        return 0.0
    delay = backoff_seconds * (backoff_multiplier ** (failures - 1))
    return min(delay, max_seconds)
