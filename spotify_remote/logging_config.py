"""Structured logging configuration for the Spotify remote session.

JSON structured logging goes to a rotating file and human-readable
logging to the console. Logs are written to logs/spotify_remote.log with
10MB rotation and 5 backups.

The package only creates loggers; the host application configures them
once at startup, before opening a session:

    from spotify_remote.config import get_settings
    from spotify_remote.logging_config import setup_logging
    from spotify_remote.services import PlaybackSession

    settings = get_settings()
    setup_logging(settings.log_level)
    with PlaybackSession(settings) as session:
        session.play()
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Sensitive parameters to redact from URLs and bodies
SENSITIVE_PARAMS = [
    "token",
    "secret",
    "refresh_token",
    "access_token",
    "client_secret",
    "code",
]

_CREDENTIAL_PATTERN = re.compile(r"\b(Bearer|Basic)\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> logging.Logger:
    """Configure structured logging with JSON file output and console output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the JSON log file (defaults to ./logs next to the package)

    Returns:
        Configured root logger instance
    """
    if log_dir is None:
        log_dir = Path(__file__).parent.parent / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove any existing handlers
    root_logger.handlers.clear()

    # JSON file handler with rotation (10MB, 5 backups)
    json_handler = RotatingFileHandler(
        log_dir / "spotify_remote.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    json_formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s %(threadName)s %(filename)s %(lineno)d",
        timestamp=True,
    )
    json_handler.setFormatter(json_formatter)
    json_handler.setLevel(logging.DEBUG)  # Capture all levels to file
    root_logger.addHandler(json_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with structured logging support.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance configured for structured logging
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **extra_fields: Any,
) -> None:
    """Log a message with additional structured context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **extra_fields: Additional fields to include in JSON log (e.g. event_type, status_code)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra_fields)


def redact_sensitive_data(text: str) -> str:
    """Redact sensitive query parameters and Authorization credentials."""
    redacted = _CREDENTIAL_PATTERN.sub(lambda m: f"{m.group(1)} ***REDACTED***", text)
    for param in SENSITIVE_PARAMS:
        pattern = rf"\b{param}=([^&\s\"]+)"
        redacted = re.sub(pattern, f"{param}=***REDACTED***", redacted)
    return redacted
