"""
Structured logging utilities for pycue.

Provides JSON-formatted logging for log collectors and human-readable
logging for the terminal. Console output goes to stderr: stdout carries
the analysis result.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs log records as JSON.

    One object per line, so playout hosts can ship pycue logs to the same
    collector as their Liquidsoap logs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Context attached through TrackLoggerAdapter
        context = getattr(record, "context", None)
        if context:
            log_obj["context"] = context

        return json.dumps(log_obj, default=str)


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to log levels for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format with color codes."""
        color = self.COLORS.get(record.levelname, "")
        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    level: str = "WARNING",
    log_format: str = "text",
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5,
    console_enabled: bool = True,
    colored: bool = True,
) -> None:
    """
    Configure logging for the ``pycue`` logger tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Console output format ("json" or "text")
        log_file: Optional file path for log output (always JSON)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep
        console_enabled: Whether to log to stderr
        colored: Whether to color text output (only when stderr is a tty)
    """
    logger = logging.getLogger("pycue")
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []
    logger.propagate = False

    if log_format == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"
        if colored and sys.stderr.isatty():
            formatter = ColoredFormatter(fmt, datefmt)
        else:
            formatter = logging.Formatter(fmt, datefmt)

    if console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the ``pycue`` namespace.

    Args:
        name: Logger name, with or without the ``pycue.`` prefix

    Returns:
        logging.Logger: Logger instance
    """
    if not name.startswith("pycue"):
        name = f"pycue.{name}"
    return logging.getLogger(name)


class TrackLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that tags every message with the track being analyzed.

    Text output gets a ``[file]`` prefix, JSON output a ``context`` object.
    """

    def process(
        self, msg: str, kwargs: Dict[str, Any]
    ) -> tuple[str, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = dict(self.extra)
        kwargs["extra"] = extra
        track = self.extra.get("track")
        if track:
            msg = f"[{track}] {msg}"
        return msg, kwargs


def create_logger_with_context(
    name: str, context: Dict[str, Any]
) -> TrackLoggerAdapter:
    """
    Create a logger with persistent context.

    Example:
        logger = create_logger_with_context("engine", {"track": "song.flac"})
        logger.info("Cache hit")
        # Logs: "[song.flac] Cache hit"
    """
    return TrackLoggerAdapter(get_logger(name), context)
