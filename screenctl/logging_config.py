"""Centralized logging configuration.

The CLI configures logging once at startup:
    from .logging_config import setup_process_logging
    setup_process_logging("screenctl", level=logging.DEBUG, log_dir=Path("~/.local/state/screenctl"))

Modules only ever ask for a logger:
    from .logging_config import get_logger
    logger = get_logger(__name__)

As a library, screenctl installs no handlers of its own; the host
application's logging configuration applies.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

# Process name set by setup_process_logging(), used in the record format
_current_process: str | None = None

LOG_FORMAT = "[%(asctime)s] [{process}] [%(levelname)s] %(name)s: %(message)s"


class FlushingStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_process_logging(
    process_name: str,
    level: int = logging.INFO,
    console: bool = True,
    log_dir: Path | None = None,
) -> logging.Logger:
    """
    Configure the root logger for this process. Call once, at the entry point.

    Args:
        process_name: Process identifier, shown in every record
        level: Minimum log level (default INFO)
        console: Whether to log to stderr
        log_dir: Directory for a daily-rotated log file, or None for none

    Returns:
        Root logger for this process
    """
    global _current_process
    _current_process = process_name

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    fmt = LOG_FORMAT.format(process=process_name)

    if console:
        console_handler = FlushingStreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt="%H:%M:%S"))
        root.addHandler(console_handler)

    if log_dir is not None:
        log_dir = log_dir.expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        # screenctl.log -> screenctl.log.2025-12-01 at midnight, 14 days kept
        file_handler = TimedRotatingFileHandler(
            log_dir / f"{process_name}.log",
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a module logger. Call at module level: logger = get_logger(__name__)"""
    return logging.getLogger(name)
