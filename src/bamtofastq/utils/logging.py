"""Centralized logging utilities for bamtofastq.

Provides a single place to configure logging and fetch namespaced loggers.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

# Log rotation settings
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

APP_LOGGER_NAME = "bamtofastq"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> None:
    """Configure logging for the 'bamtofastq' namespace.

    Args:
        level: Logging level for the application logger
        log_file: Optional path for log file output
        max_bytes: Maximum size per log file before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)

    Notes:
        - Root logger kept at WARNING to suppress third-party noise
        - 'bamtofastq' logger uses the requested level
        - Console handler uses concise format; file handler (if any) is detailed at DEBUG
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(level)
    # Avoid duplicate logs if called multiple times
    if app_logger.handlers:
        for h in list(app_logger.handlers):
            app_logger.removeHandler(h)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    app_logger.addHandler(console)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            app_logger.addHandler(file_handler)
            # File handler records DEBUG even when the console is quieter
            app_logger.setLevel(min(level, logging.DEBUG))
        except OSError as e:
            import warnings
            warnings.warn(f"Failed to create log file {log_file}: {e}")

    # Do not propagate to root to avoid double-printing
    app_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced logger under 'bamtofastq' root."""
    base = logging.getLogger(APP_LOGGER_NAME)
    return base.getChild(name)


def level_from_verbosity(verbose: int) -> int:
    """Map a -v count to a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


class LogTemplates:
    """Standard log message templates for consistent logging across stages.

    Example usage:
        logger.info(LogTemplates.STAGE_START.format(
            stage_name="classify_pairing",
            sample="NA12878",
        ))
    """

    # Stage lifecycle messages
    STAGE_START = "[{sample}] Starting stage: {stage_name}"
    STAGE_SUCCESS = "[{sample}] Completed stage: {stage_name} in {duration:.1f}s"
    STAGE_FAILURE = "[{sample}] Failed at stage: {stage_name} - {error}"
    STAGE_SKIPPED = "[{sample}] Skipping stage: {stage_name} - {reason}"

    # File operations
    FILE_CREATED = "Created output file: {path} ({size:,} bytes)"

    # Record accounting
    SPLIT_STATS = "[{sample}] {category}: {count:,} records"
    DROPPED_STATS = "[{sample}] {count:,} primary records matched no category and were dropped"

    # External tool execution
    TOOL_START = "Running {tool_name}: {description}"
    TOOL_FAILURE = "{tool_name} failed with exit code {exit_code}"
