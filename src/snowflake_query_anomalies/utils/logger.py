"""
Logging configuration and setup for the query anomaly detection job.

Provides centralized logging configuration with file rotation
and stage timing for the batch pipeline.
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/anomaly_detection.log",
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
    format_string: Optional[str] = None
) -> None:
    """
    Setup logging for a detection run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None for console only)
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
        format_string: Custom log format string
    """
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    if format_string is None:
        format_string = (
            "%(asctime)s | %(levelname)-8s | %(name)-20s | "
            "%(funcName)-15s | %(lineno)-4d | %(message)s"
        )

    formatter = logging.Formatter(
        fmt=format_string,
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Findings go to stdout, so logs stay on stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set specific logger levels for third-party libraries
    logging.getLogger("snowflake.connector").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {log_level}, File: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


class PerformanceLogger:
    """Context manager for timing a pipeline stage."""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger(__name__)
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting operation: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.info(f"Completed operation: {self.operation_name} in {self.duration:.3f}s")
        else:
            self.logger.error(
                f"Failed operation: {self.operation_name} after {self.duration:.3f}s - {exc_val}"
            )
        return False


def log_dataframe_info(df, name: str = "DataFrame", logger: Optional[logging.Logger] = None):
    """Log DataFrame information for debugging."""
    if logger is None:
        logger = logging.getLogger(__name__)

    logger.debug(f"{name} info: shape={df.shape}, memory={df.memory_usage(deep=True).sum()/1024/1024:.1f}MB")
    logger.debug(f"{name} columns: {list(df.columns)}")
