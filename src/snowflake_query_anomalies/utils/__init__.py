"""
Shared utilities: logging setup and stage timing.
"""

from .logger import setup_logging, get_logger, PerformanceLogger, log_dataframe_info

__all__ = [
    'setup_logging',
    'get_logger',
    'PerformanceLogger',
    'log_dataframe_info',
]
