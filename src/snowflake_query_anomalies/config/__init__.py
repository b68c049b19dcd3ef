"""
Configuration management package for the query anomaly detection job.

This package handles configuration loading from JSON files and
environment variables, and provides centralized settings management.
"""

from .settings import (
    AppConfig,
    DetectionConfig,
    LogFilterConfig,
    OutputConfig,
    SnowflakeConnectionConfig,
    Settings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    'AppConfig',
    'DetectionConfig',
    'LogFilterConfig',
    'OutputConfig',
    'SnowflakeConnectionConfig',
    'Settings',
    'get_settings',
    'load_settings',
    'reload_settings',
]
