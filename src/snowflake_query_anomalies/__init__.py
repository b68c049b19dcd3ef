"""
Snowflake Query Anomalies

Batch detection of queries that deviate from a user's established behavior:
unusual hour of day, unusual query complexity and unusual table access.
"""

__version__ = "1.0.0"

from .config.settings import DetectionConfig, LogFilterConfig, Settings, get_settings, load_settings
from .data_collection import (
    FileQueryLogSource,
    InMemoryQueryLogSource,
    LogSourceError,
    QueryLogFilters,
    QueryLogSource,
    SnowflakeQueryHistorySource,
)
from .detection import (
    ActivityExtractor,
    ActivityRecord,
    AnomalyFinding,
    AnomalyType,
    BaselineBuilder,
    QueryRecord,
    UserBaseline,
)
from .output import ConsoleSink, FileSink, ResultSink, create_sink
from .pipeline import AnomalyDetectionPipeline, DetectionResult, DetectionWindows
from .utils.logger import get_logger, setup_logging

__all__ = [
    # Configuration
    "DetectionConfig",
    "LogFilterConfig",
    "Settings",
    "get_settings",
    "load_settings",

    # Log sources
    "FileQueryLogSource",
    "InMemoryQueryLogSource",
    "LogSourceError",
    "QueryLogFilters",
    "QueryLogSource",
    "SnowflakeQueryHistorySource",

    # Detection
    "ActivityExtractor",
    "ActivityRecord",
    "AnomalyFinding",
    "AnomalyType",
    "BaselineBuilder",
    "QueryRecord",
    "UserBaseline",
    "AnomalyDetectionPipeline",
    "DetectionResult",
    "DetectionWindows",

    # Output
    "ConsoleSink",
    "FileSink",
    "ResultSink",
    "create_sink",

    # Logging
    "get_logger",
    "setup_logging",
]
