"""
Log sources supplying query-log records for a time window.

The Snowflake source reads the account usage query history; the file and
in-memory sources serve exported or prepared snapshots.
"""

from .base import LogSourceError, QueryLogFilters, QueryLogSource, in_window
from .query_history import SnowflakeQueryHistorySource, record_from_row
from .file_source import FileQueryLogSource, InMemoryQueryLogSource

__all__ = [
    'LogSourceError',
    'QueryLogFilters',
    'QueryLogSource',
    'in_window',
    'SnowflakeQueryHistorySource',
    'record_from_row',
    'FileQueryLogSource',
    'InMemoryQueryLogSource',
]
