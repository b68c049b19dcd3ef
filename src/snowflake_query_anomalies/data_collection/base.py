"""
Log source contract and the record filters shared by every source.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List

from ..config.settings import LogFilterConfig
from ..detection.features import to_utc
from ..detection.models import QueryRecord


class LogSourceError(Exception):
    """Raised when a log source cannot produce records."""
    pass


@dataclass(frozen=True)
class QueryLogFilters:
    """Which query-log records are eligible for baselines and detection."""
    query_type: str = "SELECT"
    execution_status: str = "SUCCESS"
    excluded_users: FrozenSet[str] = frozenset({"SYSTEM"})

    @classmethod
    def from_config(cls, config: LogFilterConfig) -> 'QueryLogFilters':
        return cls(
            query_type=config.query_type,
            execution_status=config.execution_status,
            excluded_users=frozenset(config.excluded_users),
        )

    def matches(self, record: QueryRecord) -> bool:
        return (
            record.query_type == self.query_type
            and record.execution_status == self.execution_status
            and record.user_name not in self.excluded_users
        )


def in_window(record: QueryRecord, window_start: datetime, window_end: datetime) -> bool:
    """Half-open `[window_start, window_end)`, compared in UTC."""
    return to_utc(window_start) <= to_utc(record.start_time) < to_utc(window_end)


class QueryLogSource(ABC):
    """Supplies query-log records for a time window."""

    @abstractmethod
    def fetch(
        self,
        window_start: datetime,
        window_end: datetime,
        filters: QueryLogFilters
    ) -> List[QueryRecord]:
        """
        Return every record with `window_start <= start_time < window_end`
        that satisfies `filters`.

        Failures are raised to the caller; sources do not swallow them.
        """
        pass
