"""
Value types flowing through one detection run.

All records are immutable and scoped to a single pipeline execution.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class AnomalyType(Enum):
    """Kinds of deviation a finding can report."""
    TIME_OF_DAY = "Unusual query hour"
    COMPLEXITY = "Unusual query complexity"
    TABLE_ACCESS = "Unusual table access"


@dataclass(frozen=True)
class QueryRecord:
    """One completed query from the query log. `start_time` is a UTC instant."""
    user_name: str
    query_id: str
    start_time: datetime
    query_text: str
    execution_status: str
    query_type: str
    warehouse_name: Optional[str] = None
    bytes_scanned: Optional[int] = None
    execution_time: Optional[int] = None


@dataclass(frozen=True)
class UserBaseline:
    """Statistical profile of one user's historical activity."""
    user_name: str
    record_count: int
    hour_p05: float
    hour_p95: float
    avg_length: float
    stddev_length: float
    common_tables: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ActivityRecord:
    """A recent query enriched with detection features."""
    record: QueryRecord
    query_hour: int
    query_length: int
    table_accessed: Optional[str] = None

    @property
    def user_name(self) -> str:
        return self.record.user_name


@dataclass(frozen=True)
class AnomalyFinding:
    """One flagged deviation of a recent query from its user's baseline."""
    user_name: str
    query_id: str
    start_time: datetime
    query_text: str
    anomaly_type: AnomalyType
    anomaly_details: str
    warehouse_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_name': self.user_name,
            'query_id': self.query_id,
            'start_time': self.start_time.isoformat(),
            'query_text': self.query_text,
            'anomaly_type': self.anomaly_type.value,
            'anomaly_details': self.anomaly_details,
            'warehouse_name': self.warehouse_name,
        }
