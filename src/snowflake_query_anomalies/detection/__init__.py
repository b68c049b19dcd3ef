"""
Baseline computation and anomaly classification.
"""

from .models import ActivityRecord, AnomalyFinding, AnomalyType, QueryRecord, UserBaseline
from .features import extract_table, local_hour, query_length
from .baseline import BaselineBuilder
from .activity import ActivityExtractor
from .detectors import (
    default_detectors,
    detect_complexity,
    detect_table_access,
    detect_time_of_day,
    evaluate,
)
from .aggregator import aggregate, collect_findings, count_by_type, order_findings

__all__ = [
    'ActivityRecord',
    'AnomalyFinding',
    'AnomalyType',
    'QueryRecord',
    'UserBaseline',
    'extract_table',
    'local_hour',
    'query_length',
    'BaselineBuilder',
    'ActivityExtractor',
    'default_detectors',
    'detect_complexity',
    'detect_table_access',
    'detect_time_of_day',
    'evaluate',
    'aggregate',
    'collect_findings',
    'count_by_type',
    'order_findings',
]
