"""
Anomaly detectors.

Each detector is a pure function of a recent activity record and its user's
baseline, returning a finding or None.
"""

from functools import partial
from typing import Callable, List, Optional, Sequence

from .models import ActivityRecord, AnomalyFinding, AnomalyType, UserBaseline

Detector = Callable[[ActivityRecord, UserBaseline], Optional[AnomalyFinding]]

DEFAULT_COMPLEXITY_MULTIPLIER = 3.0


def _fmt(value: float) -> str:
    """Render a statistic without trailing zeros (2.0 -> '2', 21.55 -> '21.55')."""
    return f"{value:g}"


def _finding(activity: ActivityRecord, anomaly_type: AnomalyType, details: str) -> AnomalyFinding:
    record = activity.record
    return AnomalyFinding(
        user_name=record.user_name,
        query_id=record.query_id,
        start_time=record.start_time,
        query_text=record.query_text,
        anomaly_type=anomaly_type,
        anomaly_details=details,
        warehouse_name=record.warehouse_name,
    )


def detect_time_of_day(activity: ActivityRecord, baseline: UserBaseline) -> Optional[AnomalyFinding]:
    """Flag queries run outside the user's usual hour band."""
    if baseline.hour_p05 <= activity.query_hour <= baseline.hour_p95:
        return None
    return _finding(
        activity,
        AnomalyType.TIME_OF_DAY,
        f"Query executed at hour {activity.query_hour} outside normal hours "
        f"({_fmt(baseline.hour_p05)} to {_fmt(baseline.hour_p95)})",
    )


def detect_complexity(
    activity: ActivityRecord,
    baseline: UserBaseline,
    multiplier: float = DEFAULT_COMPLEXITY_MULTIPLIER
) -> Optional[AnomalyFinding]:
    """
    Flag queries whose text length is more than `multiplier` standard
    deviations from the user's mean. A zero stddev flags any deviation.
    """
    deviation = abs(activity.query_length - baseline.avg_length)
    if not deviation > multiplier * baseline.stddev_length:
        return None
    return _finding(
        activity,
        AnomalyType.COMPLEXITY,
        f"Query length ({activity.query_length}) deviates from normal pattern "
        f"(avg: {_fmt(baseline.avg_length)}, stddev: {_fmt(baseline.stddev_length)})",
    )


def detect_table_access(activity: ActivityRecord, baseline: UserBaseline) -> Optional[AnomalyFinding]:
    """Flag reads from a table the user never read in the historical window."""
    table = activity.table_accessed
    if not table or table in baseline.common_tables:
        return None
    return _finding(
        activity,
        AnomalyType.TABLE_ACCESS,
        f"Accessed table {table} which is not in commonly accessed tables",
    )


def default_detectors(complexity_multiplier: float = DEFAULT_COMPLEXITY_MULTIPLIER) -> List[Detector]:
    return [
        detect_time_of_day,
        partial(detect_complexity, multiplier=complexity_multiplier),
        detect_table_access,
    ]


def evaluate(
    activity: ActivityRecord,
    baseline: UserBaseline,
    detectors: Sequence[Detector]
) -> List[AnomalyFinding]:
    """Run every detector on one record; each one that triggers adds a finding."""
    findings = []
    for detector in detectors:
        finding = detector(activity, baseline)
        if finding is not None:
            findings.append(finding)
    return findings
