"""
Result Aggregator - joins activity with baselines and orders the findings.
"""

from collections import Counter
from typing import Dict, Iterable, List, Mapping, Sequence

from ..utils.logger import get_logger
from .detectors import Detector, evaluate
from .features import to_utc
from .models import ActivityRecord, AnomalyFinding, AnomalyType, UserBaseline

logger = get_logger(__name__)


def collect_findings(
    activity: Iterable[ActivityRecord],
    baselines: Mapping[str, UserBaseline],
    detectors: Sequence[Detector]
) -> List[AnomalyFinding]:
    """
    Evaluate every recent record against its user's baseline.

    Users without a baseline are skipped. Findings are not deduplicated.
    """
    findings = []
    for record in activity:
        baseline = baselines.get(record.user_name)
        if baseline is None:
            continue
        findings.extend(evaluate(record, baseline, detectors))
    return findings


def order_findings(findings: Iterable[AnomalyFinding]) -> List[AnomalyFinding]:
    """Sort by user name ascending, then start time descending."""
    # Two stable passes: secondary key first
    by_time = sorted(findings, key=lambda f: to_utc(f.start_time), reverse=True)
    return sorted(by_time, key=lambda f: f.user_name)


def aggregate(
    activity: Iterable[ActivityRecord],
    baselines: Mapping[str, UserBaseline],
    detectors: Sequence[Detector]
) -> List[AnomalyFinding]:
    findings = order_findings(collect_findings(activity, baselines, detectors))
    logger.info(f"Aggregated {len(findings)} findings")
    return findings


def count_by_type(findings: Iterable[AnomalyFinding]) -> Dict[str, int]:
    counts = Counter(f.anomaly_type for f in findings)
    return {anomaly_type.value: counts.get(anomaly_type, 0) for anomaly_type in AnomalyType}
