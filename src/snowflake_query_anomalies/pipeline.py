"""
Anomaly Detection Pipeline - one batch run from log source to ordered findings.

A run fetches two snapshots from the log source (the historical window used
for baselines and the recent window under evaluation), builds per-user
baselines, extracts activity features, runs the detectors and orders the
findings. Nothing is kept between runs: every call to `run` recomputes
baselines from the snapshots it fetched.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .config.settings import DetectionConfig
from .data_collection.base import QueryLogFilters, QueryLogSource
from .detection.activity import ActivityExtractor
from .detection.aggregator import aggregate, count_by_type
from .detection.baseline import BaselineBuilder
from .detection.detectors import default_detectors
from .detection.features import to_utc
from .detection.models import AnomalyFinding, UserBaseline
from .utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DetectionWindows:
    """Half-open time bounds of one run."""
    as_of: datetime
    historical_start: datetime
    historical_end: datetime
    recent_start: datetime


@dataclass
class DetectionResult:
    """Ordered findings of one run plus run statistics."""
    findings: List[AnomalyFinding]
    windows: DetectionWindows
    baselines: Dict[str, UserBaseline] = field(default_factory=dict)
    historical_records: int = 0
    recent_records: int = 0
    evaluated_records: int = 0

    @property
    def counts_by_type(self) -> Dict[str, int]:
        return count_by_type(self.findings)

    def summary(self) -> Dict[str, Any]:
        return {
            'as_of': self.windows.as_of.isoformat(),
            'historical_window_start': self.windows.historical_start.isoformat(),
            'historical_window_end': self.windows.historical_end.isoformat(),
            'recent_window_start': self.windows.recent_start.isoformat(),
            'historical_records': self.historical_records,
            'recent_records': self.recent_records,
            'users_with_baseline': len(self.baselines),
            'evaluated_records': self.evaluated_records,
            'total_findings': len(self.findings),
            'findings_by_type': self.counts_by_type,
        }


class AnomalyDetectionPipeline:
    """Runs baseline building and anomaly detection over a log source."""

    def __init__(
        self,
        source: QueryLogSource,
        config: Optional[DetectionConfig] = None,
        filters: Optional[QueryLogFilters] = None
    ):
        self.source = source
        self.config = config or DetectionConfig()
        self.filters = filters or QueryLogFilters()

        self.baseline_builder = BaselineBuilder(
            reference_timezone=self.config.reference_timezone,
            min_activity=self.config.min_activity,
            hour_percentiles=self.config.hour_percentiles,
        )
        self.activity_extractor = ActivityExtractor(self.config.reference_timezone)
        self.detectors = default_detectors(self.config.complexity_multiplier)

    def windows(self, as_of: Optional[datetime] = None) -> DetectionWindows:
        as_of = to_utc(as_of) if as_of else datetime.now(timezone.utc)
        recent_start = as_of - timedelta(hours=self.config.recent_window_hours)
        return DetectionWindows(
            as_of=as_of,
            historical_start=as_of - timedelta(days=self.config.historical_window_days),
            historical_end=as_of if self.config.include_recent_in_baseline else recent_start,
            recent_start=recent_start,
        )

    def run(self, as_of: Optional[datetime] = None) -> DetectionResult:
        """
        Execute one detection run.

        Args:
            as_of: End of both windows (default: now, UTC). Passing the same
                value against the same source snapshot yields the same result.

        Returns:
            DetectionResult with findings ordered by user name, then newest first
        """
        windows = self.windows(as_of)
        logger.info(
            f"Starting anomaly detection as of {windows.as_of.isoformat()} "
            f"(timezone={self.config.reference_timezone}, min_activity={self.config.min_activity}, "
            f"multiplier={self.config.complexity_multiplier})"
        )

        with PerformanceLogger("fetch historical window", logger):
            historical = self.source.fetch(windows.historical_start, windows.historical_end, self.filters)
        with PerformanceLogger("fetch recent window", logger):
            recent = self.source.fetch(windows.recent_start, windows.as_of, self.filters)

        with PerformanceLogger("build baselines", logger):
            baselines = self.baseline_builder.build(historical)
        activity = self.activity_extractor.extract(recent)

        evaluated = sum(1 for record in activity if record.user_name in baselines)
        with PerformanceLogger("detect anomalies", logger):
            findings = aggregate(activity, baselines, self.detectors)

        result = DetectionResult(
            findings=findings,
            windows=windows,
            baselines=baselines,
            historical_records=len(historical),
            recent_records=len(recent),
            evaluated_records=evaluated,
        )
        logger.info(f"Detection complete: {result.summary()}")
        return result
