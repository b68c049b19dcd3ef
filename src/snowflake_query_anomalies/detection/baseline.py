"""
Baseline Builder - per-user statistical profiles from the historical window.

For each user with enough history the profile holds the 5th/95th percentile
of the local hour of day (linear interpolation, the same definition as SQL
PERCENTILE_CONT), the mean and sample standard deviation of query text length,
and the distinct set of tables the user read from.
"""

import math
from typing import Dict, Iterable, Tuple

import numpy as np
import pandas as pd

from ..utils.logger import get_logger
from .features import extract_table, local_hours, query_length, to_utc
from .models import QueryRecord, UserBaseline

logger = get_logger(__name__)


class BaselineBuilder:
    """Builds `user_name -> UserBaseline` from historical query records."""

    def __init__(
        self,
        reference_timezone: str,
        min_activity: int = 20,
        hour_percentiles: Tuple[float, float] = (5.0, 95.0)
    ):
        if min_activity < 1:
            raise ValueError("min_activity must be at least 1")
        self.reference_timezone = reference_timezone
        self.min_activity = min_activity
        self.hour_percentiles = hour_percentiles

    def build(self, records: Iterable[QueryRecord]) -> Dict[str, UserBaseline]:
        df = self._to_frame(records)
        if df.empty:
            logger.info("No historical records, no baselines built")
            return {}

        counts = df.groupby('user_name').size()
        qualifying = counts[counts >= self.min_activity]
        below = counts[counts < self.min_activity]
        if not below.empty:
            logger.debug(
                f"{len(below)} users below {self.min_activity} historical queries: "
                f"{sorted(below.index)}"
            )

        baselines = {}
        for user_name, group in df[df['user_name'].isin(qualifying.index)].groupby('user_name'):
            baselines[user_name] = self._profile(user_name, group)

        logger.info(
            f"Built {len(baselines)} baselines from {len(df)} historical records "
            f"({len(counts)} users)"
        )
        return baselines

    def _to_frame(self, records: Iterable[QueryRecord]) -> pd.DataFrame:
        rows = [
            {
                'user_name': r.user_name,
                'start_time': to_utc(r.start_time),
                'query_text': r.query_text,
            }
            for r in records
        ]
        if not rows:
            return pd.DataFrame(columns=['user_name', 'start_time', 'query_text'])

        df = pd.DataFrame(rows)
        df['query_hour'] = local_hours(df['start_time'], self.reference_timezone)
        df['query_length'] = df['query_text'].map(query_length)
        df['table_accessed'] = df['query_text'].map(extract_table)
        return df

    def _profile(self, user_name: str, group: pd.DataFrame) -> UserBaseline:
        hours = group['query_hour'].to_numpy(dtype=float)
        hour_low, hour_high = np.percentile(hours, list(self.hour_percentiles))

        lengths = group['query_length'].to_numpy(dtype=float)
        # Sample stddev is undefined for a single query
        stddev = float(np.std(lengths, ddof=1)) if len(lengths) > 1 else math.nan

        tables = frozenset(t for t in group['table_accessed'] if t)

        return UserBaseline(
            user_name=user_name,
            record_count=len(group),
            hour_p05=float(hour_low),
            hour_p95=float(hour_high),
            avg_length=float(lengths.mean()),
            stddev_length=stddev,
            common_tables=tables,
        )
