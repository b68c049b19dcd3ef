"""
Query History Source - reads SNOWFLAKE.ACCOUNT_USAGE.QUERY_HISTORY.

Window bounds and filter values are bound as query parameters; rows are
normalized into QueryRecord values with UTC start times.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from ..connectors.snowflake_client import SnowflakeClient
from ..detection.features import to_utc
from ..detection.models import QueryRecord
from ..utils.logger import get_logger
from .base import QueryLogFilters, QueryLogSource

logger = get_logger(__name__)

QUERY_HISTORY_VIEW = "SNOWFLAKE.ACCOUNT_USAGE.QUERY_HISTORY"

QUERY_HISTORY_COLUMNS = [
    'QUERY_ID',
    'USER_NAME',
    'START_TIME',
    'QUERY_TEXT',
    'EXECUTION_STATUS',
    'QUERY_TYPE',
    'WAREHOUSE_NAME',
    'BYTES_SCANNED',
    'EXECUTION_TIME',
]

REQUIRED_COLUMNS = ['QUERY_ID', 'USER_NAME', 'START_TIME', 'QUERY_TEXT', 'EXECUTION_STATUS', 'QUERY_TYPE']


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def _optional_str(value: Any) -> Optional[str]:
    return None if _is_missing(value) else str(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if _is_missing(value) else int(value)


def _utc_datetime(value: Any) -> datetime:
    if isinstance(value, datetime) and not isinstance(value, pd.Timestamp):
        return to_utc(value)
    timestamp = pd.Timestamp(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.tz_localize('UTC')
    return timestamp.tz_convert('UTC').to_pydatetime()


def record_from_row(row: Dict[str, Any]) -> QueryRecord:
    """Build a QueryRecord from a QUERY_HISTORY row keyed by upper-case column name."""
    return QueryRecord(
        user_name=str(row['USER_NAME']),
        query_id=str(row['QUERY_ID']),
        start_time=_utc_datetime(row['START_TIME']),
        # LENGTH(NULL) has no meaning here; treat missing text as empty
        query_text=_optional_str(row.get('QUERY_TEXT')) or "",
        execution_status=str(row['EXECUTION_STATUS']),
        query_type=str(row['QUERY_TYPE']),
        warehouse_name=_optional_str(row.get('WAREHOUSE_NAME')),
        bytes_scanned=_optional_int(row.get('BYTES_SCANNED')),
        execution_time=_optional_int(row.get('EXECUTION_TIME')),
    )


class SnowflakeQueryHistorySource(QueryLogSource):
    """Log source backed by the account usage query history view."""

    def __init__(self, client: SnowflakeClient, view: str = QUERY_HISTORY_VIEW):
        self.client = client
        self.view = view

    def build_query(
        self,
        window_start: datetime,
        window_end: datetime,
        filters: QueryLogFilters
    ) -> Tuple[str, Dict[str, Any]]:
        params: Dict[str, Any] = {
            'window_start': to_utc(window_start).isoformat(),
            'window_end': to_utc(window_end).isoformat(),
            'query_type': filters.query_type,
            'execution_status': filters.execution_status,
        }

        excluded_clause = ""
        excluded = sorted(filters.excluded_users)
        if excluded:
            placeholders = []
            for i, user_name in enumerate(excluded):
                params[f'excluded_{i}'] = user_name
                placeholders.append(f"%(excluded_{i})s")
            excluded_clause = f"\n          AND USER_NAME NOT IN ({', '.join(placeholders)})"

        query = f"""
        SELECT
            {', '.join(QUERY_HISTORY_COLUMNS)}
        FROM {self.view}
        WHERE START_TIME >= TO_TIMESTAMP_LTZ(%(window_start)s)
          AND START_TIME < TO_TIMESTAMP_LTZ(%(window_end)s)
          AND QUERY_TYPE = %(query_type)s
          AND EXECUTION_STATUS = %(execution_status)s{excluded_clause}
        ORDER BY START_TIME
        """
        return query, params

    def fetch(
        self,
        window_start: datetime,
        window_end: datetime,
        filters: QueryLogFilters
    ) -> List[QueryRecord]:
        query, params = self.build_query(window_start, window_end, filters)
        logger.info(f"Fetching query history from {params['window_start']} to {params['window_end']}")

        rows = self.client.execute_query(query, params)
        records = [record_from_row(row) for row in rows]

        logger.info(f"Fetched {len(records)} query history records")
        return records
