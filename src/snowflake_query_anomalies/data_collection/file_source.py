"""
File and in-memory log sources.

`FileQueryLogSource` reads an exported QUERY_HISTORY snapshot (CSV or Parquet)
and applies the window and filters in memory, matching what the Snowflake
source pushes down into SQL.
"""

from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Union

import pandas as pd

from ..detection.models import QueryRecord
from ..utils.logger import get_logger, log_dataframe_info
from .base import LogSourceError, QueryLogFilters, QueryLogSource, in_window
from .query_history import REQUIRED_COLUMNS, record_from_row

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = {'.csv', '.parquet', '.pq'}


class InMemoryQueryLogSource(QueryLogSource):
    """Serves a fixed snapshot of records."""

    def __init__(self, records: Iterable[QueryRecord]):
        self._records = tuple(records)

    def fetch(
        self,
        window_start: datetime,
        window_end: datetime,
        filters: QueryLogFilters
    ) -> List[QueryRecord]:
        return [
            record for record in self._records
            if filters.matches(record) and in_window(record, window_start, window_end)
        ]


class FileQueryLogSource(QueryLogSource):
    """Serves records from a query history export on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_frame(self) -> pd.DataFrame:
        if not self.path.exists():
            raise LogSourceError(f"Query log file not found: {self.path}")

        suffix = self.path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise LogSourceError(
                f"Unsupported query log format '{suffix}', expected one of {sorted(SUPPORTED_SUFFIXES)}"
            )

        try:
            if suffix == '.csv':
                df = pd.read_csv(self.path)
            else:
                df = pd.read_parquet(self.path)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise LogSourceError(f"Failed to read query log {self.path}: {e}") from e

        df.columns = [str(col).strip().upper() for col in df.columns]
        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise LogSourceError(f"Query log {self.path} is missing columns: {missing}")

        log_dataframe_info(df, name=self.path.name, logger=logger)
        return df

    def load(self) -> List[QueryRecord]:
        """Read and normalize the whole file. Every call reads the file again."""
        df = self._read_frame()
        try:
            records = [record_from_row(row) for row in df.to_dict(orient='records')]
        except (KeyError, TypeError, ValueError) as e:
            raise LogSourceError(f"Malformed record in {self.path}: {e}") from e
        logger.info(f"Loaded {len(records)} records from {self.path}")
        return records

    def fetch(
        self,
        window_start: datetime,
        window_end: datetime,
        filters: QueryLogFilters
    ) -> List[QueryRecord]:
        return [
            record for record in self.load()
            if filters.matches(record) and in_window(record, window_start, window_end)
        ]
