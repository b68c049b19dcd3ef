"""
Result sinks for ordered anomaly findings.

Sinks only encode and deliver; they never reorder or filter the findings
they are given.
"""

import hashlib
import sys
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Sequence, TextIO, Union

import pandas as pd

from ..detection.models import AnomalyFinding
from ..utils.logger import get_logger

logger = get_logger(__name__)

FINDING_COLUMNS = [
    'user_name',
    'query_id',
    'start_time',
    'query_text',
    'anomaly_type',
    'anomaly_details',
    'warehouse_name',
]

FILE_FORMATS = ('csv', 'json', 'parquet')


def findings_to_dataframe(findings: Sequence[AnomalyFinding]) -> pd.DataFrame:
    """Tabular view of findings, preserving their order."""
    df = pd.DataFrame([f.to_dict() for f in findings], columns=FINDING_COLUMNS)
    df['start_time'] = pd.to_datetime(df['start_time'], utc=True)
    return df


class ResultSink(ABC):
    """Delivers the findings of one run."""

    @abstractmethod
    def emit(self, findings: Sequence[AnomalyFinding]) -> Dict[str, Any]:
        """Deliver findings and return delivery metadata."""
        pass


class ConsoleSink(ResultSink):
    """Prints findings as a text table."""

    def __init__(self, stream: TextIO = None, max_query_chars: int = 60):
        self.stream = stream or sys.stdout
        self.max_query_chars = max_query_chars

    def emit(self, findings: Sequence[AnomalyFinding]) -> Dict[str, Any]:
        if not findings:
            print("No anomalous queries found.", file=self.stream)
            return {'rows': 0}

        df = findings_to_dataframe(findings).drop(columns=['warehouse_name'])
        df['query_text'] = df['query_text'].map(self._shorten)
        print(df.to_string(index=False), file=self.stream)
        return {'rows': len(df)}

    def _shorten(self, text: str) -> str:
        text = " ".join(text.split())
        if len(text) <= self.max_query_chars:
            return text
        return text[: self.max_query_chars - 3] + "..."


class FileSink(ResultSink):
    """Writes findings to CSV, JSON (records) or Parquet."""

    def __init__(self, path: Union[str, Path], format: str = None):
        self.path = Path(path)
        self.format = (format or self.path.suffix.lstrip('.')).lower()
        if self.format not in FILE_FORMATS:
            raise ValueError(f"Invalid format: {self.format}. Must be one of {list(FILE_FORMATS)}")

    def emit(self, findings: Sequence[AnomalyFinding]) -> Dict[str, Any]:
        df = findings_to_dataframe(findings)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if self.format == 'csv':
            df.to_csv(self.path, index=False)
        elif self.format == 'json':
            df.to_json(self.path, orient='records', date_format='iso', indent=2)
        else:
            df.to_parquet(self.path, engine='pyarrow', compression='snappy', index=False)

        metadata = {
            'file_path': str(self.path),
            'format': self.format,
            'rows': len(df),
            'file_size': self.path.stat().st_size,
            'checksum': self._calculate_checksum(self.path),
            'created_at': datetime.now(timezone.utc).isoformat(),
        }
        logger.info(f"Wrote {len(df)} findings to {self.path} ({metadata['file_size']} bytes)")
        return metadata

    @staticmethod
    def _calculate_checksum(file_path: Path) -> str:
        sha256 = hashlib.sha256()
        with open(file_path, 'rb') as f:
            for chunk in iter(lambda: f.read(4096), b""):
                sha256.update(chunk)
        return sha256.hexdigest()


def create_sink(format: str = "table", path: Union[str, Path, None] = None) -> ResultSink:
    if format == "table":
        return ConsoleSink()
    if not path:
        raise ValueError(f"An output path is required for format '{format}'")
    return FileSink(path, format=format)
