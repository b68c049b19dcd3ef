"""
Activity Extractor - detection features for recent-window queries.
"""

from typing import Iterable, List

from ..utils.logger import get_logger
from .features import extract_table, local_hour, query_length
from .models import ActivityRecord, QueryRecord

logger = get_logger(__name__)


class ActivityExtractor:
    """Derives local hour, text length and accessed table per recent query."""

    def __init__(self, reference_timezone: str):
        self.reference_timezone = reference_timezone

    def extract_one(self, record: QueryRecord) -> ActivityRecord:
        return ActivityRecord(
            record=record,
            query_hour=local_hour(record.start_time, self.reference_timezone),
            query_length=query_length(record.query_text),
            table_accessed=extract_table(record.query_text),
        )

    def extract(self, records: Iterable[QueryRecord]) -> List[ActivityRecord]:
        activity = [self.extract_one(record) for record in records]
        logger.info(f"Extracted features for {len(activity)} recent queries")
        return activity
