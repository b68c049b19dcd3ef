"""
Feature helpers shared by the baseline builder and the activity extractor.
"""

import re
from datetime import datetime, timezone
from typing import Optional

import pandas as pd

TABLE_MARKER = "FROM "

_LEADING_TOKEN = re.compile(r"\S+")


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_hour(start_time: datetime, reference_timezone: str) -> int:
    """Hour of day of a UTC instant in the reference timezone."""
    return int(pd.Timestamp(to_utc(start_time)).tz_convert(reference_timezone).hour)


def local_hours(start_times: pd.Series, reference_timezone: str) -> pd.Series:
    """Vectorized `local_hour` over a series of UTC instants."""
    return pd.to_datetime(start_times, utc=True).dt.tz_convert(reference_timezone).dt.hour


def query_length(query_text: Optional[str]) -> int:
    return len(query_text or "")


def extract_table(query_text: Optional[str]) -> Optional[str]:
    """
    Candidate table name of a query.

    Takes the token right after the first case-sensitive "FROM " and stops at
    the next whitespace. This is a heuristic: joins, subqueries, aliases and
    lower-case keywords are not understood.
    """
    if not query_text:
        return None
    _, marker, remainder = query_text.partition(TABLE_MARKER)
    if not marker:
        return None
    match = _LEADING_TOKEN.match(remainder)
    return match.group(0) if match else None
