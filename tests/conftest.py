"""
Pytest configuration and fixtures for the query anomaly detection tests.

Provides record factories, reference baselines and a small query history
snapshot shared across unit and integration tests.
"""

import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from snowflake_query_anomalies.config.settings import DetectionConfig  # noqa: E402
from snowflake_query_anomalies.detection.models import (  # noqa: E402
    ActivityRecord,
    QueryRecord,
    UserBaseline,
)

UTC = timezone.utc
AS_OF = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_record():
    """Factory for QueryRecord values with sensible defaults."""
    counter = itertools.count(1)

    def _make(
        user_name="ALICE",
        start_time=None,
        query_text="SELECT * FROM orders",
        query_id=None,
        execution_status="SUCCESS",
        query_type="SELECT",
        warehouse_name="ANALYTICS_WH",
    ):
        return QueryRecord(
            user_name=user_name,
            query_id=query_id or f"q-{next(counter):04d}",
            start_time=start_time or AS_OF - timedelta(hours=1),
            query_text=query_text,
            execution_status=execution_status,
            query_type=query_type,
            warehouse_name=warehouse_name,
        )

    return _make


@pytest.fixture
def make_activity(make_record):
    """Factory for ActivityRecord values with explicit features."""

    def _make(query_hour=12, query_length=100, table_accessed="orders", **record_kwargs):
        return ActivityRecord(
            record=make_record(**record_kwargs),
            query_hour=query_hour,
            query_length=query_length,
            table_accessed=table_accessed,
        )

    return _make


@pytest.fixture
def reference_baseline():
    """Baseline with hour band 2..22, length 100 +/- 10 and two known tables."""
    return UserBaseline(
        user_name="ALICE",
        record_count=20,
        hour_p05=2.0,
        hour_p95=22.0,
        avg_length=100.0,
        stddev_length=10.0,
        common_tables=frozenset({"orders", "users"}),
    )


@pytest.fixture
def utc_config():
    """Detection config with UTC as reference timezone, so local hour == UTC hour."""
    return DetectionConfig(reference_timezone="UTC")


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def query_history_snapshot(make_record):
    """
    Query history around AS_OF (2024-03-01 12:00 UTC):

    - ALICE: 24 historical queries between 09:00 and 17:00 on `orders`, then
      one ordinary and one unusual recent query (03:00, long, `payroll`).
    - BOB: only 19 historical queries, plus an unusual recent query.
    - CAROL: recent activity only.
    - DAVE: 20 identical historical queries at 14:00, two recent ones at
      11:00 and 07:00.
    - SYSTEM: plenty of history but excluded by the default filters.
    - A failed ALICE query in the recent window, excluded by status.
    """
    records = []
    alice_base = "SELECT id, amount FROM orders WHERE id = 1"

    for i in range(24):
        day = AS_OF.replace(hour=0) - timedelta(days=2 + i)
        records.append(make_record(
            user_name="ALICE",
            start_time=day + timedelta(hours=9 + i % 9),
            query_text=alice_base + " " * (i % 5),
        ))
    for i in range(19):
        day = AS_OF.replace(hour=0) - timedelta(days=2 + i)
        records.append(make_record(
            user_name="BOB",
            start_time=day + timedelta(hours=10),
            query_text="SELECT * FROM sales",
        ))
    for i in range(20):
        day = AS_OF.replace(hour=0) - timedelta(days=2 + i)
        records.append(make_record(
            user_name="DAVE",
            start_time=day + timedelta(hours=14),
            query_text="SELECT * FROM events",
        ))
    for i in range(25):
        day = AS_OF.replace(hour=0) - timedelta(days=2 + i)
        records.append(make_record(
            user_name="SYSTEM",
            start_time=day + timedelta(hours=1),
            query_text="SELECT * FROM metadata",
        ))

    unusual_text = "SELECT * FROM payroll WHERE " + " OR ".join(
        f"employee_id = {n}" for n in range(20)
    )
    records.extend([
        make_record(user_name="ALICE", query_id="alice-normal",
                    start_time=AS_OF - timedelta(hours=2), query_text=alice_base + "  "),
        make_record(user_name="ALICE", query_id="alice-unusual",
                    start_time=AS_OF.replace(hour=3), query_text=unusual_text),
        make_record(user_name="ALICE", query_id="alice-failed", execution_status="FAIL",
                    start_time=AS_OF - timedelta(hours=3), query_text="SELECT * FROM secrets"),
        make_record(user_name="BOB", query_id="bob-unusual",
                    start_time=AS_OF.replace(hour=2), query_text=unusual_text),
        make_record(user_name="CAROL", query_id="carol-1",
                    start_time=AS_OF - timedelta(hours=4), query_text="SELECT * FROM hr"),
        make_record(user_name="DAVE", query_id="dave-late",
                    start_time=AS_OF - timedelta(hours=1), query_text="SELECT * FROM events"),
        make_record(user_name="DAVE", query_id="dave-early",
                    start_time=AS_OF - timedelta(hours=5), query_text="SELECT * FROM events"),
        make_record(user_name="SYSTEM", query_id="system-1",
                    start_time=AS_OF - timedelta(hours=6), query_text="SELECT * FROM vault"),
    ])
    return records
