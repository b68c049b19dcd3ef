"""
Unit tests for the three anomaly detectors.
"""

import math
from dataclasses import replace

import pytest

from snowflake_query_anomalies.detection.detectors import (
    default_detectors,
    detect_complexity,
    detect_table_access,
    detect_time_of_day,
    evaluate,
)
from snowflake_query_anomalies.detection.models import AnomalyType


class TestTimeOfDayDetector:
    """Test suite for the hour-of-day detector."""

    @pytest.mark.parametrize("hour", [2, 3, 12, 22])
    def test_inside_band_not_flagged(self, make_activity, reference_baseline, hour):
        assert detect_time_of_day(make_activity(query_hour=hour), reference_baseline) is None

    @pytest.mark.parametrize("hour", [0, 1, 23])
    def test_outside_band_flagged(self, make_activity, reference_baseline, hour):
        finding = detect_time_of_day(make_activity(query_hour=hour), reference_baseline)

        assert finding is not None
        assert finding.anomaly_type is AnomalyType.TIME_OF_DAY

    def test_detail_names_hour_and_bounds(self, make_activity, reference_baseline):
        """Test the explanation for a query at 23 against bounds 2..22."""
        activity = make_activity(query_hour=23, query_id="late-query")

        finding = detect_time_of_day(activity, reference_baseline)

        assert finding.anomaly_details == "Query executed at hour 23 outside normal hours (2 to 22)"
        assert finding.query_id == "late-query"
        assert finding.user_name == "ALICE"
        assert finding.start_time == activity.record.start_time
        assert finding.query_text == activity.record.query_text

    def test_fractional_bounds(self, make_activity, reference_baseline):
        baseline = replace(reference_baseline, hour_p05=8.95, hour_p95=18.05)

        assert detect_time_of_day(make_activity(query_hour=8), baseline) is not None
        assert detect_time_of_day(make_activity(query_hour=9), baseline) is None
        finding = detect_time_of_day(make_activity(query_hour=19), baseline)
        assert "(8.95 to 18.05)" in finding.anomaly_details


class TestComplexityDetector:
    """Test suite for the query-length detector."""

    @pytest.mark.parametrize("length", [135, 65, 500, 0])
    def test_beyond_three_stddev_flagged(self, make_activity, reference_baseline, length):
        finding = detect_complexity(make_activity(query_length=length), reference_baseline)

        assert finding is not None
        assert finding.anomaly_type is AnomalyType.COMPLEXITY

    @pytest.mark.parametrize("length", [125, 100, 75, 130, 70])
    def test_within_three_stddev_not_flagged(self, make_activity, reference_baseline, length):
        """Test lengths up to and including exactly 3 stddev away."""
        assert detect_complexity(make_activity(query_length=length), reference_baseline) is None

    def test_detail_names_length_mean_and_stddev(self, make_activity, reference_baseline):
        finding = detect_complexity(make_activity(query_length=135), reference_baseline)

        assert finding.anomaly_details == (
            "Query length (135) deviates from normal pattern (avg: 100, stddev: 10)"
        )

    def test_zero_stddev_flags_any_deviation(self, make_activity, reference_baseline):
        """Test the degenerate baseline: every length except the mean is flagged."""
        baseline = replace(reference_baseline, avg_length=50.0, stddev_length=0.0)

        assert detect_complexity(make_activity(query_length=50), baseline) is None
        assert detect_complexity(make_activity(query_length=51), baseline) is not None
        assert detect_complexity(make_activity(query_length=49), baseline) is not None

    def test_custom_multiplier(self, make_activity, reference_baseline):
        activity = make_activity(query_length=125)

        assert detect_complexity(activity, reference_baseline, multiplier=3.0) is None
        assert detect_complexity(activity, reference_baseline, multiplier=2.0) is not None

    def test_undefined_stddev_never_flags(self, make_activity, reference_baseline):
        baseline = replace(reference_baseline, stddev_length=math.nan)

        assert detect_complexity(make_activity(query_length=10_000), baseline) is None


class TestTableAccessDetector:
    """Test suite for the unfamiliar-table detector."""

    def test_known_table_not_flagged(self, make_activity, reference_baseline):
        assert detect_table_access(make_activity(table_accessed="orders"), reference_baseline) is None

    def test_unknown_table_flagged(self, make_activity, reference_baseline):
        finding = detect_table_access(make_activity(table_accessed="shadow_table"), reference_baseline)

        assert finding.anomaly_type is AnomalyType.TABLE_ACCESS
        assert "shadow_table" in finding.anomaly_details
        assert finding.anomaly_details == (
            "Accessed table shadow_table which is not in commonly accessed tables"
        )

    @pytest.mark.parametrize("table", [None, ""])
    def test_missing_table_not_flagged(self, make_activity, reference_baseline, table):
        assert detect_table_access(make_activity(table_accessed=table), reference_baseline) is None

    def test_membership_is_case_sensitive(self, make_activity, reference_baseline):
        assert detect_table_access(make_activity(table_accessed="ORDERS"), reference_baseline) is not None


class TestEvaluate:
    """Test suite for running all detectors on one record."""

    def test_all_detectors_can_fire_independently(self, make_activity, reference_baseline):
        activity = make_activity(query_hour=23, query_length=400, table_accessed="payroll")

        findings = evaluate(activity, reference_baseline, default_detectors())

        assert [f.anomaly_type for f in findings] == [
            AnomalyType.TIME_OF_DAY,
            AnomalyType.COMPLEXITY,
            AnomalyType.TABLE_ACCESS,
        ]
        assert {f.query_id for f in findings} == {activity.record.query_id}

    def test_ordinary_record_has_no_findings(self, make_activity, reference_baseline):
        activity = make_activity(query_hour=12, query_length=100, table_accessed="users")

        assert evaluate(activity, reference_baseline, default_detectors()) == []

    def test_default_detectors_use_multiplier(self, make_activity, reference_baseline):
        activity = make_activity(query_length=125)

        findings = evaluate(activity, reference_baseline, default_detectors(complexity_multiplier=2.0))

        assert [f.anomaly_type for f in findings] == [AnomalyType.COMPLEXITY]
