"""
Unit Tests - Churn and Conversion
"""
from datetime import datetime

import pytest
import polars as pl

from thelook.analytics.churn import (
    at_risk_customers,
    conversion_latency,
    conversion_latency_summary,
    count_at_risk,
    customer_last_activity,
    latency_window_expr,
)


class TestChurn:
    """Tests for customer inactivity"""

    def test_last_activity(self, snapshot):
        """Test inactivity is measured from the latest order date"""
        activity = customer_last_activity(snapshot, threshold_days=180)

        assert activity["user_id"].to_list() == [1, 2, 4]
        assert activity["days_since_last_order"].to_list() == [204, 183, 0]
        assert activity["is_at_risk"].to_list() == [True, True, False]
        assert activity["email"].to_list() == ["ann@example.com", "bob@example.com", "dan@example.com"]

    def test_at_risk_order(self, snapshot):
        """Test the longest inactive customer comes first"""
        customers = at_risk_customers(snapshot, threshold_days=180)

        assert customers["user_id"].to_list() == [1, 2]
        assert customers["full_name"].to_list() == ["Ann Lee", "Bob Ray"]
        assert "is_at_risk" not in customers.columns

    def test_count_decreases_with_threshold(self, snapshot):
        """Test raising the threshold never adds at-risk customers"""
        counts = [count_at_risk(snapshot, t) for t in [0, 180, 190, 210]]

        assert counts == [2, 2, 1, 0]
        assert counts == sorted(counts, reverse=True)

    def test_threshold_is_exclusive(self, snapshot):
        """Test a customer inactive exactly the threshold is not at risk"""
        assert count_at_risk(snapshot, 183) == 1
        assert count_at_risk(snapshot, 182) == 2

    def test_negative_threshold(self, snapshot):
        """Test negative thresholds are rejected"""
        with pytest.raises(ValueError):
            count_at_risk(snapshot, -1)

    def test_empty_snapshot(self, empty_snapshot):
        """Test no purchases means nobody at risk"""
        assert count_at_risk(empty_snapshot) == 0
        assert at_risk_customers(empty_snapshot).is_empty()


class TestConversionLatency:
    """Tests for signup-to-purchase latency"""

    def test_window_boundaries(self):
        """Test every window edge"""
        df = pl.DataFrame({"days": [0, 1, 365, 366, 730, 731, 1095, 1096, 1460, 1461, 5000, -1]})
        labels = df.select(latency_window_expr(pl.col("days")).alias("label"))["label"].to_list()

        assert labels == [
            "Same Day",
            "1st Year",
            "1st Year",
            "2nd Year",
            "2nd Year",
            "3rd Year",
            "3rd Year",
            "4th Year",
            "4th Year",
            "5th Year+",
            "5th Year+",
            None,
        ]

    def test_latency_per_customer(self, snapshot):
        """Test days from signup to first completed purchase"""
        latency = conversion_latency(snapshot)

        assert latency["user_id"].to_list() == [1, 2, 4]
        assert latency["days_until_first_purchase"].to_list() == [369, 473, 0]
        assert latency["purchase_speed_segment"].to_list() == ["2nd Year", "2nd Year", "Same Day"]

    def test_purchase_before_signup_excluded(self, make_snapshot):
        """Test negative latencies are left out"""
        rows = [
            (1, 1, 1, 1, "complete", 10.0, datetime(2021, 12, 31)),
            (2, 2, 2, 1, "complete", 10.0, datetime(2022, 3, 20)),
        ]
        latency = conversion_latency(make_snapshot(rows))

        assert latency["user_id"].to_list() == [2]
        assert latency["days_until_first_purchase"].to_list() == [5]

    def test_summary(self, snapshot):
        """Test window shares"""
        summary = conversion_latency_summary(snapshot)

        assert summary["purchase_speed_segment"].to_list() == ["2nd Year", "Same Day"]
        assert summary["total_users"].to_list() == [2, 1]
        assert summary["percentage_share"].to_list() == pytest.approx([66.67, 33.33])
