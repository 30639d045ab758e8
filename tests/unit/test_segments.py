"""
Unit Tests - Order Value Segmentation
"""
from datetime import datetime

import pytest

from thelook.analytics.aggregator import totals
from thelook.analytics.segments import classify_orders, order_value_segments


class TestOrderValueSegments:
    """Tests for order value classification"""

    def test_classify_default_thresholds(self, snapshot):
        """Test order totals and bands with the default thresholds"""
        orders = classify_orders(snapshot)

        assert orders["order_id"].to_list() == [1, 2, 3, 6]
        assert orders["order_total"].to_list() == pytest.approx([150.0, 500.0, 900.0, 70.0])
        assert orders["order_segment"].to_list() == ["Low", "Mid", "High", "Low"]

    def test_thresholds_are_exclusive(self, snapshot):
        """Test an order equal to a threshold falls in the lower band"""
        orders = classify_orders(snapshot, high_threshold=500, mid_threshold=150)
        assert orders["order_segment"].to_list() == ["Low", "Mid", "High", "Low"]

    def test_single_items(self, make_snapshot):
        """Test one order per band"""
        rows = [
            (1, 1, 1, 1, "complete", 100.0, datetime(2023, 1, 1)),
            (2, 2, 1, 1, "complete", 500.0, datetime(2023, 1, 2)),
            (3, 3, 1, 1, "complete", 900.0, datetime(2023, 1, 3)),
        ]
        orders = classify_orders(make_snapshot(rows))
        assert orders["order_segment"].to_list() == ["Low", "Mid", "High"]

    def test_summary(self, snapshot):
        """Test counts and revenue per band"""
        summary = order_value_segments(snapshot)

        assert summary["order_segment"].to_list() == ["High", "Mid", "Low"]
        assert summary["total_orders"].to_list() == [1, 1, 2]
        assert summary["total_revenue"].to_list() == pytest.approx([900.0, 500.0, 220.0])

    def test_summary_reproduces_total(self, snapshot):
        """Test segment revenue sums to the completed revenue"""
        summary = order_value_segments(snapshot)
        assert summary["total_revenue"].sum() == pytest.approx(totals(snapshot)["total_revenue"][0])

    def test_invalid_thresholds(self, snapshot):
        """Test the mid threshold must be below the high threshold"""
        with pytest.raises(ValueError, match="Mid threshold"):
            classify_orders(snapshot, high_threshold=400, mid_threshold=400)

    def test_empty_snapshot(self, empty_snapshot):
        """Test no orders gives no segments"""
        assert order_value_segments(empty_snapshot).is_empty()
