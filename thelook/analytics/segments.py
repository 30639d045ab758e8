"""
Order Value Segmentation

Classifies every completed order (summed over its items) as Low, Mid or
High value using fixed thresholds, and rolls revenue up per segment.
"""

from enum import Enum
from typing import Optional, Tuple

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot

logger = structlog.get_logger(__name__)
settings = get_settings()


class OrderValueSegment(str, Enum):
    """Order value bands"""
    LOW = "Low"
    MID = "Mid"
    HIGH = "High"


def _thresholds(
    high_threshold: Optional[float],
    mid_threshold: Optional[float],
) -> Tuple[float, float]:
    high = high_threshold if high_threshold is not None else settings.analytics.order_value_high_threshold
    mid = mid_threshold if mid_threshold is not None else settings.analytics.order_value_mid_threshold
    if mid >= high:
        raise ValueError(f"Mid threshold ({mid}) must be lower than high threshold ({high})")
    return high, mid


def classify_orders(
    snapshot: WarehouseSnapshot,
    high_threshold: Optional[float] = None,
    mid_threshold: Optional[float] = None,
) -> pl.DataFrame:
    """
    Order total and value segment for every completed order.

    An order is High when its total is strictly above ``high_threshold``,
    Mid when strictly above ``mid_threshold``, Low otherwise.

    Returns:
        DataFrame with order_id, order_total, order_segment
    """
    high, mid = _thresholds(high_threshold, mid_threshold)

    orders = (
        snapshot.items_with_status(OrderStatus.COMPLETE)
        .group_by("order_id")
        .agg(pl.col("sale_price").sum().alias("order_total"))
    )

    return orders.with_columns(
        pl.when(pl.col("order_total") > high)
        .then(pl.lit(OrderValueSegment.HIGH.value))
        .when(pl.col("order_total") > mid)
        .then(pl.lit(OrderValueSegment.MID.value))
        .otherwise(pl.lit(OrderValueSegment.LOW.value))
        .alias("order_segment")
    ).sort("order_id")


def order_value_segments(
    snapshot: WarehouseSnapshot,
    high_threshold: Optional[float] = None,
    mid_threshold: Optional[float] = None,
) -> pl.DataFrame:
    """
    Order count and revenue per order value segment.

    Returns:
        DataFrame with order_segment, total_orders, total_revenue
        (segments without orders are omitted)
    """
    orders = classify_orders(snapshot, high_threshold, mid_threshold)

    summary = (
        orders.group_by("order_segment")
        .agg([
            pl.len().alias("total_orders"),
            pl.col("order_total").sum().round(2).alias("total_revenue"),
        ])
        .sort("total_revenue", descending=True)
    )

    logger.info("Order value segments calculated", orders=orders.height)
    return summary
