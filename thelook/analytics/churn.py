"""
Churn and Conversion

- Churn: customers whose last completed purchase is older than a threshold,
  measured against the latest order date in the snapshot
- Conversion latency: days from account creation to the first completed
  purchase, bucketed into year-long windows
"""

from typing import List, Optional, Tuple

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot
from .aggregator import days_between, fact_items, safe_ratio

logger = structlog.get_logger(__name__)
settings = get_settings()

# (label, lower bound, upper bound) in days, bounds inclusive
LATENCY_WINDOWS: List[Tuple[str, int, Optional[int]]] = [
    ("Same Day", 0, 0),
    ("1st Year", 1, 365),
    ("2nd Year", 366, 730),
    ("3rd Year", 731, 1095),
    ("4th Year", 1096, 1460),
    ("5th Year+", 1461, None),
]


def _threshold(threshold_days: Optional[int]) -> int:
    threshold = threshold_days if threshold_days is not None else settings.analytics.churn_threshold_days
    if threshold < 0:
        raise ValueError("threshold_days must not be negative")
    return threshold


def customer_last_activity(
    snapshot: WarehouseSnapshot,
    threshold_days: Optional[int] = None,
) -> pl.DataFrame:
    """
    Last completed purchase per customer and the at-risk flag.

    Args:
        snapshot: Warehouse snapshot
        threshold_days: Inactivity above this many days flags the customer

    Returns:
        DataFrame with user_id, full_name, email, country, last_purchase_date,
        days_since_last_order, is_at_risk
    """
    threshold = _threshold(threshold_days)
    reference = snapshot.max_order_date
    columns = [
        "user_id",
        "full_name",
        "email",
        "country",
        "last_purchase_date",
        "days_since_last_order",
        "is_at_risk",
    ]

    facts = fact_items(snapshot, [OrderStatus.COMPLETE], {"users"}).filter(
        pl.col("created_at").is_not_null()
    )
    if reference is None or facts.is_empty():
        return pl.DataFrame(schema={
            "user_id": pl.Int64,
            "full_name": pl.Utf8,
            "email": pl.Utf8,
            "country": pl.Utf8,
            "last_purchase_date": pl.Datetime("us"),
            "days_since_last_order": pl.Int64,
            "is_at_risk": pl.Boolean,
        })

    users = snapshot.user_dimension().select(["user_id", "email"])
    activity = (
        facts.group_by(["user_id", "full_name", "country"])
        .agg(pl.col("created_at").max().alias("last_purchase_date"))
        .join(users, on="user_id", how="left")
        .with_columns(
            days_between(pl.col("last_purchase_date"), pl.lit(reference)).alias("days_since_last_order")
        )
    )

    return activity.with_columns(
        (pl.col("days_since_last_order") > threshold).alias("is_at_risk")
    ).select(columns).sort("user_id")


def at_risk_customers(
    snapshot: WarehouseSnapshot,
    threshold_days: Optional[int] = None,
) -> pl.DataFrame:
    """Customers inactive beyond the threshold, longest inactive first"""
    activity = customer_last_activity(snapshot, threshold_days)
    return (
        activity.filter(pl.col("is_at_risk"))
        .drop("is_at_risk")
        .sort(["days_since_last_order", "user_id"], descending=[True, False])
    )


def count_at_risk(snapshot: WarehouseSnapshot, threshold_days: Optional[int] = None) -> int:
    """Number of at-risk customers"""
    activity = customer_last_activity(snapshot, threshold_days)
    return int(activity["is_at_risk"].sum())


def latency_window_expr(days: pl.Expr) -> pl.Expr:
    """Label of the latency window containing ``days``"""
    expr = None
    for label, low, high in LATENCY_WINDOWS:
        condition = days >= low if high is None else days.is_between(low, high)
        expr = (pl.when(condition) if expr is None else expr.when(condition)).then(pl.lit(label))
    return expr.otherwise(None)


def conversion_latency(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """
    Days between signup and first completed purchase per customer.

    Customers with a missing signup or purchase timestamp, or whose first
    purchase predates their signup, are left out.

    Returns:
        DataFrame with user_id, full_name, country, signed_up_at,
        first_purchase_date, days_until_first_purchase, purchase_speed_segment
    """
    facts = snapshot.items_with_status(OrderStatus.COMPLETE).filter(
        pl.col("created_at").is_not_null()
    )
    first = facts.group_by("user_id").agg(
        pl.col("created_at").min().alias("first_purchase_date")
    )

    users = snapshot.user_dimension().select(["user_id", "full_name", "country", "signed_up_at"])
    latency = first.join(users, on="user_id", how="inner").with_columns(
        days_between(pl.col("signed_up_at"), pl.col("first_purchase_date")).alias("days_until_first_purchase")
    )

    invalid = latency.filter(
        pl.col("days_until_first_purchase").is_null() | (pl.col("days_until_first_purchase") < 0)
    ).height
    if invalid:
        logger.warning("Customers without a valid signup-to-purchase latency left out", users=invalid)

    return (
        latency.filter(pl.col("days_until_first_purchase") >= 0)
        .with_columns(
            latency_window_expr(pl.col("days_until_first_purchase")).alias("purchase_speed_segment")
        )
        .select([
            "user_id",
            "full_name",
            "country",
            "signed_up_at",
            "first_purchase_date",
            "days_until_first_purchase",
            "purchase_speed_segment",
        ])
        .sort("user_id")
    )


def conversion_latency_summary(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Customer count and share per conversion window, largest first"""
    latency = conversion_latency(snapshot)
    total = latency.height

    return (
        latency.group_by("purchase_speed_segment")
        .agg(pl.len().alias("total_users"))
        .with_columns(
            safe_ratio(pl.col("total_users"), pl.lit(total), 100).round(2).alias("percentage_share")
        )
        .sort(["total_users", "purchase_speed_segment"], descending=[True, False])
    )
