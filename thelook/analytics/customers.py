"""
Customer Behavior Reports

Demographics, loyalty, lifetime value and acquisition trends.
Churn and conversion live in :mod:`thelook.analytics.churn`, RFM in
:mod:`thelook.analytics.rfm`.
"""

from typing import Optional

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot
from .aggregator import fact_items, safe_ratio

logger = structlog.get_logger(__name__)
settings = get_settings()

REPEAT_BUYER = "Repeat Buyer (Loyal)"
ONE_TIME_BUYER = "One-time Buyer"


def _share_of(total: int) -> pl.Expr:
    return safe_ratio(pl.col("total_users"), pl.lit(total), 100).round(2).alias("percentage_share")


def gender_distribution(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """User count and share per gender"""
    users = snapshot.users
    return (
        users.group_by("gender")
        .agg(pl.len().alias("total_users"))
        .with_columns(_share_of(users.height))
        .sort(["total_users", "gender"], descending=[True, False], nulls_last=True)
    )


def top_countries_by_users(snapshot: WarehouseSnapshot, limit: Optional[int] = None) -> pl.DataFrame:
    """Countries with the most registered users"""
    limit = limit if limit is not None else settings.analytics.top_n
    users = snapshot.users
    return (
        users.group_by("country")
        .agg(pl.len().alias("total_users"))
        .with_columns(_share_of(users.height))
        .sort(["total_users", "country"], descending=[True, False], nulls_last=True)
        .head(limit)
    )


def repeat_buyer_share(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """
    One-time versus repeat buyers among customers with completed orders.

    A repeat buyer has more than one distinct completed order.
    """
    per_user = (
        snapshot.items_with_status(OrderStatus.COMPLETE)
        .group_by("user_id")
        .agg(pl.col("order_id").n_unique().alias("order_count"))
    )

    return (
        per_user.with_columns(
            pl.when(pl.col("order_count") > 1)
            .then(pl.lit(REPEAT_BUYER))
            .otherwise(pl.lit(ONE_TIME_BUYER))
            .alias("customer_type")
        )
        .group_by("customer_type")
        .agg(pl.len().alias("total_users"))
        .with_columns(_share_of(per_user.height))
        .sort("customer_type")
    )


def top_spenders(snapshot: WarehouseSnapshot, limit: Optional[int] = None) -> pl.DataFrame:
    """Customers with the highest lifetime value over completed items"""
    limit = limit if limit is not None else settings.analytics.top_n
    facts = fact_items(snapshot, [OrderStatus.COMPLETE], {"users"})
    return (
        facts.group_by(["user_id", "full_name", "country"])
        .agg([
            pl.col("order_id").n_unique().alias("total_orders"),
            pl.col("sale_price").sum().round(2).alias("lifetime_value"),
        ])
        .sort(["lifetime_value", "user_id"], descending=[True, False])
        .head(limit)
    )


def signup_growth(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """
    New users per signup month and the change from the previous month.

    Users without a signup timestamp are left out. The first month has a
    null change.
    """
    users = snapshot.users.filter(pl.col("created_at").is_not_null())
    return (
        users.group_by([
            pl.col("created_at").dt.year().alias("signup_year"),
            pl.col("created_at").dt.month().alias("signup_month"),
        ])
        .agg(pl.len().alias("new_users_count"))
        .sort(["signup_year", "signup_month"])
        .with_columns(
            pl.col("new_users_count").cast(pl.Int64).diff().alias("growth_from_prev_month")
        )
    )
