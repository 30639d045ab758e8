"""
Sales and Revenue Reports

Financial health of the business:
- Executive summary (revenue, gross profit, margin, order status volumes)
- Growth trends and seasonality (year, month, weekday, running totals)
- Order economics (average order value, basket size)
- Channel, category and geographic performance
- Returns (lost revenue, return rates)
"""

from typing import Optional

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot
from .aggregator import GroupingKey, aggregate, fact_items, safe_ratio, totals

logger = structlog.get_logger(__name__)
settings = get_settings()


def financial_summary(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Total revenue, gross profit and gross profit margin of completed items"""
    return totals(snapshot, with_profit=True).select([
        "total_revenue",
        "gross_profit",
        "gross_profit_margin_pct",
    ])


def order_status_summary(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Distinct orders per item status (successful, returned, cancelled)"""
    items = snapshot.order_items
    status = pl.col("status").str.to_lowercase()

    def orders_with(value: OrderStatus) -> pl.Expr:
        return pl.col("order_id").filter(status == value.value).n_unique()

    return items.select([
        orders_with(OrderStatus.COMPLETE).alias("successful_orders"),
        orders_with(OrderStatus.RETURNED).alias("returned_orders"),
        orders_with(OrderStatus.CANCELLED).alias("cancelled_orders"),
    ])


def revenue_by_year(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Orders and revenue per calendar year, highest revenue first"""
    return (
        aggregate(snapshot, GroupingKey.YEAR)
        .select(["sales_year", "total_orders", "total_revenue"])
        .sort("total_revenue", descending=True)
    )


def revenue_by_month(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Orders and revenue per calendar month across all years (seasonality)"""
    return (
        aggregate(snapshot, GroupingKey.MONTH)
        .select(["month_number", "sales_month", "total_orders", "total_revenue"])
        .sort("month_number")
    )


def revenue_by_weekday(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Orders and revenue per day of week, best day first"""
    return (
        aggregate(snapshot, GroupingKey.WEEKDAY)
        .select(["order_day", "total_orders", "total_revenue"])
        .sort("total_revenue", descending=True)
    )


def monthly_revenue_trend(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Orders and revenue per year and month in chronological order"""
    return (
        aggregate(snapshot, GroupingKey.YEAR_MONTH)
        .select(["sales_year", "month_number", "sales_month", "total_orders", "total_revenue"])
        .sort(["sales_year", "month_number"])
    )


def running_total_revenue(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Monthly revenue with a running total that restarts every year"""
    monthly = (
        aggregate(snapshot, GroupingKey.YEAR_MONTH)
        .select([
            "sales_year",
            "month_number",
            pl.col("total_revenue").alias("monthly_revenue"),
        ])
        .sort(["sales_year", "month_number"])
    )
    return monthly.with_columns(
        pl.col("monthly_revenue").cum_sum().over("sales_year").round(2).alias("running_total_revenue")
    )


def average_order_value(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Revenue per distinct completed order (null when there are no orders)"""
    return totals(snapshot).select(
        safe_ratio("total_revenue", "total_orders").round(2).alias("average_order_value")
    )


def average_basket_size(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Completed items per distinct completed order"""
    return totals(snapshot).select(
        safe_ratio("items_sold", "total_orders").round(2).alias("average_basket_size")
    )


def traffic_source_performance(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Users, orders, revenue and average order value per acquisition channel"""
    facts = fact_items(snapshot, [OrderStatus.COMPLETE], {"users"})
    return (
        facts.group_by("traffic_source")
        .agg([
            pl.col("user_id").n_unique().alias("total_users"),
            pl.col("order_id").n_unique().alias("total_orders"),
            pl.col("sale_price").sum().round(2).alias("total_revenue"),
        ])
        .with_columns(
            safe_ratio("total_revenue", "total_orders").round(2).alias("avg_order_value")
        )
        .sort("total_revenue", descending=True)
    )


def category_profitability(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Revenue, cost, profit and margin per product category, most profitable first"""
    return (
        aggregate(snapshot, GroupingKey.CATEGORY, with_profit=True)
        .select([
            "category",
            "total_revenue",
            "total_cost",
            "gross_profit",
            "gross_profit_margin_pct",
        ])
        .sort("gross_profit", descending=True)
    )


def returns_lost_revenue(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """Returned orders and the revenue they cost, per year"""
    return (
        aggregate(snapshot, GroupingKey.YEAR, statuses=[OrderStatus.RETURNED])
        .select([
            pl.col("sales_year").alias("return_year"),
            pl.col("total_orders").alias("returned_orders"),
            pl.col("total_revenue").alias("lost_revenue"),
        ])
        .sort("return_year")
    )


def top_countries_by_revenue(snapshot: WarehouseSnapshot, limit: Optional[int] = None) -> pl.DataFrame:
    """Countries generating the most revenue"""
    limit = limit if limit is not None else settings.analytics.top_n
    return (
        aggregate(snapshot, GroupingKey.COUNTRY)
        .select(["country", "total_orders", "total_revenue"])
        .sort(["total_revenue", "country"], descending=[True, False])
        .head(limit)
    )


def return_rate_by_category(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """
    Share of a category's orders that contained a returned item.

    The rate is returned orders over all distinct orders in the category,
    across every status; null when the category has no orders.
    """
    facts = fact_items(snapshot, None, {"products"})
    status = pl.col("status").str.to_lowercase()

    return (
        facts.group_by("category")
        .agg([
            pl.col("order_id").filter(status == OrderStatus.COMPLETE.value).n_unique().alias("complete_orders"),
            pl.col("order_id").filter(status == OrderStatus.RETURNED.value).n_unique().alias("returned_orders"),
            pl.col("order_id").n_unique().alias("total_orders"),
        ])
        .with_columns(
            safe_ratio("returned_orders", "total_orders", 100).round(2).alias("return_rate_pct")
        )
        .sort(["return_rate_pct", "category"], descending=[False, False], nulls_last=True)
    )
