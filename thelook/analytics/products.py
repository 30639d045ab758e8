"""
Product and Logistics Reports

- Best sellers by revenue
- Product return rates (quality control)
- Distribution center workload and product variety
- Shipping speed and late shipping rate per distribution center
"""

from typing import Optional

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot
from .aggregator import GroupingKey, aggregate, days_between, fact_items, safe_ratio

logger = structlog.get_logger(__name__)
settings = get_settings()


def top_products_by_revenue(snapshot: WarehouseSnapshot, limit: Optional[int] = None) -> pl.DataFrame:
    """Products generating the most revenue from completed items"""
    limit = limit if limit is not None else settings.analytics.top_n
    return (
        aggregate(snapshot, GroupingKey.PRODUCT)
        .select([
            "product_id",
            "product_name",
            "category",
            pl.col("items_sold").alias("total_units_sold"),
            "total_revenue",
        ])
        .sort(["total_revenue", "product_id"], descending=[True, False])
        .head(limit)
    )


def product_return_rates(
    snapshot: WarehouseSnapshot,
    min_sales: Optional[int] = None,
    limit: Optional[int] = None,
) -> pl.DataFrame:
    """
    Products with the highest return rates.

    Sales are items that were completed or returned; the return rate is
    returned items over sales (null when a product has no sales). Products
    with fewer than ``min_sales`` sales are left out to avoid noise.

    Args:
        snapshot: Warehouse snapshot
        min_sales: Minimum sales for a product to be ranked
        limit: Number of products to return

    Returns:
        DataFrame with product_id, product_name, category, returned_count,
        total_sold, return_rate_pct
    """
    min_sales = min_sales if min_sales is not None else settings.analytics.min_product_sales
    limit = limit if limit is not None else settings.analytics.top_n

    facts = fact_items(snapshot, None, {"products"})
    status = pl.col("status").str.to_lowercase()
    sold = status.is_in([OrderStatus.COMPLETE.value, OrderStatus.RETURNED.value])

    rates = (
        facts.group_by(["product_id", "product_name", "category"])
        .agg([
            (status == OrderStatus.RETURNED.value).sum().alias("returned_count"),
            sold.sum().alias("total_sold"),
        ])
        .with_columns(
            safe_ratio("returned_count", "total_sold", 100).round(2).alias("return_rate_pct")
        )
        .filter(pl.col("total_sold") >= min_sales)
        .sort(
            ["return_rate_pct", "product_id"],
            descending=[True, False],
            nulls_last=True,
        )
    )

    logger.debug("Product return rates calculated", products=rates.height, min_sales=min_sales)
    return rates.head(limit)


def distribution_center_performance(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """
    Completed item volume, revenue and product variety per distribution center.

    Variety rate is distinct products over items sold, as a percentage.
    """
    facts = fact_items(snapshot, [OrderStatus.COMPLETE], {"distribution_centers"})
    return (
        facts.group_by(["distribution_center_id", "distribution_center_name"])
        .agg([
            pl.len().alias("total_items_sold"),
            pl.col("sale_price").sum().round(2).alias("total_revenue_generated"),
            pl.col("product_id").n_unique().alias("unique_products_stocked"),
        ])
        .with_columns(
            safe_ratio("unique_products_stocked", "total_items_sold", 100).round(2).alias("variety_rate_pct")
        )
        .sort(["total_items_sold", "distribution_center_id"], descending=[True, False])
    )


def shipping_performance(
    snapshot: WarehouseSnapshot,
    late_after_days: Optional[int] = None,
) -> pl.DataFrame:
    """
    Shipping speed and reliability per distribution center.

    Only shipped items (both created and shipped timestamps present) are
    considered, whatever their status. An item is late when it took more
    than ``late_after_days`` calendar days to ship.

    Returns:
        DataFrame with distribution_center_id, distribution_center_name,
        orders_shipped, avg_days_to_ship, late_shipping_rate_pct
    """
    late_after = late_after_days if late_after_days is not None else settings.analytics.late_shipping_days

    shipped = (
        fact_items(snapshot, None, {"distribution_centers"})
        .filter(pl.col("shipped_at").is_not_null() & pl.col("created_at").is_not_null())
        .with_columns(days_between("created_at", "shipped_at").alias("days_to_ship"))
    )

    return (
        shipped.group_by(["distribution_center_id", "distribution_center_name"])
        .agg([
            pl.col("order_id").n_unique().alias("orders_shipped"),
            pl.col("days_to_ship").mean().round(2).alias("avg_days_to_ship"),
            (pl.col("days_to_ship") > late_after).sum().alias("late_items"),
            pl.len().alias("items_shipped"),
        ])
        .with_columns(
            safe_ratio("late_items", "items_shipped", 100).round(2).alias("late_shipping_rate_pct")
        )
        .select([
            "distribution_center_id",
            "distribution_center_name",
            "orders_shipped",
            "avg_days_to_ship",
            "late_shipping_rate_pct",
        ])
        .sort(["avg_days_to_ship", "distribution_center_id"])
    )
