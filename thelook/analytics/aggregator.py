"""
Aggregation Module

Per-grouping-key metrics over the order item fact table:
- Distinct order counts (an order with several items counts once)
- Revenue (sum of sale price) and item counts
- Cost and gross profit when product cost is joined in

Also provides the expression helpers shared by the scorers:
null-safe ratios, calendar columns, calendar-day differences and
equal-population bucketing.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

import polars as pl
import structlog

from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_STATUSES = (OrderStatus.COMPLETE,)


class GroupingKey(str, Enum):
    """Grouping keys supported by :func:`aggregate`"""
    YEAR = "year"
    MONTH = "month"
    YEAR_MONTH = "year_month"
    WEEKDAY = "weekday"
    USER = "user"
    PRODUCT = "product"
    CATEGORY = "category"
    DISTRIBUTION_CENTER = "distribution_center"
    COUNTRY = "country"
    TRAFFIC_SOURCE = "traffic_source"


# Output columns per key
KEY_COLUMNS: Dict[GroupingKey, List[str]] = {
    GroupingKey.YEAR: ["sales_year"],
    GroupingKey.MONTH: ["month_number", "sales_month"],
    GroupingKey.YEAR_MONTH: ["sales_year", "month_number", "sales_month"],
    GroupingKey.WEEKDAY: ["order_day"],
    GroupingKey.USER: ["user_id"],
    GroupingKey.PRODUCT: ["product_id", "product_name", "category"],
    GroupingKey.CATEGORY: ["category"],
    GroupingKey.DISTRIBUTION_CENTER: ["distribution_center_id", "distribution_center_name"],
    GroupingKey.COUNTRY: ["country"],
    GroupingKey.TRAFFIC_SOURCE: ["traffic_source"],
}

# Dimensions each key needs joined onto the facts
KEY_DIMENSIONS: Dict[GroupingKey, Set[str]] = {
    GroupingKey.PRODUCT: {"products"},
    GroupingKey.CATEGORY: {"products"},
    GroupingKey.DISTRIBUTION_CENTER: {"products", "distribution_centers"},
    GroupingKey.COUNTRY: {"users"},
    GroupingKey.TRAFFIC_SOURCE: {"users"},
}

CALENDAR_KEYS = {
    GroupingKey.YEAR,
    GroupingKey.MONTH,
    GroupingKey.YEAR_MONTH,
    GroupingKey.WEEKDAY,
}


def safe_ratio(
    numerator: Union[pl.Expr, str],
    denominator: Union[pl.Expr, str],
    scale: float = 1.0,
) -> pl.Expr:
    """
    ``numerator / denominator * scale``, or null when the denominator is zero or null.
    """
    num = pl.col(numerator) if isinstance(numerator, str) else numerator
    den = pl.col(denominator) if isinstance(denominator, str) else denominator
    return (
        pl.when(den != 0)
        .then(num.cast(pl.Float64) / den.cast(pl.Float64) * scale)
        .otherwise(None)
    )


def days_between(start: Union[pl.Expr, str], end: Union[pl.Expr, str]) -> pl.Expr:
    """Number of calendar-day boundaries crossed from ``start`` to ``end``"""
    start = pl.col(start) if isinstance(start, str) else start
    end = pl.col(end) if isinstance(end, str) else end
    return (end.dt.date() - start.dt.date()).dt.total_days()


def ntile(column: Union[pl.Expr, str], buckets: int, descending: bool = False) -> pl.Expr:
    """
    Equal-population bucket number (1..buckets) over the whole frame.

    Rows are ranked by ``column``; ties keep their input order. With N rows,
    every bucket holds N // buckets rows and the first N % buckets buckets
    hold one extra, so bucket sizes differ by at most one.
    """
    if buckets < 1:
        raise ValueError("buckets must be at least 1")

    col = pl.col(column) if isinstance(column, str) else column
    position = col.rank(method="ordinal", descending=descending).cast(pl.Int64) - 1
    total = pl.len().cast(pl.Int64)
    size = total // buckets
    remainder = total % buckets
    boundary = remainder * (size + 1)

    return (
        pl.when(position < boundary)
        .then(position // (size + 1))
        .otherwise(remainder + (position - boundary) // pl.max_horizontal(size, pl.lit(1)))
        + 1
    ).cast(pl.Int8)


def add_calendar_columns(df: pl.DataFrame, date_col: str = "created_at") -> pl.DataFrame:
    """
    Add calendar attributes derived from ``date_col``.

    Features added:
    - sales_year, month_number, sales_month (month name)
    - order_day (weekday name)
    """
    return df.with_columns([
        pl.col(date_col).dt.year().alias("sales_year"),
        pl.col(date_col).dt.month().alias("month_number"),
        pl.col(date_col).dt.strftime("%B").alias("sales_month"),
        pl.col(date_col).dt.strftime("%A").alias("order_day"),
    ])


def _normalize_keys(by: Union[GroupingKey, str, Sequence[Union[GroupingKey, str]]]) -> List[GroupingKey]:
    if isinstance(by, (str, GroupingKey)):
        by = [by]
    if not by:
        raise ValueError("At least one grouping key is required")
    try:
        return [GroupingKey(k) for k in by]
    except ValueError:
        raise ValueError(
            f"Unknown grouping key in {list(by)}. Expected: {[k.value for k in GroupingKey]}"
        ) from None


def fact_items(
    snapshot: WarehouseSnapshot,
    statuses: Optional[Iterable[Union[str, OrderStatus]]] = DEFAULT_STATUSES,
    dimensions: Iterable[str] = (),
) -> pl.DataFrame:
    """
    Order items filtered to ``statuses`` with the requested dimensions joined.

    Dimension joins are inner joins: items referencing a missing product,
    user or distribution center drop out of the result.

    Args:
        snapshot: Warehouse snapshot
        statuses: Statuses to keep (None keeps all)
        dimensions: Any of "products", "users", "distribution_centers"
    """
    dimensions = set(dimensions)
    if "distribution_centers" in dimensions:
        dimensions.add("products")

    facts = snapshot.items_with_status(*(statuses or ()))
    before = facts.height

    if "products" in dimensions:
        facts = facts.join(snapshot.product_dimension(), on="product_id", how="inner")
    if "distribution_centers" in dimensions:
        facts = facts.join(snapshot.center_dimension(), on="distribution_center_id", how="inner")
    if "users" in dimensions:
        facts = facts.join(
            snapshot.user_dimension().select(["user_id", "full_name", "country", "traffic_source", "gender"]),
            on="user_id",
            how="inner",
        )

    if facts.height < before:
        logger.debug(
            "Dropped items without matching dimension rows",
            dropped=before - facts.height,
            dimensions=sorted(dimensions),
        )

    return facts


def aggregate(
    snapshot: WarehouseSnapshot,
    by: Union[GroupingKey, str, Sequence[Union[GroupingKey, str]]],
    statuses: Optional[Iterable[Union[str, OrderStatus]]] = DEFAULT_STATUSES,
    with_profit: bool = False,
) -> pl.DataFrame:
    """
    Aggregate order item metrics per grouping key.

    Args:
        snapshot: Warehouse snapshot
        by: One or more grouping keys
        statuses: Item statuses to include (case-insensitive, None for all)
        with_profit: Join product cost and add cost, profit and margin

    Returns:
        DataFrame with the key columns plus total_orders, items_sold,
        total_revenue (and total_cost, gross_profit, gross_profit_margin_pct)
    """
    keys = _normalize_keys(by)

    dimensions: Set[str] = set()
    for key in keys:
        dimensions |= KEY_DIMENSIONS.get(key, set())
    if with_profit:
        dimensions.add("products")

    facts = fact_items(snapshot, statuses, dimensions)

    if any(key in CALENDAR_KEYS for key in keys):
        facts = add_calendar_columns(facts.filter(pl.col("created_at").is_not_null()))

    group_cols: List[str] = []
    for key in keys:
        group_cols.extend(c for c in KEY_COLUMNS[key] if c not in group_cols)

    metrics = [
        pl.col("order_id").n_unique().alias("total_orders"),
        pl.len().alias("items_sold"),
        pl.col("sale_price").sum().alias("total_revenue"),
    ]
    if with_profit:
        metrics += [
            pl.col("cost").sum().alias("total_cost"),
            (pl.col("sale_price") - pl.col("cost")).sum().alias("gross_profit"),
        ]

    result = facts.group_by(group_cols).agg(metrics)

    if with_profit:
        result = result.with_columns(
            safe_ratio("gross_profit", "total_revenue", 100).round(2).alias("gross_profit_margin_pct"),
            pl.col("total_cost").round(2),
            pl.col("gross_profit").round(2),
        )

    return result.with_columns(pl.col("total_revenue").round(2)).sort(group_cols)


def totals(
    snapshot: WarehouseSnapshot,
    statuses: Optional[Iterable[Union[str, OrderStatus]]] = DEFAULT_STATUSES,
    with_profit: bool = False,
) -> pl.DataFrame:
    """Grand totals over the filtered fact set as a single-row frame"""
    facts = fact_items(snapshot, statuses, {"products"} if with_profit else set())

    metrics = [
        pl.col("order_id").n_unique().alias("total_orders"),
        pl.len().alias("items_sold"),
        pl.col("sale_price").sum().round(2).alias("total_revenue"),
    ]
    if with_profit:
        metrics += [
            pl.col("cost").sum().round(2).alias("total_cost"),
            (pl.col("sale_price") - pl.col("cost")).sum().round(2).alias("gross_profit"),
        ]

    result = facts.select(metrics)
    if with_profit:
        result = result.with_columns(
            safe_ratio("gross_profit", "total_revenue", 100).round(2).alias("gross_profit_margin_pct")
        )
    return result
