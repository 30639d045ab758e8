"""
Market Basket Analysis

Counts how often two distinct products are bought in the same order.
Each unordered pair is counted once per order: products are deduplicated
within an order first, and only pairs with product_a_id < product_b_id are
kept, so there are no self-pairs and no mirrored duplicates.
"""

from typing import Iterable, Optional, Union

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot

logger = structlog.get_logger(__name__)
settings = get_settings()


def order_products(
    snapshot: WarehouseSnapshot,
    statuses: Optional[Iterable[Union[str, OrderStatus]]] = None,
) -> pl.DataFrame:
    """Distinct (order_id, product_id) pairs"""
    items = snapshot.items_with_status(*(statuses or ()))
    return items.select(["order_id", "product_id"]).unique()


def product_pairs(
    snapshot: WarehouseSnapshot,
    statuses: Optional[Iterable[Union[str, OrderStatus]]] = None,
) -> pl.DataFrame:
    """
    Co-occurrence count for every product pair bought together.

    Args:
        snapshot: Warehouse snapshot
        statuses: Item statuses to consider (all by default)

    Returns:
        DataFrame with product_a_id, product_b_id, times_bought_together,
        most frequent first
    """
    baskets = order_products(snapshot, statuses)

    # Only orders with at least two distinct products can form a pair
    multi = baskets.filter(pl.col("product_id").count().over("order_id") > 1)

    pairs = (
        multi.rename({"product_id": "product_a_id"})
        .join(multi.rename({"product_id": "product_b_id"}), on="order_id", how="inner")
        .filter(pl.col("product_a_id") < pl.col("product_b_id"))
    )

    counts = (
        pairs.group_by(["product_a_id", "product_b_id"])
        .agg(pl.len().alias("times_bought_together"))
        .sort(
            ["times_bought_together", "product_a_id", "product_b_id"],
            descending=[True, False, False],
        )
    )

    logger.info(
        "Product pairs counted",
        orders=multi["order_id"].n_unique(),
        pairs=counts.height,
    )
    return counts


def frequently_bought_together(
    snapshot: WarehouseSnapshot,
    limit: Optional[int] = None,
    statuses: Optional[Iterable[Union[str, OrderStatus]]] = None,
) -> pl.DataFrame:
    """
    Top product pairs with product names.

    Pairs referencing a product missing from the catalog are left out.

    Returns:
        DataFrame with product_a_id, product_a_name, product_b_id,
        product_b_name, times_bought_together
    """
    limit = limit if limit is not None else settings.analytics.top_n
    names = snapshot.products.select([pl.col("id"), pl.col("name")])

    named = (
        product_pairs(snapshot, statuses)
        .join(names.rename({"id": "product_a_id", "name": "product_a_name"}), on="product_a_id", how="inner")
        .join(names.rename({"id": "product_b_id", "name": "product_b_name"}), on="product_b_id", how="inner")
        .sort(
            ["times_bought_together", "product_a_id", "product_b_id"],
            descending=[True, False, False],
        )
    )

    return named.select([
        "product_a_id",
        "product_a_name",
        "product_b_id",
        "product_b_name",
        "times_bought_together",
    ]).head(limit)
