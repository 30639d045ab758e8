"""
Warehouse Snapshot

Read-only view over the typed warehouse tables. Every report receives the
snapshot explicitly; nothing in the analytics layer reads global state.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Dict, Optional

import polars as pl
import structlog

from .schema import SCHEMAS, OrderStatus, TableName

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WarehouseSnapshot:
    """
    Immutable snapshot of the five typed warehouse tables.

    Example:
        snapshot = WarehouseSnapshot.from_tables(clean_frames)
        completed = snapshot.items_with_status("complete")
    """
    users: pl.DataFrame
    products: pl.DataFrame
    distribution_centers: pl.DataFrame
    orders: pl.DataFrame
    order_items: pl.DataFrame

    @classmethod
    def from_tables(cls, tables: Dict[str, pl.DataFrame]) -> "WarehouseSnapshot":
        """
        Build a snapshot from typed frames keyed by table name.

        Missing tables are replaced by empty frames with the typed layout so
        that reports degrade to empty results instead of failing.
        """
        frames = {}
        for table, schema in SCHEMAS.items():
            frame = tables.get(table.value)
            if frame is None:
                logger.warning("Table missing from snapshot, using empty frame", table=table.value)
                frame = schema.empty_frame()
            frames[table.value] = frame

        snapshot = cls(**frames)
        logger.info("Warehouse snapshot built", **snapshot.row_counts())
        return snapshot

    def row_counts(self) -> Dict[str, int]:
        """Row count per table"""
        return {f.name: getattr(self, f.name).height for f in fields(self)}

    def table(self, name: "str | TableName") -> pl.DataFrame:
        """Frame for a table name"""
        return getattr(self, TableName(name).value)

    @property
    def max_order_date(self) -> Optional[datetime]:
        """Latest order item creation timestamp; the reference point for recency"""
        if self.order_items.is_empty():
            return None
        return self.order_items["created_at"].max()

    def items_with_status(self, *statuses: "str | OrderStatus") -> pl.DataFrame:
        """
        Order items whose status is one of ``statuses`` (case-insensitive).

        With no statuses, all items are returned.
        """
        if not statuses:
            return self.order_items
        wanted = [OrderStatus.normalize(s) for s in statuses]
        return self.order_items.filter(
            pl.col("status").str.to_lowercase().is_in(wanted)
        )

    def product_dimension(self) -> pl.DataFrame:
        """Product attributes keyed by product_id for joining onto facts"""
        return self.products.select([
            pl.col("id").alias("product_id"),
            pl.col("name").alias("product_name"),
            "category",
            "brand",
            "department",
            "cost",
            "retail_price",
            "distribution_center_id",
        ])

    def user_dimension(self) -> pl.DataFrame:
        """User attributes keyed by user_id for joining onto facts"""
        return self.users.select([
            pl.col("id").alias("user_id"),
            "first_name",
            "last_name",
            pl.concat_str(
                [pl.col("first_name"), pl.col("last_name")],
                separator=" ",
                ignore_nulls=True,
            ).alias("full_name"),
            "email",
            "gender",
            "country",
            "traffic_source",
            pl.col("created_at").alias("signed_up_at"),
        ])

    def center_dimension(self) -> pl.DataFrame:
        """Distribution center attributes keyed by distribution_center_id"""
        return self.distribution_centers.select([
            pl.col("id").alias("distribution_center_id"),
            pl.col("name").alias("distribution_center_name"),
        ])
