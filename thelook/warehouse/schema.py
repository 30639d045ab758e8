"""
Warehouse Schema - Star Schema Design

Column layouts for the TheLook warehouse. One central fact table
(order_items) references the dimension tables:

Fact Tables:
- order_items: one row per purchased line item
- orders: order headers with lifecycle timestamps

Dimension Tables:
- users: customers with demographics and acquisition channel
- products: catalog with cost and retail price
- distribution_centers: fulfilment locations

Raw (staging) frames carry every column as a string. The typed layout below
is what the cleaner produces.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import polars as pl


class OrderStatus(str, Enum):
    """Order and order item status enumeration (always lower case)"""
    COMPLETE = "complete"
    RETURNED = "returned"
    CANCELLED = "cancelled"
    PROCESSING = "processing"
    SHIPPED = "shipped"

    @classmethod
    def normalize(cls, value: "str | OrderStatus") -> str:
        """Case-insensitive status value"""
        if isinstance(value, OrderStatus):
            return value.value
        return str(value).strip().lower()


class TableName(str, Enum):
    """Warehouse tables"""
    USERS = "users"
    PRODUCTS = "products"
    DISTRIBUTION_CENTERS = "distribution_centers"
    ORDERS = "orders"
    ORDER_ITEMS = "order_items"


@dataclass(frozen=True)
class TableSchema:
    """Typed layout and cleaning rules of one warehouse table"""
    name: TableName
    primary_key: str
    columns: Dict[str, pl.DataType]
    required: Tuple[str, ...] = ()
    money_columns: Tuple[str, ...] = ()
    status_column: Optional[str] = None
    # (earlier, later) timestamp pairs that must not be reversed
    lifecycle: Tuple[Tuple[str, str], ...] = ()

    @property
    def id_columns(self) -> List[str]:
        return [c for c, t in self.columns.items() if t == pl.Int64]

    @property
    def float_columns(self) -> List[str]:
        return [c for c, t in self.columns.items() if t == pl.Float64]

    @property
    def timestamp_columns(self) -> List[str]:
        return [c for c, t in self.columns.items() if isinstance(t, pl.Datetime)]

    @property
    def string_columns(self) -> List[str]:
        return [c for c, t in self.columns.items() if t == pl.Utf8]

    def empty_frame(self) -> pl.DataFrame:
        """Typed frame without rows"""
        return pl.DataFrame(schema=self.columns)


TIMESTAMP = pl.Datetime("us")

USERS = TableSchema(
    name=TableName.USERS,
    primary_key="id",
    columns={
        "id": pl.Int64,
        "first_name": pl.Utf8,
        "last_name": pl.Utf8,
        "email": pl.Utf8,
        "age": pl.Int64,
        "gender": pl.Utf8,
        "state": pl.Utf8,
        "street_address": pl.Utf8,
        "postal_code": pl.Utf8,
        "city": pl.Utf8,
        "country": pl.Utf8,
        "latitude": pl.Float64,
        "longitude": pl.Float64,
        "traffic_source": pl.Utf8,
        "created_at": TIMESTAMP,
    },
    required=("id",),
)

DISTRIBUTION_CENTERS = TableSchema(
    name=TableName.DISTRIBUTION_CENTERS,
    primary_key="id",
    columns={
        "id": pl.Int64,
        "name": pl.Utf8,
        "latitude": pl.Float64,
        "longitude": pl.Float64,
    },
    required=("id",),
)

PRODUCTS = TableSchema(
    name=TableName.PRODUCTS,
    primary_key="id",
    columns={
        "id": pl.Int64,
        "cost": pl.Float64,
        "category": pl.Utf8,
        "name": pl.Utf8,
        "brand": pl.Utf8,
        "retail_price": pl.Float64,
        "department": pl.Utf8,
        "sku": pl.Utf8,
        "distribution_center_id": pl.Int64,
    },
    required=("id", "cost"),
    money_columns=("cost", "retail_price"),
)

ORDERS = TableSchema(
    name=TableName.ORDERS,
    primary_key="order_id",
    columns={
        "order_id": pl.Int64,
        "user_id": pl.Int64,
        "status": pl.Utf8,
        "gender": pl.Utf8,
        "created_at": TIMESTAMP,
        "returned_at": TIMESTAMP,
        "shipped_at": TIMESTAMP,
        "delivered_at": TIMESTAMP,
        "num_of_item": pl.Int64,
    },
    required=("order_id", "user_id", "status"),
    status_column="status",
    lifecycle=(
        ("created_at", "shipped_at"),
        ("shipped_at", "delivered_at"),
        ("created_at", "returned_at"),
    ),
)

ORDER_ITEMS = TableSchema(
    name=TableName.ORDER_ITEMS,
    primary_key="id",
    columns={
        "id": pl.Int64,
        "order_id": pl.Int64,
        "user_id": pl.Int64,
        "product_id": pl.Int64,
        "inventory_item_id": pl.Int64,
        "status": pl.Utf8,
        "created_at": TIMESTAMP,
        "shipped_at": TIMESTAMP,
        "delivered_at": TIMESTAMP,
        "returned_at": TIMESTAMP,
        "sale_price": pl.Float64,
    },
    required=("id", "order_id", "user_id", "product_id", "status", "sale_price"),
    money_columns=("sale_price",),
    status_column="status",
    lifecycle=(
        ("created_at", "shipped_at"),
        ("shipped_at", "delivered_at"),
        ("created_at", "returned_at"),
    ),
)

SCHEMAS: Dict[TableName, TableSchema] = {
    schema.name: schema
    for schema in (USERS, DISTRIBUTION_CENTERS, PRODUCTS, ORDERS, ORDER_ITEMS)
}


def get_schema(table: "str | TableName") -> TableSchema:
    """Look up a table schema by name"""
    try:
        return SCHEMAS[TableName(table)]
    except ValueError:
        raise ValueError(
            f"Unknown table: {table}. Expected one of: {[t.value for t in TableName]}"
        ) from None
