"""
Test Suite Configuration
"""
from datetime import datetime
from typing import Any, Dict, List

import pytest
import polars as pl

from thelook.config import Settings
from thelook.warehouse.schema import get_schema
from thelook.warehouse.snapshot import WarehouseSnapshot


def typed_frame(table: str, rows: List[Dict[str, Any]]) -> pl.DataFrame:
    """Typed warehouse frame from partial row dicts (unset columns are null)"""
    schema = get_schema(table)
    return pl.DataFrame(
        [{column: row.get(column) for column in schema.columns} for row in rows],
        schema=schema.columns,
    )


def item(
    item_id: int,
    order_id: int,
    user_id: int,
    product_id: int,
    status: str,
    sale_price: float,
    created_at: datetime,
    shipped_at: datetime = None,
    delivered_at: datetime = None,
    returned_at: datetime = None,
) -> Dict[str, Any]:
    return {
        "id": item_id,
        "order_id": order_id,
        "user_id": user_id,
        "product_id": product_id,
        "inventory_item_id": item_id,
        "status": status,
        "sale_price": sale_price,
        "created_at": created_at,
        "shipped_at": shipped_at,
        "delivered_at": delivered_at,
        "returned_at": returned_at,
    }


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(app_env="testing")


@pytest.fixture
def users_df() -> pl.DataFrame:
    return typed_frame("users", [
        {"id": 1, "first_name": "Ann", "last_name": "Lee", "email": "ann@example.com", "age": 30,
         "gender": "F", "country": "United States", "traffic_source": "Search",
         "created_at": datetime(2022, 1, 1, 9, 0)},
        {"id": 2, "first_name": "Bob", "last_name": "Ray", "email": "bob@example.com", "age": 41,
         "gender": "M", "country": "China", "traffic_source": "Organic",
         "created_at": datetime(2022, 3, 15, 9, 0)},
        {"id": 3, "first_name": "Cat", "last_name": "Day", "email": "cat@example.com", "age": 25,
         "gender": "F", "country": "China", "traffic_source": "Search",
         "created_at": datetime(2023, 1, 10, 9, 0)},
        {"id": 4, "first_name": "Dan", "last_name": "Fox", "email": "dan@example.com", "age": 52,
         "gender": "M", "country": "Brasil", "traffic_source": "Email",
         "created_at": datetime(2023, 12, 31, 8, 0)},
        {"id": 5, "first_name": "Eve", "last_name": "Kim", "email": "eve@example.com", "age": 19,
         "gender": "F", "country": "United States", "traffic_source": "Search",
         "created_at": datetime(2023, 1, 20, 9, 0)},
    ])


@pytest.fixture
def distribution_centers_df() -> pl.DataFrame:
    return typed_frame("distribution_centers", [
        {"id": 1, "name": "Memphis TN", "latitude": 35.1174, "longitude": -89.9711},
        {"id": 2, "name": "Chicago IL", "latitude": 41.8369, "longitude": -87.6847},
    ])


@pytest.fixture
def products_df() -> pl.DataFrame:
    return typed_frame("products", [
        {"id": 1, "cost": 10.0, "category": "Jeans", "name": "Slim Jeans", "brand": "Levi's",
         "retail_price": 50.0, "department": "Men", "distribution_center_id": 1},
        {"id": 2, "cost": 20.0, "category": "Jeans", "name": "Wide Jeans", "brand": "Diesel",
         "retail_price": 100.0, "department": "Women", "distribution_center_id": 1},
        {"id": 3, "cost": 30.0, "category": "Tops", "name": "Linen Shirt", "brand": "Hanes",
         "retail_price": 60.0, "department": "Men", "distribution_center_id": 2},
        {"id": 4, "cost": 5.0, "category": "Tops", "name": "Basic Tee", "brand": "Hanes",
         "retail_price": 20.0, "department": "Women", "distribution_center_id": 2},
    ])


@pytest.fixture
def order_items_df() -> pl.DataFrame:
    """
    Six orders:
    1 complete  [p1 50, p2 100]          total 150  (Low)
    2 complete  [p2 300, p3 200]         total 500  (Mid)
    3 complete  [p1 400, p2 300, p3 200] total 900  (High)
    4 returned  [p3 60]
    5 cancelled [p4 20]
    6 COMPLETE  [p4 20, p1 50]           total 70   (Low)
    """
    return typed_frame("order_items", [
        item(1, 1, 1, 1, "complete", 50.0, datetime(2023, 1, 5, 10), datetime(2023, 1, 7, 10), datetime(2023, 1, 9)),
        item(2, 1, 1, 2, "complete", 100.0, datetime(2023, 1, 5, 10), datetime(2023, 1, 7, 10), datetime(2023, 1, 9)),
        item(3, 2, 1, 2, "complete", 300.0, datetime(2023, 6, 10, 12), datetime(2023, 6, 15, 9), datetime(2023, 6, 17)),
        item(4, 2, 1, 3, "complete", 200.0, datetime(2023, 6, 10, 12), datetime(2023, 6, 15, 9), datetime(2023, 6, 17)),
        item(5, 3, 2, 1, "complete", 400.0, datetime(2023, 7, 1, 8), datetime(2023, 7, 2, 8), datetime(2023, 7, 4)),
        item(6, 3, 2, 2, "complete", 300.0, datetime(2023, 7, 1, 8), datetime(2023, 7, 2, 8), datetime(2023, 7, 4)),
        item(7, 3, 2, 3, "complete", 200.0, datetime(2023, 7, 1, 8), datetime(2023, 7, 2, 8), datetime(2023, 7, 4)),
        item(8, 4, 3, 3, "returned", 60.0, datetime(2023, 8, 15, 8), datetime(2023, 8, 16, 8),
             datetime(2023, 8, 18), datetime(2023, 8, 20)),
        item(9, 5, 3, 4, "cancelled", 20.0, datetime(2023, 9, 1, 8)),
        item(10, 6, 4, 4, "COMPLETE", 20.0, datetime(2023, 12, 31, 23), datetime(2024, 1, 2, 9), datetime(2024, 1, 4)),
        item(11, 6, 4, 1, "COMPLETE", 50.0, datetime(2023, 12, 31, 23), datetime(2024, 1, 2, 9), datetime(2024, 1, 4)),
    ])


@pytest.fixture
def orders_df(order_items_df) -> pl.DataFrame:
    headers = (
        order_items_df.group_by("order_id")
        .agg([
            pl.col("user_id").first(),
            pl.col("status").first(),
            pl.col("created_at").first(),
            pl.col("shipped_at").first(),
            pl.col("delivered_at").first(),
            pl.col("returned_at").first(),
            pl.len().cast(pl.Int64).alias("num_of_item"),
        ])
        .sort("order_id")
    )
    return typed_frame("orders", headers.to_dicts())


@pytest.fixture
def snapshot(users_df, distribution_centers_df, products_df, orders_df, order_items_df) -> WarehouseSnapshot:
    """Typed snapshot over the six sample orders"""
    return WarehouseSnapshot(
        users=users_df,
        products=products_df,
        distribution_centers=distribution_centers_df,
        orders=orders_df,
        order_items=order_items_df,
    )


@pytest.fixture
def make_snapshot(users_df, distribution_centers_df, products_df):
    """Factory for snapshots over custom order items, given as ``item`` argument tuples"""
    def _make(rows) -> WarehouseSnapshot:
        return WarehouseSnapshot(
            users=users_df,
            products=products_df,
            distribution_centers=distribution_centers_df,
            orders=get_schema("orders").empty_frame(),
            order_items=typed_frame("order_items", [item(*row) for row in rows]),
        )
    return _make


@pytest.fixture
def empty_snapshot() -> WarehouseSnapshot:
    return WarehouseSnapshot.from_tables({})


@pytest.fixture
def raw_order_items_df() -> pl.DataFrame:
    """Raw order item extract with one defect per rejected row"""
    return pl.DataFrame({
        "id": ["1", "2", "3", "4", "5", "6", "7", "2", "9"],
        "order_id": ["10", "10", "11", "12", "13", "14", "15", "10", "16"],
        "user_id": ["100.0", "100.0", "101", "abc", "103", "104", "105", "100.0", "106"],
        "product_id": ["1", "2", "3", "4", "5", "6", "7", "2", "8"],
        "inventory_item_id": ["1", "2", "3", "4", "5", "6", "7", "2", "9"],
        "status": [" Complete ", "complete", "Returned", "complete", "lost", "Shipped", "Complete", "complete", "Processing"],
        "created_at": [
            "2023-01-05 10:00:00+00:00",
            "2023-01-05 10:00:00+00:00",
            "2023-02-01T08:30:00",
            "2023-03-01 00:00:00+00:00",
            "2023-03-02 00:00:00+00:00",
            "2023-03-03 12:00:00+00:00",
            "not-a-timestamp",
            "2023-01-05 10:00:00+00:00",
            "2023-04-01",
        ],
        "shipped_at": [
            "2023-01-06 10:00:00+00:00",
            "",
            None,
            None,
            None,
            "2023-03-01 12:00:00+00:00",
            None,
            "",
            None,
        ],
        "delivered_at": [None] * 9,
        "returned_at": [None] * 9,
        "sale_price": ["$1,234.567", "20", "-5.00", "10", "10", "10", "15.5", "20", None],
    })
