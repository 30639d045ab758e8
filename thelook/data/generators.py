"""
Synthetic Data Generator

Generates a TheLook-style raw extract for testing and development.
Includes:
- Users with demographics, geography and acquisition channel
- Distribution centers
- Products across departments and categories
- Orders with lifecycle timestamps, and their line items

Every value is written as a string, the way the warehouse export delivers
it: timestamps carry a ``+00:00`` suffix, statuses are capitalized and the
user reference on order items uses the ``123.0`` float formatting. The
output is deterministic for a given seed.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl
import structlog
from faker import Faker

from thelook.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_START = datetime(2019, 1, 1)
DEFAULT_END = datetime(2024, 1, 1)

TRAFFIC_SOURCES = [
    ("Search", 0.70),
    ("Organic", 0.15),
    ("Facebook", 0.06),
    ("Email", 0.05),
    ("Display", 0.04),
]

COUNTRIES = [
    ("China", 0.34),
    ("United States", 0.23),
    ("Brasil", 0.15),
    ("South Korea", 0.05),
    ("France", 0.05),
    ("United Kingdom", 0.05),
    ("Germany", 0.04),
    ("Spain", 0.04),
    ("Japan", 0.03),
    ("Australia", 0.02),
]

# (department, category, min retail price, max retail price)
CATEGORIES = [
    ("Women", "Intimates", 5, 60),
    ("Women", "Dresses", 20, 250),
    ("Women", "Sweaters", 15, 200),
    ("Women", "Jeans", 20, 180),
    ("Men", "Jeans", 20, 200),
    ("Men", "Outerwear & Coats", 40, 900),
    ("Men", "Suits & Sport Coats", 60, 999),
    ("Men", "Tops & Tees", 5, 60),
    ("Men", "Accessories", 5, 120),
    ("Women", "Accessories", 5, 150),
]

BRANDS = [
    "Allegra K", "Calvin Klein", "Carhartt", "Columbia", "Diesel",
    "Hanes", "Levi's", "Nike", "Quiksilver", "Tommy Hilfiger",
]

DISTRIBUTION_CENTERS = [
    ("Memphis TN", 35.1174, -89.9711),
    ("Chicago IL", 41.8369, -87.6847),
    ("Houston TX", 29.7604, -95.3698),
    ("Los Angeles CA", 34.05, -118.25),
    ("New Orleans LA", 29.95, -90.0667),
    ("Port Authority of New York/New Jersey NY/NJ", 40.634, -73.7834),
    ("Philadelphia PA", 39.95, -75.1667),
    ("Mobile AL", 30.6944, -88.0431),
    ("Charleston SC", 32.7833, -79.9333),
    ("Savannah GA", 32.0167, -81.1167),
]

ORDER_STATUSES = [
    ("Complete", 0.30),
    ("Shipped", 0.25),
    ("Processing", 0.20),
    ("Cancelled", 0.15),
    ("Returned", 0.10),
]

ITEMS_PER_ORDER = ([1, 2, 3, 4], [0.55, 0.25, 0.12, 0.08])

USER_COLUMNS = [
    "id", "first_name", "last_name", "email", "age", "gender", "state", "street_address",
    "postal_code", "city", "country", "latitude", "longitude", "traffic_source", "created_at",
]
CENTER_COLUMNS = ["id", "name", "latitude", "longitude"]
PRODUCT_COLUMNS = [
    "id", "cost", "category", "name", "brand", "retail_price", "department", "sku",
    "distribution_center_id",
]
ORDER_COLUMNS = [
    "order_id", "user_id", "status", "gender", "created_at", "returned_at", "shipped_at",
    "delivered_at", "num_of_item",
]
ORDER_ITEM_COLUMNS = [
    "id", "order_id", "user_id", "product_id", "inventory_item_id", "status", "created_at",
    "shipped_at", "delivered_at", "returned_at", "sale_price",
]


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Raw export format: ``YYYY-MM-DD HH:MM:SS+00:00``"""
    if value is None:
        return None
    return value.strftime("%Y-%m-%d %H:%M:%S") + "+00:00"


def _choice(rng: np.random.Generator, weighted: Sequence[Tuple[str, float]], size: int) -> List[str]:
    values = [v for v, _ in weighted]
    weights = np.array([w for _, w in weighted])
    return [str(v) for v in rng.choice(values, size=size, p=weights / weights.sum())]


def _frame(rows: List[Dict[str, Optional[str]]], columns: Sequence[str]) -> pl.DataFrame:
    """Raw frame with every column typed as a string"""
    return pl.DataFrame(rows, schema={c: pl.Utf8 for c in columns})


def _random_datetime(rng: np.random.Generator, start: datetime, end: datetime) -> datetime:
    span = max(int((end - start).total_seconds()), 1)
    return start + timedelta(seconds=int(rng.integers(0, span)))


# =============================================================================
# GENERATORS
# =============================================================================

class UserGenerator:
    """Generate users with demographics and acquisition channel"""

    def __init__(self, rng: np.random.Generator, fake: Faker):
        self.rng = rng
        self.fake = fake

    def generate(self, n: int, start: datetime, end: datetime) -> pl.DataFrame:
        """Generate n users who signed up between start and end"""
        fake = self.fake
        genders = self.rng.choice(["M", "F"], size=n)
        countries = _choice(self.rng, COUNTRIES, n)
        sources = _choice(self.rng, TRAFFIC_SOURCES, n)
        ages = self.rng.integers(12, 71, size=n)

        users = []
        for i in range(n):
            first_name = fake.first_name_male() if genders[i] == "M" else fake.first_name_female()
            last_name = fake.last_name()
            users.append({
                "id": str(i + 1),
                "first_name": first_name,
                "last_name": last_name,
                "email": f"{first_name.lower()}{last_name.lower()}@example.{fake.tld()}",
                "age": str(ages[i]),
                "gender": str(genders[i]),
                "state": fake.state(),
                "street_address": fake.street_address(),
                "postal_code": fake.postcode(),
                "city": fake.city(),
                "country": countries[i],
                "latitude": str(fake.latitude()),
                "longitude": str(fake.longitude()),
                "traffic_source": sources[i],
                "created_at": format_timestamp(_random_datetime(self.rng, start, end)),
            })

        return _frame(users, USER_COLUMNS)


class DistributionCenterGenerator:
    """Fixed list of distribution centers"""

    def generate(self) -> pl.DataFrame:
        return _frame([
            {
                "id": str(i + 1),
                "name": name,
                "latitude": str(latitude),
                "longitude": str(longitude),
            }
            for i, (name, latitude, longitude) in enumerate(DISTRIBUTION_CENTERS)
        ], CENTER_COLUMNS)


class ProductGenerator:
    """Generate a product catalog spread over the distribution centers"""

    def __init__(self, rng: np.random.Generator, fake: Faker):
        self.rng = rng
        self.fake = fake

    def generate(self, n: int, n_centers: int = len(DISTRIBUTION_CENTERS)) -> pl.DataFrame:
        """Generate n products"""
        products = []
        for i in range(n):
            department, category, low, high = CATEGORIES[int(self.rng.integers(0, len(CATEGORIES)))]
            brand = BRANDS[int(self.rng.integers(0, len(BRANDS)))]
            retail_price = round(float(self.rng.uniform(low, high)), 2)
            cost = round(retail_price * float(self.rng.uniform(0.35, 0.65)), 2)

            products.append({
                "id": str(i + 1),
                "cost": f"{cost:.2f}",
                "category": category,
                "name": f"{brand} {self.fake.word().title()} {category}",
                "brand": brand,
                "retail_price": f"{retail_price:.2f}",
                "department": department,
                "sku": self.fake.hexify("^" * 32).upper(),
                "distribution_center_id": str(int(self.rng.integers(1, n_centers + 1))),
            })

        return _frame(products, PRODUCT_COLUMNS)


class OrderGenerator:
    """Generate orders and their line items"""

    def __init__(
        self,
        rng: np.random.Generator,
        users_df: pl.DataFrame,
        products_df: pl.DataFrame,
    ):
        self.rng = rng
        self.users = users_df.select(["id", "gender", "created_at"]).rows()
        self.products = products_df.select(["id", "retail_price"]).rows()

    def _lifecycle(
        self,
        status: str,
        created_at: datetime,
    ) -> Tuple[Optional[datetime], Optional[datetime], Optional[datetime]]:
        """(shipped_at, delivered_at, returned_at) consistent with the status"""
        shipped_at = delivered_at = returned_at = None
        if status in ("Shipped", "Complete", "Returned"):
            shipped_at = created_at + timedelta(hours=int(self.rng.integers(1, 24 * 6)))
        if status in ("Complete", "Returned"):
            delivered_at = shipped_at + timedelta(hours=int(self.rng.integers(12, 24 * 5)))
        if status == "Returned":
            returned_at = delivered_at + timedelta(hours=int(self.rng.integers(12, 24 * 10)))
        return shipped_at, delivered_at, returned_at

    def generate(self, n: int, end: datetime) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """Generate n orders placed after their user's signup and before end"""
        statuses = _choice(self.rng, ORDER_STATUSES, n)
        sizes = self.rng.choice(ITEMS_PER_ORDER[0], size=n, p=ITEMS_PER_ORDER[1])

        orders = []
        order_items = []
        item_id = 0

        for i in range(n):
            order_id = i + 1
            user_id, gender, signed_up = self.users[int(self.rng.integers(0, len(self.users)))]
            signed_up_at = datetime.strptime(signed_up[:19], "%Y-%m-%d %H:%M:%S")
            created_at = _random_datetime(self.rng, signed_up_at, end)
            status = statuses[i]
            shipped_at, delivered_at, returned_at = self._lifecycle(status, created_at)

            orders.append({
                "order_id": str(order_id),
                "user_id": user_id,
                "status": status,
                "gender": gender,
                "created_at": format_timestamp(created_at),
                "returned_at": format_timestamp(returned_at),
                "shipped_at": format_timestamp(shipped_at),
                "delivered_at": format_timestamp(delivered_at),
                "num_of_item": str(int(sizes[i])),
            })

            for _ in range(int(sizes[i])):
                item_id += 1
                product_id, retail_price = self.products[int(self.rng.integers(0, len(self.products)))]
                order_items.append({
                    "id": str(item_id),
                    "order_id": str(order_id),
                    "user_id": f"{user_id}.0",
                    "product_id": product_id,
                    "inventory_item_id": str(item_id),
                    "status": status,
                    "created_at": format_timestamp(created_at),
                    "shipped_at": format_timestamp(shipped_at),
                    "delivered_at": format_timestamp(delivered_at),
                    "returned_at": format_timestamp(returned_at),
                    "sale_price": retail_price,
                })

        return _frame(orders, ORDER_COLUMNS), _frame(order_items, ORDER_ITEM_COLUMNS)


def inject_dirty_rows(order_items: pl.DataFrame, n: int) -> pl.DataFrame:
    """
    Append n defective copies of existing order items.

    Defects cycle through: duplicate id, negative sale price, unparseable
    creation timestamp and a product id missing from the catalog.
    """
    if n <= 0 or order_items.is_empty():
        return order_items

    next_id = order_items.height
    rows = []
    for i in range(n):
        row = dict(order_items.row(i % order_items.height, named=True))
        defect = i % 4
        if defect != 0:
            next_id += 1
            row["id"] = str(next_id)
        if defect == 1:
            row["sale_price"] = f"-{row['sale_price']}"
        elif defect == 2:
            row["created_at"] = "not-a-timestamp"
        elif defect == 3:
            row["product_id"] = "999999"
        rows.append(row)

    return pl.concat([order_items, pl.DataFrame(rows, schema=order_items.schema)])


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DataGenerator:
    """Main data generator orchestrator"""

    def __init__(self, output_dir: Optional[str] = None, seed: int = 42):
        self.output_dir = Path(output_dir or settings.data_lake.raw_path)
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def generate_all(
        self,
        n_users: int = 1000,
        n_products: int = 300,
        n_orders: int = 3000,
        dirty_rows: int = 0,
        start_date: datetime = DEFAULT_START,
        end_date: datetime = DEFAULT_END,
        save: bool = True,
    ) -> Dict[str, pl.DataFrame]:
        """Generate the complete raw extract"""
        if n_users < 1 or n_products < 1:
            raise ValueError("At least one user and one product are required")
        if start_date >= end_date:
            raise ValueError("start_date must be before end_date")

        logger.info(
            "Generating synthetic TheLook data",
            users=n_users,
            products=n_products,
            orders=n_orders,
            seed=self.seed,
        )

        users_df = UserGenerator(self.rng, self.fake).generate(n_users, start_date, end_date)
        centers_df = DistributionCenterGenerator().generate()
        products_df = ProductGenerator(self.rng, self.fake).generate(n_products, centers_df.height)
        orders_df, order_items_df = OrderGenerator(self.rng, users_df, products_df).generate(
            n_orders, end_date
        )
        order_items_df = inject_dirty_rows(order_items_df, dirty_rows)

        data = {
            "users": users_df,
            "distribution_centers": centers_df,
            "products": products_df,
            "orders": orders_df,
            "order_items": order_items_df,
        }

        if save:
            self._save_data(data)

        logger.info("Data generation complete", **{name: len(df) for name, df in data.items()})
        return data

    def _save_data(self, data: Dict[str, pl.DataFrame]) -> None:
        """Save generated tables as CSV extracts"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for name, df in data.items():
            csv_path = self.output_dir / f"{name}.csv"
            df.write_csv(csv_path)
            logger.info(f"Saved {name}: {len(df)} rows -> {csv_path}")
