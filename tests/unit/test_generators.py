"""
Unit Tests - Synthetic Data Generator
"""
from datetime import datetime

import pytest
import polars as pl

from thelook.data.generators import DataGenerator, format_timestamp, inject_dirty_rows
from thelook.transformation.cleaners import clean_tables


@pytest.fixture(scope="module")
def generated():
    return DataGenerator(seed=7).generate_all(n_users=40, n_products=25, n_orders=120, save=False)


class TestDataGenerator:
    """Tests for DataGenerator"""

    def test_tables_are_raw_strings(self, generated):
        """Test every table is delivered as string columns"""
        assert set(generated) == {"users", "distribution_centers", "products", "orders", "order_items"}
        for df in generated.values():
            assert all(dtype == pl.Utf8 for dtype in df.dtypes)

    def test_sizes(self, generated):
        """Test requested row counts"""
        assert generated["users"].height == 40
        assert generated["products"].height == 25
        assert generated["orders"].height == 120
        assert generated["distribution_centers"].height == 10
        assert generated["order_items"].height >= 120

    def test_deterministic(self, generated):
        """Test the same seed reproduces the same extract"""
        again = DataGenerator(seed=7).generate_all(n_users=40, n_products=25, n_orders=120, save=False)
        for name, df in generated.items():
            assert df.equals(again[name])

    def test_export_formatting(self, generated):
        """Test the raw export conventions"""
        items = generated["order_items"]

        assert items["user_id"].str.ends_with(".0").all()
        assert items["created_at"].str.ends_with("+00:00").all()
        assert set(items["status"].unique()) <= {"Complete", "Shipped", "Processing", "Cancelled", "Returned"}

    def test_generated_data_is_clean(self, generated):
        """Test nothing in a clean extract is rejected"""
        results = clean_tables(generated)
        assert all(result.stats.rows_rejected == 0 for result in results.values())

    def test_items_match_orders(self, generated):
        """Test item counts agree with order headers"""
        orders = generated["orders"]
        items = generated["order_items"]

        assert orders["num_of_item"].cast(pl.Int64).sum() == items.height

    def test_save(self, tmp_path):
        """Test tables are written as CSV extracts"""
        DataGenerator(output_dir=str(tmp_path), seed=1).generate_all(n_users=5, n_products=5, n_orders=5)
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "distribution_centers.csv",
            "order_items.csv",
            "orders.csv",
            "products.csv",
            "users.csv",
        ]

    def test_invalid_arguments(self):
        """Test argument validation"""
        with pytest.raises(ValueError):
            DataGenerator().generate_all(n_users=0, save=False)
        with pytest.raises(ValueError):
            DataGenerator().generate_all(
                start_date=datetime(2024, 1, 1), end_date=datetime(2023, 1, 1), save=False
            )


class TestDirtyRows:
    """Tests for defect injection"""

    def test_defects_are_rejected_or_flagged(self, generated):
        """Test each injected defect lands where the cleaner puts it"""
        items = inject_dirty_rows(generated["order_items"], 8)
        result = clean_tables({"order_items": items})["order_items"]

        assert items.height == generated["order_items"].height + 8
        assert result.rejection_counts == {"duplicate_id": 2, "negative_sale_price": 2}
        assert result.stats.malformed_timestamps == 2
        assert result.frame.filter(pl.col("product_id") == 999999).height == 2

    def test_no_rows(self, generated):
        """Test zero defects leaves the frame untouched"""
        assert inject_dirty_rows(generated["order_items"], 0).equals(generated["order_items"])

    def test_format_timestamp(self):
        """Test the export timestamp format"""
        assert format_timestamp(datetime(2023, 1, 5, 10, 0, 0)) == "2023-01-05 10:00:00+00:00"
        assert format_timestamp(None) is None
