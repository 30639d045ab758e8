"""
Unit Tests - Data Quality
"""
from dataclasses import replace
from datetime import datetime

import pytest
import polars as pl

from thelook.quality.validators import (
    DataValidator,
    ValidationSeverity,
    ValidationStatus,
    create_order_items_validator,
    create_orders_validator,
    validate_snapshot,
)


class TestDataValidator:
    """Tests for DataValidator"""

    def test_not_null_check_passes(self):
        """Test not null check with valid data"""
        df = pl.DataFrame({"id": [1, 2, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.PASSED
        assert result.passed_checks == 1

    def test_not_null_check_fails(self):
        """Test not null check with null values"""
        df = pl.DataFrame({"id": [1, None, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.failed_checks == 1
        assert result.failures[0].failed_rows == 1

    def test_unique_check_fails(self):
        """Test unique check with duplicates"""
        df = pl.DataFrame({"id": [1, 2, 2, 3]})

        result = DataValidator().add_unique_check("id").validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.checks[0].details["duplicate_count"] == 1

    def test_range_check(self):
        """Test range check with out-of-range values"""
        df = pl.DataFrame({"age": [10, 50, 130]})

        result = DataValidator().add_range_check("age", min_value=0, max_value=120).validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.checks[0].failed_rows == 1

    def test_positive_check_allows_zero(self):
        """Test positive check treats zero as valid by default"""
        df = pl.DataFrame({"sale_price": [0.0, 10.0]})

        result = DataValidator().add_positive_check("sale_price").validate(df)

        assert result.status == ValidationStatus.PASSED

    def test_pattern_check_ignores_nulls(self):
        """Test pattern check skips null values"""
        df = pl.DataFrame({"email": ["a@b.com", None, "broken"]})

        result = DataValidator().add_pattern_check("email", r"^[^@]+@[^@]+\.[a-z]+$").validate(df)

        assert result.checks[0].failed_rows == 1
        assert result.checks[0].total_rows == 2

    def test_enum_check_case_insensitive(self):
        """Test status comparison ignores case"""
        df = pl.DataFrame({"status": ["Complete", "RETURNED", "cancelled"]})

        strict = DataValidator().add_enum_check("status", ["complete", "returned", "cancelled"]).validate(df)
        relaxed = DataValidator().add_enum_check(
            "status", ["complete", "returned", "cancelled"], case_insensitive=True
        ).validate(df)

        assert strict.status == ValidationStatus.FAILED
        assert relaxed.status == ValidationStatus.PASSED

    def test_chronology_check(self):
        """Test lifecycle order violations are counted"""
        df = pl.DataFrame({
            "created_at": [datetime(2023, 1, 2), datetime(2023, 1, 5), datetime(2023, 1, 1)],
            "shipped_at": [datetime(2023, 1, 3), datetime(2023, 1, 4), None],
        })

        result = DataValidator().add_chronology_check("created_at", "shipped_at").validate(df)

        assert result.checks[0].failed_rows == 1
        assert result.checks[0].total_rows == 2

    def test_referential_integrity_is_warning(self):
        """Test orphan references produce a partial result, not a failure"""
        items = pl.DataFrame({"product_id": [1, 2, 99]})
        products = pl.DataFrame({"id": [1, 2]})

        result = DataValidator().add_referential_integrity_check("product_id", products, "id").validate(items)

        assert result.status == ValidationStatus.PARTIAL
        assert result.warning_count == 1
        assert result.checks[0].details["orphan_count"] == 1

    def test_strict_mode_fails_on_warning(self):
        """Test strict mode escalates warnings"""
        df = pl.DataFrame({"id": [1, None]})

        result = DataValidator(strict_mode=True).add_not_null_check(
            "id", severity=ValidationSeverity.WARNING
        ).validate(df)

        assert result.status == ValidationStatus.FAILED

    def test_missing_column(self):
        """Test a check on an absent column fails"""
        result = DataValidator().add_not_null_check("missing").validate(pl.DataFrame({"id": [1]}))

        assert result.status == ValidationStatus.FAILED
        assert "not found" in result.checks[0].message

    def test_custom_check(self):
        """Test custom check with a raising function"""
        df = pl.DataFrame({"id": [1, 2]})

        result = (
            DataValidator()
            .add_custom_check("has_rows", lambda d: len(d) > 0, "No rows")
            .add_custom_check("broken", lambda d: d["nope"].sum() > 0, "Broken")
            .validate(df)
        )

        assert result.passed_checks == 1
        assert result.failures[0].name == "broken"

    def test_success_rate(self):
        """Test success rate calculation"""
        df = pl.DataFrame({"id": [1, 2, 2]})

        result = DataValidator().add_not_null_check("id").add_unique_check("id").validate(df)

        assert result.success_rate == pytest.approx(50.0)


class TestPrebuiltValidators:
    """Tests for the warehouse table validators"""

    def test_orders_validator_passes(self, orders_df, users_df):
        """Test sample orders pass, including upper-case statuses"""
        result = create_orders_validator(users_df).validate(orders_df)
        assert result.status == ValidationStatus.PASSED

    def test_order_items_orphans(self, order_items_df, orders_df, users_df, products_df):
        """Test an item pointing at an unknown product is flagged"""
        orphan = order_items_df.head(1).with_columns(
            pl.lit(12, dtype=pl.Int64).alias("id"),
            pl.lit(99, dtype=pl.Int64).alias("product_id"),
        )
        items = pl.concat([order_items_df, orphan])

        result = create_order_items_validator(orders_df, users_df, products_df).validate(items)

        assert result.status == ValidationStatus.PARTIAL
        assert [c.name for c in result.failures] == ["ref_integrity_product_id"]

    def test_validate_snapshot(self, snapshot):
        """Test every table of the sample snapshot passes"""
        results = validate_snapshot(snapshot)

        assert set(results) == {"users", "distribution_centers", "products", "orders", "order_items"}
        assert all(r.status == ValidationStatus.PASSED for r in results.values())

    def test_validate_snapshot_negative_price(self, snapshot):
        """Test a negative sale price fails the order item suite"""
        items = snapshot.order_items.with_columns(
            pl.when(pl.col("id") == 1).then(-1.0).otherwise(pl.col("sale_price")).alias("sale_price")
        )
        results = validate_snapshot(replace(snapshot, order_items=items))

        assert results["order_items"].status == ValidationStatus.FAILED
        assert results["users"].status == ValidationStatus.PASSED
