"""
Data Validation Module

Rule-based data quality checks over the typed warehouse tables.
Implements validation patterns inspired by Great Expectations.

Features:
- Null, uniqueness and range checks
- Allowed-value and pattern checks
- Lifecycle chronology checks
- Referential integrity checks across the star schema
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - blocks pipeline when configured
    WARNING = "warning"  # Non-critical - logged but continues
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100

    @property
    def failures(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


class DataValidator:
    """
    Data validator with a chainable check suite.

    Validates data quality through:
    - Null checks
    - Range/boundary checks
    - Uniqueness checks
    - Pattern matching
    - Lifecycle chronology
    - Referential integrity

    Example:
        validator = DataValidator()
        validator.add_not_null_check("order_id")
        validator.add_range_check("sale_price", min_value=0)
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable] = []

    def reset(self) -> None:
        """Reset validator state"""
        self._checks = []

    def _missing_column(self, name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
        return ValidationCheck(
            name=name,
            passed=False,
            severity=severity,
            message=f"Column '{column}' not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            null_count = df[column].null_count()
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count, "null_percentage": (null_count / total) * 100 if total > 0 else 0},
                failed_rows=null_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            total = len(df)
            unique_count = df[column].n_unique()
            duplicate_count = total - unique_count
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {duplicate_count} duplicate values" if not passed else f"Column '{column}' values are unique",
                details={"unique_count": unique_count, "duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"range_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            # Combine conditions with OR
            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            total = len(df)
            passed = out_of_range == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = True,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for non-negative (or strictly positive) values"""
        min_val = 0 if allow_zero else 0.0001
        return self.add_range_check(column, min_value=min_val, severity=severity)

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add regex pattern check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"pattern_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            non_matching = df.filter(
                ~pl.col(column).str.contains(pattern) & pl.col(column).is_not_null()
            ).height
            total = df.filter(pl.col(column).is_not_null()).height
            passed = non_matching == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {non_matching} values not matching pattern" if not passed else "All values match pattern",
                details={"pattern": pattern, "non_matching_count": non_matching},
                failed_rows=non_matching,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        case_insensitive: bool = False,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"enum_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            values = pl.col(column)
            allowed = allowed_values
            if case_insensitive:
                values = values.str.to_lowercase()
                allowed = [str(v).lower() for v in allowed_values]

            invalid = df.filter(
                ~values.is_in(allowed) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} invalid values" if not passed else "All values are valid",
                details={"allowed_values": allowed_values, "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_chronology_check(
        self,
        earlier: str,
        later: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that ``earlier`` never comes after ``later`` when both are set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"chronology_{earlier}_{later}"
            for column in (earlier, later):
                if column not in df.columns:
                    return self._missing_column(name, column, severity)

            reversed_rows = df.filter(pl.col(later) < pl.col(earlier)).height
            total = df.filter(pl.col(earlier).is_not_null() & pl.col(later).is_not_null()).height
            passed = reversed_rows == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{reversed_rows} rows have '{later}' before '{earlier}'" if not passed else "Lifecycle order maintained",
                details={"reversed_count": reversed_rows},
                failed_rows=reversed_rows,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
                return ValidationCheck(
                    name=name,
                    passed=passed,
                    severity=severity,
                    message="Check passed" if passed else message_on_fail,
                    total_rows=len(df),
                )
            except Exception as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )

        self._checks.append(check)
        return self

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Add referential integrity check (orphan foreign keys)"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"ref_integrity_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            ref_values = reference_df[reference_column].drop_nulls().unique()

            orphans = df.filter(
                ~pl.col(column).is_in(ref_values) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = orphans == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {orphans} orphan records" if not passed else "Referential integrity maintained",
                details={"orphan_count": orphans},
                failed_rows=orphans,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame, name: str = "dataframe") -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate
            name: Label used in log output

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        logger.info(f"Running {len(self._checks)} validation checks on {len(df)} rows", table=name)

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    table=name,
                    message=result.message,
                    severity=result.severity.value,
                )

        completed_at = datetime.utcnow()

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        validation_result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )

        logger.info(
            f"Validation complete: {status.value}",
            table=name,
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return validation_result


# Pre-built validators for the warehouse tables
STATUS_VALUES = [s.value for s in OrderStatus]
LIFECYCLE = [
    ("created_at", "shipped_at"),
    ("shipped_at", "delivered_at"),
    ("created_at", "returned_at"),
]


def create_users_validator() -> DataValidator:
    """Create pre-configured validator for users"""
    return (
        DataValidator()
        .add_not_null_check("id")
        .add_unique_check("id")
        .add_pattern_check("email", r"^[^@\s]+@[^@\s]+\.[^@\s]+$", severity=ValidationSeverity.WARNING)
        .add_range_check("age", min_value=0, max_value=120, severity=ValidationSeverity.WARNING)
        .add_not_null_check("created_at", severity=ValidationSeverity.WARNING)
    )


def create_distribution_centers_validator() -> DataValidator:
    """Create pre-configured validator for distribution centers"""
    return (
        DataValidator()
        .add_not_null_check("id")
        .add_unique_check("id")
        .add_range_check("latitude", min_value=-90, max_value=90, severity=ValidationSeverity.WARNING)
        .add_range_check("longitude", min_value=-180, max_value=180, severity=ValidationSeverity.WARNING)
    )


def create_products_validator(distribution_centers: Optional[pl.DataFrame] = None) -> DataValidator:
    """Create pre-configured validator for products"""
    validator = (
        DataValidator()
        .add_not_null_check("id")
        .add_unique_check("id")
        .add_positive_check("cost")
        .add_positive_check("retail_price")
        .add_not_null_check("category", severity=ValidationSeverity.WARNING)
    )
    if distribution_centers is not None:
        validator.add_referential_integrity_check("distribution_center_id", distribution_centers, "id")
    return validator


def create_orders_validator(users: Optional[pl.DataFrame] = None) -> DataValidator:
    """Create pre-configured validator for orders"""
    validator = (
        DataValidator()
        .add_not_null_check("order_id")
        .add_unique_check("order_id")
        .add_not_null_check("user_id")
        .add_enum_check("status", STATUS_VALUES, case_insensitive=True)
        .add_positive_check("num_of_item", allow_zero=False, severity=ValidationSeverity.WARNING)
    )
    for earlier, later in LIFECYCLE:
        validator.add_chronology_check(earlier, later)
    if users is not None:
        validator.add_referential_integrity_check("user_id", users, "id")
    return validator


def create_order_items_validator(
    orders: Optional[pl.DataFrame] = None,
    users: Optional[pl.DataFrame] = None,
    products: Optional[pl.DataFrame] = None,
) -> DataValidator:
    """Create pre-configured validator for order items"""
    validator = (
        DataValidator()
        .add_not_null_check("id")
        .add_unique_check("id")
        .add_not_null_check("order_id")
        .add_positive_check("sale_price")
        .add_enum_check("status", STATUS_VALUES, case_insensitive=True)
        .add_not_null_check("created_at", severity=ValidationSeverity.WARNING)
    )
    for earlier, later in LIFECYCLE:
        validator.add_chronology_check(earlier, later)
    if orders is not None:
        validator.add_referential_integrity_check("order_id", orders, "order_id")
    if users is not None:
        validator.add_referential_integrity_check("user_id", users, "id")
    if products is not None:
        validator.add_referential_integrity_check("product_id", products, "id")
    return validator


def validate_snapshot(snapshot: WarehouseSnapshot) -> Dict[str, ValidationResult]:
    """
    Run the pre-built validator of every table against a snapshot.

    Args:
        snapshot: Warehouse snapshot to check

    Returns:
        ValidationResult per table name
    """
    validators = {
        "users": create_users_validator(),
        "distribution_centers": create_distribution_centers_validator(),
        "products": create_products_validator(snapshot.distribution_centers),
        "orders": create_orders_validator(snapshot.users),
        "order_items": create_order_items_validator(
            snapshot.orders, snapshot.users, snapshot.products
        ),
    }
    return {
        table: validator.validate(snapshot.table(table), name=table)
        for table, validator in validators.items()
    }
