"""
Data Cleaning Module

Turns raw staging frames (all strings) into typed warehouse frames.
Handles:
- Whitespace trimming and empty-string nulls
- Identifier casting (including the ``123.0`` export artefact)
- Timestamp standardization (timezone suffix removal, 19-char truncation)
- Currency normalization and 2-decimal rounding
- Status case normalization
- Rejection of rows that fail validation, with a reason per row
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import polars as pl
import structlog

from thelook.warehouse.schema import (
    TIMESTAMP,
    OrderStatus,
    TableName,
    TableSchema,
    get_schema,
)

logger = structlog.get_logger(__name__)

ROW_INDEX = "_row_nr"
REJECT_REASON = "_reject_reason"
RAW_PREFIX = "_raw_"


@dataclass
class CleaningStats:
    """Statistics from cleaning operations"""
    total_rows: int
    rows_after_cleaning: int
    rows_rejected: int
    duplicates_removed: int
    malformed_timestamps: int


@dataclass
class CleanResult:
    """Typed frame, rejected raw rows and statistics for one table"""
    table: str
    frame: pl.DataFrame
    rejected: pl.DataFrame
    stats: CleaningStats

    @property
    def rejection_counts(self) -> Dict[str, int]:
        """Rejected row count per reason"""
        if self.rejected.is_empty():
            return {}
        counts = self.rejected.group_by(REJECT_REASON).len()
        return dict(zip(counts[REJECT_REASON].to_list(), counts["len"].to_list()))


def parse_identifier(column: str) -> pl.Expr:
    """Integer identifier, tolerating a trailing ``.0`` from float exports"""
    return (
        pl.col(column)
        .str.replace(r"\.0+$", "")
        .cast(pl.Int64, strict=False)
    )


def parse_timestamp(column: str) -> pl.Expr:
    """
    Timestamp parsed from ``YYYY-MM-DD HH:MM:SS[.ffffff][+00:00| UTC]``.

    The value is truncated to its first 19 characters, which drops fractional
    seconds and any timezone suffix. Date-only values parse to midnight.
    Anything else, including a valid date with a bad time, becomes null.
    """
    text = pl.col(column).str.replace("T", " ", literal=True)
    return pl.coalesce([
        text.str.slice(0, 19).str.strptime(TIMESTAMP, "%Y-%m-%d %H:%M:%S", strict=False),
        pl.when(text.str.len_chars() == 10).then(
            text.str.strptime(pl.Date, "%Y-%m-%d", strict=False).cast(TIMESTAMP)
        ),
    ])


def parse_money(column: str) -> pl.Expr:
    """Currency value without symbols or separators, rounded to cents; NaN and infinity become null"""
    value = (
        pl.col(column)
        .str.replace_all(r"[$€£¥,\s]", "")
        .cast(pl.Float64, strict=False)
    )
    return pl.when(value.is_finite()).then(value.round(2))


def parse_float(column: str) -> pl.Expr:
    return pl.col(column).cast(pl.Float64, strict=False)


class DataCleaner:
    """
    Parse-and-validate step between staging and the warehouse snapshot.

    Invalid rows are never coerced silently: they are moved to the
    ``rejected`` frame with a ``_reject_reason`` and the rest of the batch
    proceeds.

    Example:
        cleaner = DataCleaner()
        result = cleaner.clean(raw_order_items, "order_items")
        result.frame      # typed rows
        result.rejected   # raw rows that failed validation
    """

    def _trim_strings(self, df: pl.DataFrame) -> pl.DataFrame:
        """Trim whitespace from string columns and turn empty strings into nulls"""
        string_cols = [
            col for col, dtype in zip(df.columns, df.dtypes)
            if dtype == pl.Utf8
        ]

        return df.with_columns([
            pl.when(pl.col(col).str.strip_chars() == "")
            .then(None)
            .otherwise(pl.col(col).str.strip_chars())
            .alias(col)
            for col in string_cols
        ])

    def _conform_columns(self, df: pl.DataFrame, schema: TableSchema) -> pl.DataFrame:
        """Add missing schema columns as nulls and drop unknown ones"""
        missing = [c for c in schema.columns if c not in df.columns]
        if missing:
            logger.warning(
                "Raw table is missing columns, filling with nulls",
                table=schema.name.value,
                columns=missing,
            )
            df = df.with_columns([pl.lit(None, dtype=pl.Utf8).alias(c) for c in missing])

        extra = [c for c in df.columns if c not in schema.columns and c != ROW_INDEX]
        if extra:
            logger.debug("Dropping unknown raw columns", table=schema.name.value, columns=extra)

        return df.select([ROW_INDEX] + list(schema.columns)).with_columns(
            pl.all().exclude(ROW_INDEX).cast(pl.Utf8)
        )

    def _cast_columns(self, df: pl.DataFrame, schema: TableSchema) -> pl.DataFrame:
        """Cast every column to its typed layout, keeping raw copies of parsed columns"""
        parsed = {}
        for col in schema.id_columns:
            parsed[col] = parse_identifier(col)
        for col in schema.float_columns:
            parsed[col] = parse_money(col) if col in schema.money_columns else parse_float(col)
        for col in schema.timestamp_columns:
            parsed[col] = parse_timestamp(col)
        if schema.status_column:
            col = schema.status_column
            parsed[col] = pl.col(col).str.to_lowercase()

        df = df.with_columns([pl.col(c).alias(f"{RAW_PREFIX}{c}") for c in parsed])
        return df.with_columns([expr.alias(col) for col, expr in parsed.items()])

    def _reject_reasons(self, schema: TableSchema) -> List[pl.Expr]:
        """Rejection rules in precedence order; the first matching rule names the reason"""
        rules = []
        parsed = self._parsed_columns(schema)

        for col in schema.required:
            if col in parsed:
                rules.append(
                    pl.when(pl.col(f"{RAW_PREFIX}{col}").is_not_null() & pl.col(col).is_null())
                    .then(pl.lit(f"invalid_{col}"))
                )
            rules.append(pl.when(pl.col(col).is_null()).then(pl.lit(f"missing_{col}")))

        for col in schema.money_columns:
            rules.append(pl.when(pl.col(col) < 0).then(pl.lit(f"negative_{col}")))

        if schema.status_column:
            allowed = [s.value for s in OrderStatus]
            rules.append(
                pl.when(
                    pl.col(schema.status_column).is_not_null()
                    & ~pl.col(schema.status_column).is_in(allowed)
                ).then(pl.lit("invalid_status"))
            )

        for earlier, later in schema.lifecycle:
            rules.append(pl.when(pl.col(later) < pl.col(earlier)).then(pl.lit("lifecycle_order")))

        return rules

    def _parsed_columns(self, schema: TableSchema) -> List[str]:
        cols = schema.id_columns + schema.float_columns + schema.timestamp_columns
        if schema.status_column:
            cols.append(schema.status_column)
        return cols

    def _count_malformed_timestamps(self, df: pl.DataFrame, schema: TableSchema) -> int:
        """Timestamps that were present in the raw data but failed to parse"""
        if not schema.timestamp_columns:
            return 0
        counts = df.select([
            (pl.col(f"{RAW_PREFIX}{c}").is_not_null() & pl.col(c).is_null()).sum().alias(c)
            for c in schema.timestamp_columns
        ])
        return int(sum(counts.row(0)))

    def clean(self, df: pl.DataFrame, table: "str | TableName") -> CleanResult:
        """
        Clean one raw staging frame.

        Args:
            df: Raw frame with string columns
            table: Warehouse table name

        Returns:
            CleanResult with typed rows, rejected raw rows and statistics
        """
        schema = get_schema(table)
        total_rows = len(df)

        raw = df.with_row_index(ROW_INDEX)
        staged = self._conform_columns(raw, schema)
        staged = self._trim_strings(staged)
        typed = self._cast_columns(staged, schema)

        malformed = self._count_malformed_timestamps(typed, schema)

        typed = typed.with_columns(
            pl.coalesce(self._reject_reasons(schema)).alias(REJECT_REASON)
        )

        # Duplicates are judged only among rows that pass every other rule
        pk = schema.primary_key
        duplicate_rows = (
            typed.filter(pl.col(REJECT_REASON).is_null())
            .filter(~pl.col(pk).is_first_distinct())
            .get_column(ROW_INDEX)
        )
        typed = typed.with_columns(
            pl.when(pl.col(ROW_INDEX).is_in(duplicate_rows))
            .then(pl.lit(f"duplicate_{pk}"))
            .otherwise(pl.col(REJECT_REASON))
            .alias(REJECT_REASON)
        )

        reasons = typed.filter(pl.col(REJECT_REASON).is_not_null()).select([ROW_INDEX, REJECT_REASON])
        rejected = (
            raw.join(reasons, on=ROW_INDEX, how="inner")
            .sort(ROW_INDEX)
            .drop(ROW_INDEX)
        )

        clean_df = (
            typed.filter(pl.col(REJECT_REASON).is_null())
            .sort(ROW_INDEX)
            .select([pl.col(c).cast(t) for c, t in schema.columns.items()])
        )

        duplicates = reasons.filter(pl.col(REJECT_REASON) == f"duplicate_{pk}").height
        stats = CleaningStats(
            total_rows=total_rows,
            rows_after_cleaning=len(clean_df),
            rows_rejected=len(rejected),
            duplicates_removed=duplicates,
            malformed_timestamps=malformed,
        )

        result = CleanResult(
            table=schema.name.value,
            frame=clean_df,
            rejected=rejected,
            stats=stats,
        )

        if stats.rows_rejected:
            logger.warning(
                f"Rejected {stats.rows_rejected} of {total_rows} rows",
                table=schema.name.value,
                reasons=result.rejection_counts,
            )
        logger.info(
            "Table cleaned",
            table=schema.name.value,
            rows_in=total_rows,
            rows_out=stats.rows_after_cleaning,
            malformed_timestamps=malformed,
        )

        return result


def clean_tables(
    raw_tables: Dict[str, pl.DataFrame],
    cleaner: Optional[DataCleaner] = None,
) -> Dict[str, CleanResult]:
    """
    Convenience function to clean several raw tables.

    Args:
        raw_tables: Raw staging frames keyed by table name
        cleaner: Cleaner to use (a new one by default)

    Returns:
        CleanResult per table name
    """
    cleaner = cleaner or DataCleaner()
    return {
        table: cleaner.clean(df, table)
        for table, df in raw_tables.items()
    }
