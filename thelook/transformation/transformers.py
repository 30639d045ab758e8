"""
Warehouse Transformer

Orchestrates the raw-to-typed step for every warehouse table: cleaning,
dead-lettering of rejected rows, optional curated output and assembly of
the immutable snapshot the reports run against.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.ingestion.batch_loader import BatchLoader
from thelook.warehouse.snapshot import WarehouseSnapshot
from .cleaners import CleanResult, CleaningStats, DataCleaner

logger = structlog.get_logger(__name__)
settings = get_settings()


@dataclass
class TransformResult:
    """Result of transforming one table"""
    table: str
    input_rows: int
    output_rows: int
    rows_dropped: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    stats: CleaningStats
    rejection_counts: Dict[str, int] = field(default_factory=dict)
    dead_letter_path: Optional[str] = None
    output_path: Optional[str] = None


class WarehouseTransformer:
    """
    Raw-to-typed transformation for the warehouse tables.

    Coordinates cleaning, rejected row handling and output generation.

    Example:
        transformer = WarehouseTransformer()
        snapshot, results = transformer.transform(raw_tables)
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        write_curated: bool = False,
        dead_letter: bool = True,
        loader: Optional[BatchLoader] = None,
        cleaner: Optional[DataCleaner] = None,
    ):
        self.output_path = Path(output_path or settings.data_lake.curated_path)
        self.write_curated = write_curated
        self.dead_letter = dead_letter
        self.loader = loader or BatchLoader()
        self.cleaner = cleaner or DataCleaner()

    def _write_output(self, df: pl.DataFrame, name: str) -> str:
        """Write a typed table to the curated zone"""
        self.output_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        output_file = self.output_path / f"{name}_{timestamp}.parquet"

        df.write_parquet(output_file)
        logger.info(f"Written {len(df)} rows to {output_file}")

        return str(output_file)

    def transform_table(self, df: pl.DataFrame, table: str) -> "tuple[CleanResult, TransformResult]":
        """
        Clean one raw table.

        Pipeline:
        1. Parse and validate every row
        2. Send rejected rows to the dead letter directory
        3. Optionally write the typed table to the curated zone
        """
        started_at = datetime.utcnow()
        logger.info(f"Starting {table} transformation with {len(df)} rows")

        cleaned = self.cleaner.clean(df, table)

        dead_letter_file = None
        if self.dead_letter and not cleaned.rejected.is_empty():
            path = self.loader.write_dead_letter(cleaned.rejected, table, reason="rejected")
            dead_letter_file = str(path) if path else None

        output_file = None
        if self.write_curated:
            output_file = self._write_output(cleaned.frame, f"{table}_curated")

        completed_at = datetime.utcnow()
        result = TransformResult(
            table=cleaned.table,
            input_rows=cleaned.stats.total_rows,
            output_rows=cleaned.stats.rows_after_cleaning,
            rows_dropped=cleaned.stats.rows_rejected,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            stats=cleaned.stats,
            rejection_counts=cleaned.rejection_counts,
            dead_letter_path=dead_letter_file,
            output_path=output_file,
        )
        return cleaned, result

    def transform(
        self,
        raw_tables: Dict[str, pl.DataFrame],
    ) -> "tuple[WarehouseSnapshot, Dict[str, TransformResult]]":
        """
        Clean every raw table and build the warehouse snapshot.

        Args:
            raw_tables: Raw staging frames keyed by table name

        Returns:
            The snapshot and a TransformResult per table
        """
        frames: Dict[str, pl.DataFrame] = {}
        results: Dict[str, TransformResult] = {}

        for table, df in raw_tables.items():
            cleaned, result = self.transform_table(df, table)
            frames[cleaned.table] = cleaned.frame
            results[cleaned.table] = result

        dropped = sum(r.rows_dropped for r in results.values())
        logger.info(
            "Warehouse transformation completed",
            tables=len(results),
            rows_dropped=dropped,
        )

        return WarehouseSnapshot.from_tables(frames), results

    def summary(self, results: Dict[str, TransformResult]) -> List[Dict[str, object]]:
        """Flat per-table summary rows"""
        return [
            {
                "table": r.table,
                "input_rows": r.input_rows,
                "output_rows": r.output_rows,
                "rows_dropped": r.rows_dropped,
                "duplicates_removed": r.stats.duplicates_removed,
                "malformed_timestamps": r.stats.malformed_timestamps,
            }
            for r in results.values()
        ]
