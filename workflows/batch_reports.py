"""
Prefect Workflow Orchestration - Batch Reports

Workflow for the warehouse report batch with:
- Retries on the file loading step
- Dead-lettering of rejected rows
- Data quality checks
- Report export
"""

from typing import Dict, List, Optional

import polars as pl
from prefect import flow, get_run_logger, task

from thelook.config import get_settings
from thelook.ingestion.batch_loader import BatchLoader, FileFormat
from thelook.analytics.catalog import resolve_reports
from thelook.pipeline import REQUIRED_TABLES, build_reports, validation_errors
from thelook.quality.validators import validate_snapshot
from thelook.reporting.reports import ReportWriter
from thelook.transformation.transformers import WarehouseTransformer
from thelook.warehouse.snapshot import WarehouseSnapshot

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="load_raw_tables",
    description="Load the raw warehouse extracts",
    retries=3,
    retry_delay_seconds=60,
)
def load_raw_tables(source_dir: str, file_format: str = "csv") -> Dict[str, pl.DataFrame]:
    """Load raw extracts; fail when a required table is unavailable"""
    logger = get_run_logger()

    loaded = BatchLoader().load_directory(source_dir, FileFormat(file_format))

    successful = sum(1 for t in loaded.values() if t.ok)
    failed = len(loaded) - successful
    logger.info(f"Raw load complete: {successful} succeeded, {failed} failed")

    missing = [t.value for t in REQUIRED_TABLES if not loaded[t.value].ok]
    if missing:
        raise FileNotFoundError(f"Required tables could not be loaded: {missing}")

    return {table: t.frame for table, t in loaded.items() if t.ok}


@task(
    name="transform_tables",
    description="Clean raw tables into the typed warehouse snapshot",
)
def transform_tables(raw_tables: Dict[str, pl.DataFrame]) -> WarehouseSnapshot:
    """Clean raw tables and dead-letter rejected rows"""
    logger = get_run_logger()

    snapshot, results = WarehouseTransformer().transform(raw_tables)
    for result in results.values():
        logger.info(
            f"{result.table}: {result.input_rows} -> {result.output_rows} rows "
            f"({result.rows_dropped} rejected)"
        )
    return snapshot


@task(
    name="validate_snapshot",
    description="Run data quality validations",
)
def validate_data(snapshot: WarehouseSnapshot, fail_on_error: bool = False) -> dict:
    """Validate every table of the snapshot"""
    logger = get_run_logger()

    results = validate_snapshot(snapshot)
    errors = validation_errors(results)

    for table, result in results.items():
        logger.info(
            f"Validation {table} {result.status.value}: "
            f"{result.passed_checks}/{result.total_checks} checks passed"
        )

    if errors and fail_on_error:
        raise ValueError(f"Data quality checks failed: {errors}")

    return {
        "passed": not errors,
        "errors": errors,
        "tables": {table: result.status.value for table, result in results.items()},
    }


@task(
    name="build_and_write_reports",
    description="Run the report catalog and export the results",
)
def build_and_write_reports(
    snapshot: WarehouseSnapshot,
    reports: Optional[List[str]] = None,
    output_dir: Optional[str] = None,
    report_format: Optional[str] = None,
) -> Dict[str, str]:
    """Build reports and return the written file per report"""
    logger = get_run_logger()

    built = build_reports(snapshot, reports)
    written = ReportWriter(output_dir, report_format).write_all(built)

    logger.info(f"Written {len(written)} reports")
    return {name: str(path) for name, path in written.items()}


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="warehouse_reports",
    description="Batch report run over the TheLook warehouse extracts",
)
def warehouse_reports(
    source_dir: Optional[str] = None,
    reports: Optional[List[str]] = None,
    output_dir: Optional[str] = None,
    report_format: Optional[str] = None,
) -> dict:
    """
    Warehouse report pipeline.

    Steps:
    1. Load raw extracts
    2. Clean into a typed snapshot
    3. Validate data quality
    4. Build and export reports
    """
    logger = get_run_logger()

    # Unknown report names fail before any extract is read
    if reports is not None:
        reports = [d.name for d in resolve_reports(reports)]

    source_dir = source_dir or settings.data_lake.raw_path
    logger.info(f"Starting warehouse reports from {source_dir}")

    raw_tables = load_raw_tables(source_dir)
    snapshot = transform_tables(raw_tables)

    quality = None
    if settings.data_quality.enable_data_quality_checks:
        quality = validate_data(snapshot, settings.data_quality.fail_on_validation_error)

    written = build_and_write_reports(snapshot, reports, output_dir, report_format)

    return {
        "status": "success",
        "row_counts": snapshot.row_counts(),
        "quality": quality,
        "reports": written,
    }


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    warehouse_reports()
