"""
Report Pipeline

Batch job from raw extracts to written reports:

1. Load the raw CSV/JSONL/Parquet extracts as string frames
2. Clean them into typed tables, dead-lettering rejected rows
3. Run the data quality suites
4. Build the immutable warehouse snapshot
5. Run the selected reports and write them out
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import polars as pl
import structlog

from thelook.analytics.catalog import resolve_reports
from thelook.config import get_settings
from thelook.ingestion.batch_loader import BatchLoader, FileFormat, LoadResult
from thelook.quality.validators import ValidationResult, ValidationSeverity, validate_snapshot
from thelook.reporting.reports import Report, ReportWriter
from thelook.transformation.transformers import TransformResult, WarehouseTransformer
from thelook.warehouse.schema import TableName
from thelook.warehouse.snapshot import WarehouseSnapshot

logger = structlog.get_logger(__name__)
settings = get_settings()

# Reports cannot be built without these; the other tables degrade to empty
REQUIRED_TABLES = (TableName.ORDER_ITEMS, TableName.PRODUCTS, TableName.USERS)


def validation_errors(results: Dict[str, ValidationResult]) -> List[str]:
    """Names of failed error-level checks, prefixed by table"""
    return [
        f"{table}.{check.name}"
        for table, result in results.items()
        for check in result.failures
        if check.severity == ValidationSeverity.ERROR
    ]


@dataclass
class PipelineResult:
    """Outcome of one pipeline run"""
    started_at: datetime
    completed_at: Optional[datetime] = None
    load_results: Dict[str, LoadResult] = field(default_factory=dict)
    transform_results: Dict[str, TransformResult] = field(default_factory=dict)
    validation: Dict[str, ValidationResult] = field(default_factory=dict)
    reports: List[Report] = field(default_factory=list)
    written: Dict[str, Path] = field(default_factory=dict)
    snapshot: Optional[WarehouseSnapshot] = None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def rows_rejected(self) -> int:
        return sum(r.rows_dropped for r in self.transform_results.values())

    @property
    def validation_errors(self) -> List[str]:
        return validation_errors(self.validation)

    def report(self, name: str) -> Report:
        for report in self.reports:
            if report.name == name:
                return report
        raise KeyError(name)


def build_reports(
    snapshot: WarehouseSnapshot,
    names: Optional[Iterable[str]] = None,
) -> List[Report]:
    """
    Run reports against a snapshot.

    Args:
        snapshot: Warehouse snapshot
        names: Report names (all catalog reports by default)

    Returns:
        One Report per requested name, in request order
    """
    reports = []
    for definition in resolve_reports(names):
        frame = definition.build(snapshot)
        reports.append(Report(name=definition.name, title=definition.title, frame=frame))
        logger.debug("Report built", report=definition.name, rows=frame.height)

    logger.info(f"Built {len(reports)} reports")
    return reports


class ReportPipeline:
    """
    End-to-end batch pipeline over a directory of raw extracts.

    Example:
        pipeline = ReportPipeline(raw_path="data/raw")
        result = pipeline.run(["rfm_segments", "order_value_segments"])
    """

    def __init__(
        self,
        raw_path: Optional[Union[str, Path]] = None,
        reports_path: Optional[Union[str, Path]] = None,
        input_format: Union[str, FileFormat] = FileFormat.CSV,
        report_format: Optional[str] = None,
        write_reports: bool = True,
        dead_letter: bool = True,
        run_quality_checks: Optional[bool] = None,
        fail_on_validation_error: Optional[bool] = None,
    ):
        self.raw_path = Path(raw_path or settings.data_lake.raw_path)
        self.input_format = FileFormat(input_format)
        self.write_reports = write_reports
        self.run_quality_checks = (
            run_quality_checks
            if run_quality_checks is not None
            else settings.data_quality.enable_data_quality_checks
        )
        self.fail_on_validation_error = (
            fail_on_validation_error
            if fail_on_validation_error is not None
            else settings.data_quality.fail_on_validation_error
        )

        self.loader = BatchLoader()
        self.transformer = WarehouseTransformer(loader=self.loader, dead_letter=dead_letter)
        self.writer = ReportWriter(reports_path, report_format)

    def load(self, result: PipelineResult) -> Dict[str, pl.DataFrame]:
        """Load the raw extracts; raise if a required table could not be read"""
        loaded = self.loader.load_directory(self.raw_path, self.input_format)
        result.load_results = {table: t.result for table, t in loaded.items()}

        missing = [
            table.value for table in REQUIRED_TABLES
            if not loaded.get(table.value) or not loaded[table.value].ok
        ]
        if missing:
            errors = {t: loaded[t].result.error_message for t in missing if t in loaded}
            raise FileNotFoundError(
                f"Required tables could not be loaded from {self.raw_path}: {missing} ({errors})"
            )

        return {table: t.frame for table, t in loaded.items() if t.ok}

    def validate(self, snapshot: WarehouseSnapshot, result: PipelineResult) -> None:
        """Run the quality suites; raise when configured to and an error check failed"""
        if not self.run_quality_checks:
            logger.info("Data quality checks disabled")
            return

        result.validation = validate_snapshot(snapshot)
        errors = result.validation_errors
        if errors and self.fail_on_validation_error:
            raise ValueError(f"Data quality checks failed: {errors}")

    def process(
        self,
        raw_tables: Dict[str, pl.DataFrame],
        reports: Optional[Iterable[str]] = None,
        result: Optional[PipelineResult] = None,
    ) -> PipelineResult:
        """Run the pipeline from raw frames already in memory"""
        result = result or PipelineResult(started_at=datetime.utcnow())
        definitions = [d.name for d in resolve_reports(reports)]

        snapshot, result.transform_results = self.transformer.transform(raw_tables)
        result.snapshot = snapshot

        self.validate(snapshot, result)

        result.reports = build_reports(snapshot, definitions)
        if self.write_reports:
            result.written = self.writer.write_all(result.reports)

        result.completed_at = datetime.utcnow()
        logger.info(
            "Pipeline completed",
            reports=len(result.reports),
            rows_rejected=result.rows_rejected,
            duration_seconds=result.duration_seconds,
        )
        return result

    def run(self, reports: Optional[Iterable[str]] = None) -> PipelineResult:
        """
        Run the full pipeline.

        Args:
            reports: Report names to build (all catalog reports by default)

        Returns:
            PipelineResult with per-stage outcomes

        Raises:
            FileNotFoundError: A required table failed to load
            ValueError: Unknown report name, or failed error-level checks
                with fail_on_validation_error set
        """
        result = PipelineResult(started_at=datetime.utcnow())
        logger.info("Starting report pipeline", raw_path=str(self.raw_path))

        # Reject unknown report names before any work is done
        names = None if reports is None else [d.name for d in resolve_reports(reports)]

        raw_tables = self.load(result)
        return self.process(raw_tables, names, result)
