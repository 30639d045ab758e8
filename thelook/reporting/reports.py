"""
Report Output

Wraps report frames with their metadata and writes or renders them for
downstream consumers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import polars as pl
import structlog

from thelook.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


class ReportFormat(str, Enum):
    """Supported export formats"""
    CSV = "csv"
    PARQUET = "parquet"
    JSON = "json"


@dataclass
class Report:
    """A named tabular report result"""
    name: str
    title: str
    frame: pl.DataFrame
    generated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def row_count(self) -> int:
        return self.frame.height

    @property
    def is_empty(self) -> bool:
        return self.frame.is_empty()

    def to_dicts(self) -> List[Dict[str, Any]]:
        return self.frame.to_dicts()

    def to_pandas(self):
        """Convert the report frame to a pandas DataFrame"""
        return self.frame.to_pandas()


class ReportWriter:
    """
    Writes reports to the reports directory.

    Example:
        writer = ReportWriter(file_format="parquet")
        path = writer.write(report)
    """

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        file_format: Optional[Union[str, ReportFormat]] = None,
    ):
        self.output_path = Path(output_path or settings.data_lake.reports_path)
        requested = file_format or settings.data_lake.default_format
        if isinstance(requested, ReportFormat):
            requested = requested.value
        try:
            self.file_format = ReportFormat(str(requested).lower())
        except ValueError:
            raise ValueError(
                f"Unsupported report format: {requested}. "
                f"Expected one of: {[f.value for f in ReportFormat]}"
            ) from None

    def _output_file(self, report: Report) -> Path:
        timestamp = report.generated_at.strftime("%Y%m%d_%H%M%S")
        return self.output_path / f"{report.name}_{timestamp}.{self.file_format.value}"

    def write(self, report: Report) -> Path:
        """Write one report and return its path"""
        self.output_path.mkdir(parents=True, exist_ok=True)
        output_file = self._output_file(report)

        if self.file_format == ReportFormat.CSV:
            report.frame.write_csv(output_file)
        elif self.file_format == ReportFormat.PARQUET:
            report.frame.write_parquet(output_file)
        else:
            report.frame.write_json(output_file)

        logger.info(f"Written {report.row_count} rows to {output_file}", report=report.name)
        return output_file

    def write_all(self, reports: Iterable[Report]) -> Dict[str, Path]:
        """Write several reports, keyed by report name"""
        return {report.name: self.write(report) for report in reports}


def render_report(report: Report, max_rows: int = 20) -> str:
    """Text table of a report for terminals"""
    with pl.Config(
        tbl_rows=max_rows,
        tbl_cols=-1,
        fmt_str_lengths=60,
        tbl_width_chars=200,
        tbl_hide_dataframe_shape=True,
    ):
        body = str(report.frame)
    return f"{report.title} ({report.row_count} rows)\n{body}"
