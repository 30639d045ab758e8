"""
Batch Data Loader

Batch ingestion of the raw warehouse extracts (CSV, JSON Lines, Parquet).
Supports:
- Staging reads (every column kept as a string)
- File fingerprinting for audit
- Per-file error capture without aborting the batch
- Dead-letter output for rejected records
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union
import hashlib

import polars as pl
import structlog
from pydantic import BaseModel

from thelook.config import get_settings
from thelook.warehouse.schema import TableName

logger = structlog.get_logger(__name__)
settings = get_settings()


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    JSONL = "jsonl"
    PARQUET = "parquet"


class LoadStatus(str, Enum):
    """Batch load status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchFileConfig:
    """Configuration for batch file loading"""
    file_path: Union[str, Path]
    file_format: FileFormat
    table: str
    delimiter: str = ","
    encoding: str = "utf8"
    null_values: List[str] = field(default_factory=lambda: list(settings.data_lake.null_values))


class LoadResult(BaseModel):
    """Result of a batch load operation"""
    file_path: str
    table: str
    status: LoadStatus
    rows_loaded: int = 0
    columns: List[str] = []
    error_message: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    file_hash: Optional[str] = None


@dataclass
class LoadedTable:
    """Raw staging frame together with its load audit record"""
    frame: Optional[pl.DataFrame]
    result: LoadResult

    @property
    def ok(self) -> bool:
        return self.result.status == LoadStatus.COMPLETED and self.frame is not None


class BatchLoader:
    """
    Batch loader for the raw warehouse extracts.

    Reads files into staging frames where every column is a string; typing
    is left to the cleaner so bad values can be reported instead of failing
    the read.

    Example:
        loader = BatchLoader()
        config = BatchFileConfig(
            file_path="data/raw/order_items.csv",
            file_format=FileFormat.CSV,
            table="order_items",
        )
        loaded = loader.load(config)
    """

    def __init__(self, dead_letter_path: Optional[str] = None):
        self.dead_letter_path = Path(dead_letter_path or settings.data_lake.dead_letter_path)

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for audit"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _read_csv(self, config: BatchFileConfig) -> pl.DataFrame:
        """Read CSV file with every column as a string"""
        return pl.read_csv(
            config.file_path,
            separator=config.delimiter,
            encoding=config.encoding,
            null_values=config.null_values,
            infer_schema_length=0,
        )

    def _read_jsonl(self, config: BatchFileConfig) -> pl.DataFrame:
        """Read JSON Lines (NDJSON) file"""
        return pl.read_ndjson(config.file_path)

    def _read_parquet(self, config: BatchFileConfig) -> pl.DataFrame:
        """Read Parquet file"""
        return pl.read_parquet(config.file_path)

    def _read_file(self, config: BatchFileConfig) -> pl.DataFrame:
        """Read file based on format and stage every column as a string"""
        readers = {
            FileFormat.CSV: self._read_csv,
            FileFormat.JSONL: self._read_jsonl,
            FileFormat.PARQUET: self._read_parquet,
        }
        reader = readers.get(FileFormat(config.file_format))
        if not reader:
            raise ValueError(f"Unsupported file format: {config.file_format}")

        df = reader(config)
        return df.with_columns(pl.all().cast(pl.Utf8))

    def load(self, config: BatchFileConfig) -> LoadedTable:
        """
        Load a raw extract into a staging frame.

        Args:
            config: Batch file configuration

        Returns:
            LoadedTable with the staging frame (None on failure) and audit record
        """
        file_path = Path(config.file_path)
        started_at = datetime.utcnow()

        result = LoadResult(
            file_path=str(file_path),
            table=config.table,
            status=LoadStatus.RUNNING,
            started_at=started_at,
        )

        logger.info("Starting batch load", file=str(file_path), table=config.table)

        df = None
        try:
            if not file_path.exists():
                raise FileNotFoundError(f"File not found: {file_path}")

            result.file_hash = self._compute_file_hash(file_path)
            df = self._read_file(config)

            result.status = LoadStatus.COMPLETED
            result.rows_loaded = len(df)
            result.columns = df.columns

        except (OSError, ValueError, pl.exceptions.PolarsError) as e:
            df = None
            result.status = LoadStatus.FAILED
            result.error_message = str(e)
            logger.error("Batch load failed", error=str(e), file=str(file_path))

        result.completed_at = datetime.utcnow()
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()

        if result.status == LoadStatus.COMPLETED:
            logger.info(
                "Batch load completed",
                table=config.table,
                rows_loaded=result.rows_loaded,
                duration_seconds=result.load_duration_seconds,
            )

        return LoadedTable(frame=df, result=result)

    def load_directory(
        self,
        directory: Union[str, Path],
        file_format: FileFormat = FileFormat.CSV,
        tables: Optional[List[str]] = None,
        **kwargs,
    ) -> Dict[str, LoadedTable]:
        """
        Load ``<table>.<ext>`` for each warehouse table found in a directory.

        Args:
            directory: Directory containing the extracts
            file_format: File format to process
            tables: Table names to load (defaults to all warehouse tables)
            **kwargs: Additional BatchFileConfig parameters

        Returns:
            Mapping of table name to LoadedTable
        """
        directory = Path(directory)
        file_format = FileFormat(file_format)
        tables = tables or [t.value for t in TableName]

        logger.info(
            f"Loading {len(tables)} tables",
            directory=str(directory),
            file_format=file_format.value,
        )

        loaded = {}
        for table in tables:
            config = BatchFileConfig(
                file_path=directory / f"{table}.{file_format.value}",
                file_format=file_format,
                table=table,
                **kwargs,
            )
            loaded[table] = self.load(config)

        successful = sum(1 for t in loaded.values() if t.ok)
        failed = len(loaded) - successful

        logger.info(
            f"Directory load completed: {successful} successful, {failed} failed",
            total_files=len(loaded),
        )

        return loaded

    def write_dead_letter(
        self,
        df: pl.DataFrame,
        table: str,
        reason: str = "rejected",
    ) -> Optional[Path]:
        """Write rejected records to the dead letter directory"""
        if df.is_empty():
            return None

        self.dead_letter_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        dead_letter_file = self.dead_letter_path / f"{table}_{reason}_{timestamp}.csv"

        df.with_columns(
            pl.lit(datetime.utcnow().isoformat()).alias("_failed_at"),
        ).write_csv(dead_letter_file)

        logger.warning(
            "Written failed records to dead letter queue",
            file=str(dead_letter_file),
            records=len(df),
        )
        return dead_letter_file
