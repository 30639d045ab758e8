"""
Data Ingestion Module
"""
from .batch_loader import (
    BatchFileConfig,
    BatchLoader,
    FileFormat,
    LoadedTable,
    LoadResult,
    LoadStatus,
)

__all__ = [
    "BatchFileConfig",
    "BatchLoader",
    "FileFormat",
    "LoadedTable",
    "LoadResult",
    "LoadStatus",
]
