"""
Data Transformation Module
"""
from .cleaners import CleanResult, CleaningStats, DataCleaner, clean_tables
from .transformers import TransformResult, WarehouseTransformer

__all__ = [
    "CleanResult",
    "CleaningStats",
    "DataCleaner",
    "clean_tables",
    "TransformResult",
    "WarehouseTransformer",
]
