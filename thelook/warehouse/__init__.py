"""
Warehouse Module
"""
from .schema import SCHEMAS, OrderStatus, TableName, TableSchema, get_schema
from .snapshot import WarehouseSnapshot

__all__ = [
    "SCHEMAS",
    "OrderStatus",
    "TableName",
    "TableSchema",
    "get_schema",
    "WarehouseSnapshot",
]
