"""
Data Generation Module
"""
from .generators import (
    DataGenerator,
    DistributionCenterGenerator,
    OrderGenerator,
    ProductGenerator,
    UserGenerator,
    inject_dirty_rows,
)

__all__ = [
    "DataGenerator",
    "DistributionCenterGenerator",
    "OrderGenerator",
    "ProductGenerator",
    "UserGenerator",
    "inject_dirty_rows",
]
