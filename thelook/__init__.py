"""
TheLook Analytics

Batch analytics over the TheLook e-commerce warehouse.
"""

__version__ = "1.0.0"
