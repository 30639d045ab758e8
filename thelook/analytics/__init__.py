"""
Analytics Module

Aggregation, scoring and the report catalog.
"""
from .aggregator import GroupingKey, aggregate, fact_items, ntile, safe_ratio, totals
from .basket import frequently_bought_together, product_pairs
from .catalog import REPORTS, ReportDefinition, ReportGroup, get_report, list_reports, resolve_reports
from .churn import at_risk_customers, conversion_latency, count_at_risk, customer_last_activity
from .rfm import RFMScores, RFMSegment, rfm_scores, rfm_segment_summary
from .segments import OrderValueSegment, classify_orders, order_value_segments

__all__ = [
    "GroupingKey",
    "aggregate",
    "fact_items",
    "ntile",
    "safe_ratio",
    "totals",
    "frequently_bought_together",
    "product_pairs",
    "REPORTS",
    "ReportDefinition",
    "ReportGroup",
    "get_report",
    "list_reports",
    "resolve_reports",
    "at_risk_customers",
    "conversion_latency",
    "count_at_risk",
    "customer_last_activity",
    "RFMScores",
    "RFMSegment",
    "rfm_scores",
    "rfm_segment_summary",
    "OrderValueSegment",
    "classify_orders",
    "order_value_segments",
]
