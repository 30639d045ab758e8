"""
Report Catalog

Registry of every named report, grouped by business area. Each entry
builds one tabular result from a :class:`WarehouseSnapshot`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

import polars as pl

from thelook.warehouse.snapshot import WarehouseSnapshot
from . import basket, churn, customers, products, rfm, sales, segments


class ReportGroup(str, Enum):
    """Business area of a report"""
    SALES = "sales"
    CUSTOMERS = "customers"
    PRODUCTS = "products"


@dataclass(frozen=True)
class ReportDefinition:
    """A named report and how to build it"""
    name: str
    title: str
    group: ReportGroup
    builder: Callable[[WarehouseSnapshot], pl.DataFrame]

    def build(self, snapshot: WarehouseSnapshot) -> pl.DataFrame:
        return self.builder(snapshot)


_DEFINITIONS = [
    # Sales & revenue
    ReportDefinition("financial_summary", "Financial Summary", ReportGroup.SALES, sales.financial_summary),
    ReportDefinition("order_status_summary", "Order Status Summary", ReportGroup.SALES, sales.order_status_summary),
    ReportDefinition("revenue_by_year", "Revenue by Year", ReportGroup.SALES, sales.revenue_by_year),
    ReportDefinition("revenue_by_month", "Revenue by Month", ReportGroup.SALES, sales.revenue_by_month),
    ReportDefinition("revenue_by_weekday", "Revenue by Weekday", ReportGroup.SALES, sales.revenue_by_weekday),
    ReportDefinition("monthly_revenue_trend", "Monthly Revenue Trend", ReportGroup.SALES, sales.monthly_revenue_trend),
    ReportDefinition("running_total_revenue", "Running Total Revenue", ReportGroup.SALES, sales.running_total_revenue),
    ReportDefinition("average_order_value", "Average Order Value", ReportGroup.SALES, sales.average_order_value),
    ReportDefinition("average_basket_size", "Average Basket Size", ReportGroup.SALES, sales.average_basket_size),
    ReportDefinition("order_value_segments", "Order Value Segments", ReportGroup.SALES, segments.order_value_segments),
    ReportDefinition(
        "traffic_source_performance", "Traffic Source Performance", ReportGroup.SALES,
        sales.traffic_source_performance,
    ),
    ReportDefinition("category_profitability", "Category Profitability", ReportGroup.SALES, sales.category_profitability),
    ReportDefinition("returns_lost_revenue", "Lost Revenue from Returns", ReportGroup.SALES, sales.returns_lost_revenue),
    ReportDefinition("top_countries_by_revenue", "Top Countries by Revenue", ReportGroup.SALES, sales.top_countries_by_revenue),
    ReportDefinition("return_rate_by_category", "Return Rate by Category", ReportGroup.SALES, sales.return_rate_by_category),
    # Customers
    ReportDefinition("gender_distribution", "Gender Distribution", ReportGroup.CUSTOMERS, customers.gender_distribution),
    ReportDefinition("top_countries_by_users", "Top Countries by Users", ReportGroup.CUSTOMERS, customers.top_countries_by_users),
    ReportDefinition("repeat_buyer_share", "Repeat Buyer Share", ReportGroup.CUSTOMERS, customers.repeat_buyer_share),
    ReportDefinition("top_spenders", "Top Spenders", ReportGroup.CUSTOMERS, customers.top_spenders),
    ReportDefinition("at_risk_customers", "At-Risk Customers", ReportGroup.CUSTOMERS, churn.at_risk_customers),
    ReportDefinition("conversion_latency", "Conversion Latency", ReportGroup.CUSTOMERS, churn.conversion_latency_summary),
    ReportDefinition("signup_growth", "Signup Growth", ReportGroup.CUSTOMERS, customers.signup_growth),
    ReportDefinition("rfm_scores", "RFM Scores", ReportGroup.CUSTOMERS, rfm.rfm_scores),
    ReportDefinition("rfm_segments", "RFM Segments", ReportGroup.CUSTOMERS, rfm.rfm_segment_summary),
    # Products & logistics
    ReportDefinition("top_products_by_revenue", "Top Products by Revenue", ReportGroup.PRODUCTS, products.top_products_by_revenue),
    ReportDefinition("product_return_rates", "Product Return Rates", ReportGroup.PRODUCTS, products.product_return_rates),
    ReportDefinition(
        "frequently_bought_together", "Frequently Bought Together", ReportGroup.PRODUCTS,
        basket.frequently_bought_together,
    ),
    ReportDefinition(
        "distribution_center_performance", "Distribution Center Performance", ReportGroup.PRODUCTS,
        products.distribution_center_performance,
    ),
    ReportDefinition("shipping_performance", "Shipping Performance", ReportGroup.PRODUCTS, products.shipping_performance),
]

REPORTS: Dict[str, ReportDefinition] = {definition.name: definition for definition in _DEFINITIONS}


def get_report(name: str) -> ReportDefinition:
    """Look up a report by name"""
    try:
        return REPORTS[name]
    except KeyError:
        raise ValueError(f"Unknown report: {name}. Available: {sorted(REPORTS)}") from None


def list_reports(group: Optional[str] = None) -> List[ReportDefinition]:
    """All reports, optionally restricted to one group, in catalog order"""
    if group is None:
        return list(REPORTS.values())
    wanted = ReportGroup(group)
    return [definition for definition in REPORTS.values() if definition.group == wanted]


def resolve_reports(names: Optional[Iterable[str]] = None) -> List[ReportDefinition]:
    """Definitions for ``names`` (every report when None), rejecting unknown names"""
    if names is None:
        return list_reports()
    return [get_report(name) for name in names]
