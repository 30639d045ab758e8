"""
Unit Tests - Analytical Reports
"""
import pytest

from thelook.analytics import customers, products, sales
from thelook.analytics.catalog import (
    REPORTS,
    ReportGroup,
    get_report,
    list_reports,
    resolve_reports,
)


class TestSalesReports:
    """Tests for sales and revenue reports"""

    def test_financial_summary(self, snapshot):
        """Test revenue, profit and margin"""
        row = sales.financial_summary(snapshot).row(0, named=True)

        assert row["total_revenue"] == pytest.approx(1620.0)
        assert row["gross_profit"] == pytest.approx(1465.0)
        assert row["gross_profit_margin_pct"] == pytest.approx(90.43)

    def test_order_status_summary(self, snapshot):
        """Test distinct orders per status regardless of case"""
        row = sales.order_status_summary(snapshot).row(0, named=True)
        assert row == {"successful_orders": 4, "returned_orders": 1, "cancelled_orders": 1}

    def test_revenue_by_year(self, snapshot):
        """Test a single year in the sample"""
        result = sales.revenue_by_year(snapshot)
        assert result.rows() == [(2023, 4, 1620.0)]

    def test_revenue_by_month(self, snapshot):
        """Test months are in calendar order"""
        result = sales.revenue_by_month(snapshot)

        assert result["month_number"].to_list() == [1, 6, 7, 12]
        assert result["sales_month"].to_list() == ["January", "June", "July", "December"]

    def test_revenue_by_weekday(self, snapshot):
        """Test best weekday first"""
        result = sales.revenue_by_weekday(snapshot)

        assert result["order_day"].to_list() == ["Saturday", "Thursday", "Sunday"]
        assert result["total_orders"].to_list() == [2, 1, 1]

    def test_running_total(self, snapshot):
        """Test cumulative revenue within the year"""
        result = sales.running_total_revenue(snapshot)

        assert result["monthly_revenue"].to_list() == pytest.approx([150.0, 500.0, 900.0, 70.0])
        assert result["running_total_revenue"].to_list() == pytest.approx([150.0, 650.0, 1550.0, 1620.0])

    def test_order_economics(self, snapshot):
        """Test average order value and basket size"""
        assert sales.average_order_value(snapshot)["average_order_value"][0] == pytest.approx(405.0)
        assert sales.average_basket_size(snapshot)["average_basket_size"][0] == pytest.approx(2.25)

    def test_order_economics_without_orders(self, empty_snapshot):
        """Test no orders yields null averages"""
        assert sales.average_order_value(empty_snapshot)["average_order_value"][0] is None
        assert sales.average_basket_size(empty_snapshot)["average_basket_size"][0] is None

    def test_traffic_source_performance(self, snapshot):
        """Test users, orders and revenue per channel"""
        result = sales.traffic_source_performance(snapshot)

        assert result["traffic_source"].to_list() == ["Organic", "Search", "Email"]
        search = result.row(1, named=True)
        assert search["total_users"] == 1
        assert search["total_orders"] == 2
        assert search["avg_order_value"] == pytest.approx(325.0)

    def test_category_profitability(self, snapshot):
        """Test most profitable category first"""
        result = sales.category_profitability(snapshot)

        assert result["category"].to_list() == ["Jeans", "Tops"]
        assert result["gross_profit"].to_list() == pytest.approx([1110.0, 355.0])

    def test_returns_lost_revenue(self, snapshot):
        """Test returned orders per year"""
        assert sales.returns_lost_revenue(snapshot).rows() == [(2023, 1, 60.0)]

    def test_top_countries_by_revenue(self, snapshot):
        """Test country ranking and limit"""
        result = sales.top_countries_by_revenue(snapshot, limit=2)

        assert result["country"].to_list() == ["China", "United States"]
        assert result["total_revenue"].to_list() == pytest.approx([900.0, 650.0])

    def test_return_rate_by_category(self, snapshot):
        """Test rate uses orders of every status"""
        result = sales.return_rate_by_category(snapshot)

        assert result["category"].to_list() == ["Jeans", "Tops"]
        assert result["total_orders"].to_list() == [4, 5]
        assert result["complete_orders"].to_list() == [4, 3]
        assert result["return_rate_pct"].to_list() == pytest.approx([0.0, 20.0])


class TestCustomerReports:
    """Tests for customer behavior reports"""

    def test_gender_distribution(self, snapshot):
        """Test counts and shares per gender"""
        result = customers.gender_distribution(snapshot)

        assert result["gender"].to_list() == ["F", "M"]
        assert result["percentage_share"].to_list() == pytest.approx([60.0, 40.0])

    def test_top_countries_by_users(self, snapshot):
        """Test ties are broken by country name"""
        result = customers.top_countries_by_users(snapshot)

        assert result["country"].to_list() == ["China", "United States", "Brasil"]
        assert result["total_users"].to_list() == [2, 2, 1]

    def test_repeat_buyer_share(self, snapshot):
        """Test repeat buyers need two distinct completed orders"""
        result = customers.repeat_buyer_share(snapshot)

        assert result["customer_type"].to_list() == ["One-time Buyer", "Repeat Buyer (Loyal)"]
        assert result["total_users"].to_list() == [2, 1]
        assert result["percentage_share"].to_list() == pytest.approx([66.67, 33.33])

    def test_top_spenders(self, snapshot):
        """Test lifetime value over completed items"""
        result = customers.top_spenders(snapshot)

        assert result["user_id"].to_list() == [2, 1, 4]
        assert result["full_name"].to_list() == ["Bob Ray", "Ann Lee", "Dan Fox"]
        assert result["lifetime_value"].to_list() == pytest.approx([900.0, 650.0, 70.0])

    def test_signup_growth(self, snapshot):
        """Test month over month change"""
        result = customers.signup_growth(snapshot)

        assert result["new_users_count"].to_list() == [1, 1, 2, 1]
        assert result["growth_from_prev_month"].to_list() == [None, 0, 1, -1]


class TestProductReports:
    """Tests for product and logistics reports"""

    def test_top_products(self, snapshot):
        """Test best sellers by revenue"""
        result = products.top_products_by_revenue(snapshot, limit=3)

        assert result["product_name"].to_list() == ["Wide Jeans", "Slim Jeans", "Linen Shirt"]
        assert result["total_units_sold"].to_list() == [3, 3, 2]

    def test_product_return_rates(self, snapshot):
        """Test returned over completed plus returned"""
        result = products.product_return_rates(snapshot, min_sales=0)

        assert result["product_id"].to_list() == [3, 1, 2, 4]
        assert result["return_rate_pct"].to_list() == pytest.approx([33.33, 0.0, 0.0, 0.0])
        assert result["total_sold"].to_list() == [3, 3, 3, 1]

    def test_product_return_rates_min_sales(self, snapshot):
        """Test products with few sales are left out"""
        assert products.product_return_rates(snapshot, min_sales=3)["product_id"].to_list() == [3, 1, 2]
        assert products.product_return_rates(snapshot).is_empty()

    def test_distribution_center_performance(self, snapshot):
        """Test volume and variety per center"""
        result = products.distribution_center_performance(snapshot)

        assert result["distribution_center_name"].to_list() == ["Memphis TN", "Chicago IL"]
        assert result["total_items_sold"].to_list() == [6, 3]
        assert result["total_revenue_generated"].to_list() == pytest.approx([1200.0, 420.0])
        assert result["variety_rate_pct"].to_list() == pytest.approx([33.33, 66.67])

    def test_shipping_performance(self, snapshot):
        """Test days to ship and late rate across all shipped items"""
        result = products.shipping_performance(snapshot, late_after_days=3)

        assert result["distribution_center_id"].to_list() == [1, 2]
        assert result["orders_shipped"].to_list() == [4, 4]
        assert result["avg_days_to_ship"].to_list() == pytest.approx([2.17, 2.25])
        assert result["late_shipping_rate_pct"].to_list() == pytest.approx([16.67, 25.0])

    def test_shipping_late_threshold(self, snapshot):
        """Test a higher threshold lowers the late rate"""
        result = products.shipping_performance(snapshot, late_after_days=5)
        assert result["late_shipping_rate_pct"].to_list() == pytest.approx([0.0, 0.0])


class TestReportCatalog:
    """Tests for the report registry"""

    def test_groups(self):
        """Test every report belongs to a group"""
        counts = {group: len(list_reports(group.value)) for group in ReportGroup}

        assert sum(counts.values()) == len(REPORTS)
        assert counts[ReportGroup.SALES] == 15

    def test_get_report(self, snapshot):
        """Test lookup and build"""
        definition = get_report("order_value_segments")

        assert definition.group == ReportGroup.SALES
        assert definition.build(snapshot)["order_segment"].to_list() == ["High", "Mid", "Low"]

    def test_unknown_report(self):
        """Test unknown names are rejected"""
        with pytest.raises(ValueError, match="Unknown report"):
            get_report("weather")
        with pytest.raises(ValueError):
            resolve_reports(["rfm_scores", "weather"])

    def test_unknown_group(self):
        """Test unknown groups are rejected"""
        with pytest.raises(ValueError):
            list_reports("marketing")

    @pytest.mark.parametrize("name", sorted(REPORTS))
    def test_every_report_builds(self, name, snapshot, empty_snapshot):
        """Test each report runs on the sample and on an empty warehouse"""
        definition = REPORTS[name]

        assert not definition.build(snapshot).is_empty() or name == "product_return_rates"
        assert definition.build(empty_snapshot) is not None
