"""
Unit Tests - Customer and Product Reports
"""
from datetime import date

import pytest
import polars as pl
from polars.testing import assert_frame_equal

from sales_analytics.config.settings import ReportSettings, Settings
from sales_analytics.quality.validators import InvalidInputShapeError
from sales_analytics.reporting import build_customer_report, build_product_report
from sales_analytics.reporting.customers import CUSTOMER_REPORT_COLUMNS
from sales_analytics.reporting.products import PRODUCT_REPORT_COLUMNS


def _row(df: pl.DataFrame, column: str, value) -> dict:
    rows = df.filter(pl.col(column) == value).to_dicts()
    assert len(rows) == 1
    return rows[0]


def _sale(order_id, customer_key, product_key, order_date, sales_amount, quantity=1):
    return {
        "order_id": order_id,
        "customer_key": customer_key,
        "product_key": product_key,
        "order_date": order_date,
        "sales_amount": sales_amount,
        "quantity": quantity,
        "unit_price": sales_amount // quantity,
    }


def _customer(customer_key, country="Canada", birthdate=date(1980, 1, 1)):
    return {
        "customer_key": customer_key,
        "customer_number": f"AW{customer_key:08d}",
        "first_name": "First",
        "last_name": f"Last{customer_key}",
        "country": country,
        "gender": "n/a",
        "birthdate": birthdate,
    }


class TestCustomerReport:
    """Tests for build_customer_report"""

    @pytest.fixture
    def report(self, sample_sales_df, sample_customers_df, evaluation_date, test_settings):
        return build_customer_report(
            sample_sales_df, sample_customers_df, evaluation_date, settings=test_settings,
        )

    def test_columns_and_order(self, report):
        """Test output layout and lifetime value ordering"""
        assert report.columns == CUSTOMER_REPORT_COLUMNS
        assert report["customer_key"].to_list() == [2, 3, 1, 99]

    def test_two_order_customer(self, evaluation_date):
        """Test a new, active, entry-level customer built from plain rows"""
        sales = [
            _sale("SO1", 1, 10, date(2024, 1, 1), 100),
            _sale("SO2", 1, 10, date(2024, 4, 1), 200, quantity=2),
        ]

        report = build_customer_report(sales, [_customer(1)], evaluation_date, max_workers=1)

        row = report.to_dicts()[0]
        assert row["total_orders"] == 2
        assert row["customer_lifetime_value"] == 300
        assert row["lifespan_months"] == 3
        assert row["recency_months"] == 3
        assert row["customer_segment"] == "New"
        assert row["engagement_status"] == "Active"
        assert row["value_tier"] == "Entry Level"

    def test_kpis(self, report):
        """Test derived ratios"""
        john = _row(report, "customer_key", 1)

        assert john["full_name"] == "John Doe"
        assert john["avg_order_value"] == 150.0
        assert john["avg_monthly_spend"] == 100.0
        assert john["avg_orders_per_month"] == 0.67
        assert john["avg_items_per_order"] == 1.5
        assert john["product_diversity_score"] == 1.0
        assert john["highest_price_paid"] == 100
        assert john["lowest_price_paid"] == 100
        assert john["avg_price_paid"] == 100.0

    def test_single_month_customer_has_null_monthly_ratios(self, report):
        """Test safe division by a zero lifespan"""
        bob = _row(report, "customer_key", 3)

        assert bob["lifespan_months"] == 0
        assert bob["avg_monthly_spend"] is None
        assert bob["avg_orders_per_month"] is None
        assert bob["engagement_status"] == "Churned"
        assert bob["purchase_frequency_segment"] == "One-Time Buyer"
        assert bob["customer_health_score"] == "Poor"

    def test_segments(self, report):
        """Test labels for a long-standing customer"""
        jane = _row(report, "customer_key", 2)

        assert jane["age"] == 18
        assert jane["age_group"] == "Under 20"
        assert jane["customer_segment"] == "VIP"
        assert jane["engagement_status"] == "At Risk"
        assert jane["value_tier"] == "Medium Value"
        assert jane["customer_health_score"] == "Good"

    def test_missing_birthdate_is_unknown_age(self, report):
        """Test age group for a customer without birthdate"""
        assert _row(report, "customer_key", 3)["age_group"] == "Unknown"

    def test_unmatched_customer_is_reported_without_attributes(self, report):
        """Test that facts without a dimension row still form an entity"""
        orphan = _row(report, "customer_key", 99)

        assert orphan["full_name"] is None
        assert orphan["country"] is None
        assert orphan["age_group"] == "Unknown"
        assert orphan["customer_lifetime_value"] == 50

    def test_customers_without_dated_sales_are_absent(self, report):
        """Test that entities with zero usable lines are not reported"""
        keys = report["customer_key"].to_list()

        assert 4 not in keys
        assert 5 not in keys

    def test_ranks(self, report):
        """Test global, order-count and country ranks"""
        assert report["revenue_rank"].to_list() == [1, 2, 3, 4]
        assert report["order_frequency_rank"].to_list() == [1, 2, 1, 2]
        assert _row(report, "customer_key", 3)["country_revenue_rank"] == 1
        assert _row(report, "customer_key", 1)["country_revenue_rank"] == 2
        assert _row(report, "customer_key", 2)["country_revenue_rank"] == 1

    def test_tied_customers_share_rank(self, evaluation_date):
        """Test dense ranking of tied lifetime values"""
        sales = [
            _sale("SO1", 1, 10, date(2024, 6, 1), 500),
            _sale("SO2", 2, 10, date(2024, 6, 1), 500),
            _sale("SO3", 3, 10, date(2024, 6, 1), 500),
            _sale("SO4", 4, 10, date(2024, 6, 1), 300),
        ]
        customers = [_customer(k) for k in (1, 2, 3, 4)]

        report = build_customer_report(sales, customers, evaluation_date, max_workers=1)

        assert report["customer_key"].to_list() == [1, 2, 3, 4]
        assert report["revenue_rank"].to_list() == [1, 1, 1, 2]
        assert report["revenue_quartile"].to_list() == [1, 2, 3, 4]

    def test_percentiles(self, report):
        """Test decile and quartile assignment"""
        assert report["revenue_decile"].to_list() == [1, 2, 3, 4]
        assert report["revenue_quartile"].to_list() == [1, 2, 3, 4]

    def test_bucket_counts_from_settings(self, sample_sales_df, sample_customers_df, evaluation_date):
        """Test configurable bucket counts"""
        settings = Settings(app_env="testing", reports=ReportSettings(decile_buckets=2, quartile_buckets=1))

        report = build_customer_report(sample_sales_df, sample_customers_df, evaluation_date, settings=settings)

        assert report["revenue_decile"].to_list() == [1, 1, 2, 2]
        assert report["revenue_quartile"].to_list() == [1, 1, 1, 1]

    def test_deterministic(self, sample_sales_df, sample_customers_df, evaluation_date):
        """Test identical output across runs and worker counts"""
        first = build_customer_report(sample_sales_df, sample_customers_df, evaluation_date, max_workers=1)
        second = build_customer_report(sample_sales_df, sample_customers_df, evaluation_date, max_workers=4)

        assert_frame_equal(first, second)

    def test_full_name_is_null_when_a_part_is_missing(self, evaluation_date):
        """Test that first and last name are both needed for a full name"""
        customers = [dict(_customer(1), last_name=None), _customer(2)]
        sales = [
            _sale("SO1", 1, 10, date(2024, 6, 1), 500),
            _sale("SO2", 2, 10, date(2024, 6, 1), 400),
        ]

        report = build_customer_report(sales, customers, evaluation_date)

        assert _row(report, "customer_key", 1)["full_name"] is None
        assert _row(report, "customer_key", 1)["first_name"] == "First"
        assert _row(report, "customer_key", 2)["full_name"] == "First Last2"

    def test_integer_order_ids(self, sample_sales_df, sample_customers_df, evaluation_date):
        """Test that numeric order ids are counted like string ones"""
        numeric = sample_sales_df.with_columns(pl.col("order_id").str.slice(2).cast(pl.Int64))

        report = build_customer_report(numeric, sample_customers_df, evaluation_date)
        expected = build_customer_report(sample_sales_df, sample_customers_df, evaluation_date)

        assert report["customer_key"].to_list() == expected["customer_key"].to_list()
        assert report["total_orders"].to_list() == expected["total_orders"].to_list()

    def test_integer_order_ids_in_rows(self, evaluation_date):
        """Test numeric order ids supplied as row mappings"""
        sales = [
            _sale(43697, 1, 10, date(2024, 6, 1), 500),
            _sale(43697, 1, 20, date(2024, 6, 1), 100),
            _sale(43698, 1, 10, date(2024, 6, 20), 500),
        ]

        report = build_customer_report(sales, [_customer(1)], evaluation_date)

        assert _row(report, "customer_key", 1)["total_orders"] == 2

    def test_rejects_invalid_quantity(self, sample_sales_df, sample_customers_df, evaluation_date):
        """Test that a quantity above 255 aborts the build"""
        sales = sample_sales_df.with_columns(pl.lit(300, dtype=pl.Int64).alias("quantity"))

        with pytest.raises(InvalidInputShapeError) as exc_info:
            build_customer_report(sales, sample_customers_df, evaluation_date)

        assert exc_info.value.dataset == "sales"

    def test_rejects_unconvertible_rows(self, evaluation_date):
        """Test rows whose values do not fit the schema"""
        sales = [dict(_sale("SO1", 1, 10, date(2024, 6, 1), 500), quantity="many")]

        with pytest.raises(InvalidInputShapeError):
            build_customer_report(sales, [_customer(1)], evaluation_date)

    def test_rejects_duplicate_customer_keys(self, sample_sales_df, sample_customers_df, evaluation_date):
        """Test customer key uniqueness"""
        customers = pl.concat([sample_customers_df, sample_customers_df.head(1)])

        with pytest.raises(InvalidInputShapeError) as exc_info:
            build_customer_report(sample_sales_df, customers, evaluation_date)

        assert exc_info.value.dataset == "customers"


class TestProductReport:
    """Tests for build_product_report"""

    @pytest.fixture
    def report(self, sample_sales_df, sample_products_df, evaluation_date, test_settings):
        return build_product_report(
            sample_sales_df, sample_products_df, evaluation_date, settings=test_settings,
        )

    def test_columns_and_order(self, report):
        """Test output layout and sales ordering"""
        assert report.columns == PRODUCT_REPORT_COLUMNS
        assert report["product_key"].to_list() == [10, 30, 20]

    def test_high_performer(self, evaluation_date):
        """Test a cheap, recent, high-revenue product"""
        sales = [
            _sale("SO1", 1, 7, date(2024, 3, 10), 400000, quantity=200),
            _sale("SO2", 2, 7, date(2024, 5, 1), 400000, quantity=200),
        ]
        products = [{
            "product_key": 7,
            "product_name": "Road-150 Red",
            "category": "Bikes",
            "subcategory": "Road Bikes",
            "cost": 50,
        }]

        report = build_product_report(sales, products, evaluation_date)

        row = report.to_dicts()[0]
        assert row["total_sales"] == 800000
        assert row["recency_months"] == 2
        assert row["cost_range"] == "Below 100"
        assert row["performance_segment"] == "High Performance"
        assert row["recency_status"] == "Active"
        assert row["product_health_score"] == "Excellent"

    def test_metrics_and_kpis(self, report):
        """Test volume, pricing and margin figures"""
        bike = _row(report, "product_key", 10)

        assert bike["total_orders"] == 4
        assert bike["total_customers"] == 3
        assert bike["avg_selling_price"] == 1537.5
        assert bike["avg_order_revenue"] == 1537.5
        assert bike["avg_monthly_revenue"] == 361.76
        assert bike["avg_orders_per_customer"] == 1.33
        assert bike["avg_profit_margin"] == 1487.5
        assert bike["profit_margin_pct"] == 2975.0
        assert bike["product_health_score"] == "Fair"

    def test_negative_margin(self, report):
        """Test a product selling below cost"""
        helmet = _row(report, "product_key", 20)

        assert helmet["cost_range"] == "100-499"
        assert helmet["avg_profit_margin"] == -50.0
        assert helmet["profit_margin_pct"] == -33.33

    def test_inactive_product(self, report):
        """Test recency status and null monthly revenue"""
        jersey = _row(report, "product_key", 30)

        assert jersey["recency_months"] == 18
        assert jersey["recency_status"] == "Inactive"
        assert jersey["product_health_score"] == "Poor"
        assert jersey["cost_range"] == "500-1000"
        assert jersey["avg_monthly_revenue"] is None

    def test_unsold_product_is_absent(self, report):
        """Test that products without sales are not reported"""
        assert 40 not in report["product_key"].to_list()

    def test_sales_contribution(self, report):
        """Test share of total and category sales"""
        assert report["sales_percentage"].to_list() == [76.4, 14.91, 8.7]
        assert report["category_sales_percentage"].to_list() == [100.0, 100.0, 100.0]

    def test_ranks(self, report):
        """Test revenue and order frequency ranks"""
        assert report["overall_revenue_rank"].to_list() == [1, 2, 3]
        assert report["category_revenue_rank"].to_list() == [1, 1, 1]
        assert _row(report, "product_key", 10)["order_frequency_rank"] == 1
        assert _row(report, "product_key", 20)["order_frequency_rank"] == 2
        assert _row(report, "product_key", 30)["order_frequency_rank"] == 3

    def test_deterministic(self, sample_sales_df, sample_products_df, evaluation_date):
        """Test identical output across runs and worker counts"""
        first = build_product_report(sample_sales_df, sample_products_df, evaluation_date, max_workers=1)
        second = build_product_report(sample_sales_df, sample_products_df, evaluation_date, max_workers=3)

        assert_frame_equal(first, second)

    def test_rejects_negative_sales(self, sample_sales_df, sample_products_df, evaluation_date):
        """Test that a negative sales amount aborts the build"""
        sales = sample_sales_df.with_columns(pl.lit(-1, dtype=pl.Int64).alias("sales_amount"))

        with pytest.raises(InvalidInputShapeError):
            build_product_report(sales, sample_products_df, evaluation_date)

    def test_rejects_missing_columns(self, sample_sales_df, sample_products_df, evaluation_date):
        """Test that a missing required column aborts the build"""
        with pytest.raises(InvalidInputShapeError, match="category"):
            build_product_report(sample_sales_df, sample_products_df.drop("category"), evaluation_date)
