"""
Unit Tests - Segment and Category Summaries
"""
import pytest
import polars as pl

from sales_analytics.reporting import (
    build_customer_report,
    build_product_report,
    category_contribution,
    segment_distribution,
    subcategory_contribution,
)


@pytest.fixture
def customer_report(sample_sales_df, sample_customers_df, evaluation_date, test_settings):
    return build_customer_report(sample_sales_df, sample_customers_df, evaluation_date, settings=test_settings)


@pytest.fixture
def product_report(sample_sales_df, sample_products_df, evaluation_date, test_settings):
    return build_product_report(sample_sales_df, sample_products_df, evaluation_date, settings=test_settings)


class TestSegmentDistribution:
    """Tests for segment_distribution"""

    def test_age_group_distribution(self, customer_report):
        """Test counts, totals and shares in label order"""
        result = segment_distribution(customer_report, "age_group", "customer_lifetime_value")

        assert result["age_group"].to_list() == ["Unknown", "Under 20", "30-39"]
        assert result["total_entities"].to_list() == [2, 1, 1]
        assert result["total_value"].to_list() == [550, 7200, 300]
        assert result["avg_value"].to_list() == [275.0, 7200.0, 300.0]
        assert result["entity_percentage"].to_list() == [50.0, 25.0, 25.0]
        assert result["value_percentage"].to_list() == [6.83, 89.44, 3.73]

    def test_product_cost_range_distribution(self, product_report):
        """Test a product segment family"""
        result = segment_distribution(product_report, "cost_range", "total_sales")

        assert result["cost_range"].to_list() == ["Below 100", "100-499", "500-1000"]
        assert result["total_entities"].to_list() == [1, 1, 1]

    def test_free_form_column_sorted_by_label(self, customer_report):
        """Test grouping by a column that is not a rule set"""
        result = segment_distribution(customer_report, "country", "customer_lifetime_value")

        assert result["country"].to_list() == ["Germany", "United States", None]

    def test_null_key_entity_is_counted(self):
        """Test that a report row without a key still counts as an entity"""
        report = pl.DataFrame({
            "customer_key": pl.Series([1, None], dtype=pl.Int64),
            "engagement_status": ["Active", "Active"],
            "customer_lifetime_value": [100, 300],
        })

        result = segment_distribution(report, "engagement_status", "customer_lifetime_value")

        assert result["total_entities"].to_list() == [2]
        assert result["total_value"].to_list() == [400]
        assert result["avg_value"].to_list() == [200.0]

    def test_unknown_column(self, customer_report):
        """Test KeyError on a missing column"""
        with pytest.raises(KeyError):
            segment_distribution(customer_report, "favourite_colour", "customer_lifetime_value")


class TestCategoryContribution:
    """Tests for category_contribution"""

    def test_category_shares(self, product_report):
        """Test category totals, shares and ranks"""
        result = category_contribution(product_report)

        assert result["category"].to_list() == ["Bikes", "Clothing", "Accessories"]
        assert result["category_sales"].to_list() == [6150, 1200, 700]
        assert result["total_products"].to_list() == [1, 1, 1]
        assert result["sales_percentage"].to_list() == [76.4, 14.91, 8.7]
        assert result["revenue_rank"].to_list() == [1, 2, 3]

    def test_null_category_products_are_counted(self):
        """Test that products without a category form their own counted group"""
        report = pl.DataFrame({
            "product_key": pl.Series([1, None], dtype=pl.Int64),
            "category": pl.Series([None, None], dtype=pl.Utf8),
            "total_sales": [100, 50],
            "total_quantity": [1, 1],
        })

        result = category_contribution(report)

        assert result["total_products"].to_list() == [2]
        assert result["sales_percentage"].to_list() == [100.0]


class TestSubcategoryContribution:
    """Tests for subcategory_contribution"""

    def test_shares_of_total_and_category(self):
        """Test sales share overall and within the category"""
        report = pl.DataFrame({
            "product_key": [1, 2, 3, 4],
            "category": ["A", "A", "A", "B"],
            "subcategory": ["a1", "a1", "a2", "b1"],
            "total_sales": [200, 100, 100, 100],
            "total_quantity": [2, 1, 4, 1],
        })

        result = subcategory_contribution(report)

        assert result["subcategory"].to_list() == ["a1", "a2", "b1"]
        assert result["total_products"].to_list() == [2, 1, 1]
        assert result["subcategory_sales"].to_list() == [300, 100, 100]
        assert result["total_quantity"].to_list() == [3, 4, 1]
        assert result["sales_percentage"].to_list() == [60.0, 20.0, 20.0]
        assert result["category_percentage"].to_list() == [75.0, 25.0, 100.0]

    def test_sample_report(self, product_report):
        """Test subcategories of the sample products"""
        result = subcategory_contribution(product_report)

        assert result["subcategory"].to_list() == ["Mountain Bikes", "Jerseys", "Helmets"]
        assert result["category_percentage"].to_list() == [100.0, 100.0, 100.0]
