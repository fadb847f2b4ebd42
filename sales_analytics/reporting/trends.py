"""
Sales Trend Analysis

Time-based views over dated sales lines:

- Period trends: monthly or yearly totals with period-over-period growth,
  year-to-date and running totals, rolling averages
- Seasonality: month-of-year totals across all years
- Product year-over-year: each product's yearly sales against its previous
  year and its own average

Lines without an order date are excluded. Comparisons against the previous
period follow the periods present in the data, so a gap is skipped rather
than filled with zero sales.
"""

import time
from enum import Enum
from typing import Union

import polars as pl
import structlog

from sales_analytics.data.schemas import PRODUCT_SCHEMA, SALES_ACCEPTED_TYPES, RowSet
from sales_analytics.quality.validators import (
    create_products_validator,
    create_sales_validator,
)
from sales_analytics.transformation.expressions import safe_divide
from sales_analytics.transformation.segmentation import TREND_RULE_SETS, apply_rule_sets

from .inputs import prepare_input, record_build

logger = structlog.get_logger(__name__)


class TrendGranularity(str, Enum):
    """Period length for sales trends"""
    MONTH = "month"
    YEAR = "year"


TRUNCATE_EVERY = {
    TrendGranularity.MONTH: "1mo",
    TrendGranularity.YEAR: "1y",
}

PERIOD_FORMAT = {
    TrendGranularity.MONTH: "%Y-%m",
    TrendGranularity.YEAR: "%Y",
}

SALES_TREND_COLUMNS = [
    "period",
    "period_start",
    "total_sales",
    "total_customers",
    "total_quantity",
    "total_orders",
    "avg_price",
    # Period over period
    "previous_period_sales",
    "period_over_period_diff",
    "growth_pct",
    # Cumulative and rolling
    "ytd_sales",
    "running_total_sales",
    "rolling_avg_sales",
    "centered_total_sales",
    "cumulative_avg_price",
]


def _dated_lines(sales: RowSet) -> pl.DataFrame:
    sales_df = prepare_input(sales, SALES_ACCEPTED_TYPES, create_sales_validator(), "sales")
    return (
        sales_df.filter(pl.col("order_date").is_not_null())
        .with_columns(pl.col("order_date").cast(pl.Date))
    )


def _period_totals(lines: pl.DataFrame, period: pl.Expr) -> pl.DataFrame:
    return lines.group_by(period).agg([
        pl.col("sales_amount").sum().alias("total_sales"),
        pl.col("customer_key").drop_nulls().n_unique().cast(pl.Int64).alias("total_customers"),
        pl.col("quantity").sum().alias("total_quantity"),
        pl.col("order_id").drop_nulls().n_unique().cast(pl.Int64).alias("total_orders"),
        pl.col("unit_price").mean().alias("avg_price"),
    ])


def sales_trend(
    sales: RowSet,
    granularity: Union[TrendGranularity, str] = TrendGranularity.MONTH,
    window: int = 3,
) -> pl.DataFrame:
    """
    Sales totals per month or year with growth and cumulative measures.

    Args:
        sales: Sales fact rows (DataFrame or sequence of mappings)
        granularity: "month" or "year"
        window: Periods in rolling_avg_sales, the current one included

    Returns:
        One row per period with sales, ordered by period

    Raises:
        ValueError: Unknown granularity or window below 1
        InvalidInputShapeError: sales violates the star schema
    """
    granularity = TrendGranularity(granularity)
    if window < 1:
        raise ValueError("window must be at least 1")

    started = time.perf_counter()
    lines = _dated_lines(sales)

    period_start = pl.col("order_date").dt.truncate(TRUNCATE_EVERY[granularity]).alias("period_start")
    trend = _period_totals(lines, period_start).sort("period_start")

    total = pl.col("total_sales")
    previous = total.shift(1)
    change = total - previous

    trend = trend.with_columns([
        pl.col("period_start").dt.strftime(PERIOD_FORMAT[granularity]).alias("period"),
        previous.alias("previous_period_sales"),
        change.alias("period_over_period_diff"),
        (safe_divide(change, previous, decimals=None) * 100).round(2).alias("growth_pct"),
        total.cum_sum().over(pl.col("period_start").dt.year()).alias("ytd_sales"),
        total.cum_sum().alias("running_total_sales"),
        total.rolling_mean(window_size=window, min_samples=1).round(2).alias("rolling_avg_sales"),
        # Previous, current and next period
        total.rolling_sum(window_size=3, center=True, min_samples=1).alias("centered_total_sales"),
        (pl.col("avg_price").cum_sum() / pl.col("avg_price").cum_count()).round(2).alias("cumulative_avg_price"),
        pl.col("avg_price").round(2),
    ])

    trend = trend.select(SALES_TREND_COLUMNS)
    record_build(f"sales_trend_{granularity.value}", trend.height, time.perf_counter() - started)

    logger.debug("Sales trend computed", granularity=granularity.value, periods=trend.height)
    return trend


def seasonality(sales: RowSet) -> pl.DataFrame:
    """
    Month-of-year totals across all years.

    Returns:
        month_number, month_name, total_sales, total_customers,
        total_quantity and total_orders for each month with sales
    """
    lines = _dated_lines(sales)

    month_number = pl.col("order_date").dt.month().cast(pl.Int64).alias("month_number")
    months = _period_totals(lines, month_number).with_columns(
        pl.date(2000, pl.col("month_number"), 1).dt.strftime("%B").alias("month_name")
    )

    return months.select([
        "month_number",
        "month_name",
        "total_sales",
        "total_customers",
        "total_quantity",
        "total_orders",
    ]).sort("month_number")


def product_yoy(sales: RowSet, products: RowSet) -> pl.DataFrame:
    """
    Yearly sales per product against the previous year and the product average.

    Only lines whose product is in the dimension are included. A product's
    first year has no previous_year_sales, so its growth is null and its
    trend is "No Change".

    Returns:
        One row per product and year, ordered by product_name then year
    """
    started = time.perf_counter()

    products_df = prepare_input(products, PRODUCT_SCHEMA, create_products_validator(), "products")
    lines = _dated_lines(sales)

    dim = products_df.select(["product_key", "product_name", "category"])
    if lines.schema["product_key"] != dim.schema["product_key"]:
        dim = dim.with_columns(pl.col("product_key").cast(lines.schema["product_key"]))

    yearly = (
        lines.join(dim, on="product_key", how="inner")
        .group_by([
            "product_key",
            "product_name",
            "category",
            pl.col("order_date").dt.year().cast(pl.Int64).alias("order_year"),
        ])
        .agg(pl.col("sales_amount").sum().alias("current_year_sales"))
        .sort(["product_key", "order_year"])
    )

    current = pl.col("current_year_sales")
    previous = current.shift(1).over("product_key")
    product_avg = current.mean().over("product_key")

    yearly = yearly.with_columns([
        previous.alias("previous_year_sales"),
        (current - previous).alias("yoy_sales_diff"),
        product_avg.round(2).alias("product_avg_sales"),
        (current - product_avg).round(2).alias("diff_from_avg"),
    ])

    yearly = yearly.with_columns(
        (safe_divide("yoy_sales_diff", "previous_year_sales", decimals=None) * 100)
        .round(2)
        .alias("yoy_growth_pct")
    )
    yearly = apply_rule_sets(yearly, TREND_RULE_SETS)

    yearly = yearly.select([
        "order_year",
        "product_key",
        "product_name",
        "category",
        "current_year_sales",
        "previous_year_sales",
        "yoy_sales_diff",
        "yoy_growth_pct",
        "yoy_trend",
        "product_avg_sales",
        "diff_from_avg",
        "performance_vs_avg",
    ]).sort(["product_name", "product_key", "order_year"], nulls_last=True)

    duration = time.perf_counter() - started
    record_build("product_yoy", yearly.height, duration)

    logger.info(
        "Product year-over-year complete",
        rows=yearly.height,
        duration_ms=round(duration * 1000, 2),
    )
    return yearly
