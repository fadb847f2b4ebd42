"""
Product Performance Report

Product-level view of sales performance, lifecycle, pricing and market share:

- Sales performance: revenue, order volume, customer reach
- Lifecycle: lifespan, recency, last sale date
- Profitability: average order revenue, monthly revenue, margin against cost
- Market share: contribution to total and category sales
"""

import time
from datetime import date
from typing import Optional

import polars as pl
import structlog

from sales_analytics.config import Settings, get_settings
from sales_analytics.data.schemas import PRODUCT_SCHEMA, SALES_ACCEPTED_TYPES, RowSet
from sales_analytics.quality.validators import (
    create_products_validator,
    create_sales_validator,
)
from sales_analytics.transformation.aggregator import PRODUCT_PROFILE, MetricAggregator
from sales_analytics.transformation.expressions import safe_divide
from sales_analytics.transformation.joiner import TransactionJoiner
from sales_analytics.transformation.ranking import add_ntiles, contribution_pct, dense_rank
from sales_analytics.transformation.segmentation import PRODUCT_RULE_SETS, apply_rule_sets

from .inputs import prepare_input, record_build, resolve_workers

logger = structlog.get_logger(__name__)


PRODUCT_REPORT_COLUMNS = [
    # Product identifiers
    "product_key",
    "product_name",
    "category",
    "subcategory",
    # Cost analysis
    "product_cost",
    "cost_range",
    # Temporal information
    "first_sale_date",
    "last_sale_date",
    "recency_months",
    "recency_days",
    "lifespan_months",
    # Segmentation
    "performance_segment",
    "recency_status",
    # Volume metrics
    "total_orders",
    "total_customers",
    "total_quantity",
    # Revenue metrics
    "total_sales",
    "sales_percentage",
    "category_sales_percentage",
    "avg_transaction_value",
    # Calculated KPIs
    "avg_order_revenue",
    "avg_monthly_revenue",
    "avg_orders_per_customer",
    # Pricing analysis
    "avg_selling_price",
    "min_selling_price",
    "max_selling_price",
    "avg_profit_margin",
    "profit_margin_pct",
    # Health
    "product_health_score",
    # Ranking
    "overall_revenue_rank",
    "category_revenue_rank",
    "order_frequency_rank",
    # Percentiles
    "revenue_decile",
    "revenue_quartile",
]


def decorate_products(
    metrics: pl.DataFrame,
    decile_buckets: int = 10,
    quartile_buckets: int = 4,
) -> pl.DataFrame:
    """
    Turn product metrics into report rows.

    Args:
        metrics: MetricAggregator output for PRODUCT_PROFILE
        decile_buckets: Bucket count for revenue_decile
        quartile_buckets: Bucket count for revenue_quartile

    Returns:
        Report frame ordered by total sales (desc) then product_key
    """
    df = metrics.rename({"total_counterparts": "total_customers"})
    df = apply_rule_sets(df, PRODUCT_RULE_SETS)

    margin = pl.col("avg_selling_price") - pl.col("cost")

    df = df.with_columns([
        # KPIs
        safe_divide("total_sales", "total_orders").alias("avg_order_revenue"),
        safe_divide("total_sales", "lifespan_months").alias("avg_monthly_revenue"),
        safe_divide("total_orders", "total_customers").alias("avg_orders_per_customer"),
        margin.round(2).alias("avg_profit_margin"),
        safe_divide(margin * 100, "cost").alias("profit_margin_pct"),
        pl.col("avg_transaction_value").round(2),
        # Market share
        contribution_pct("total_sales").alias("sales_percentage"),
        contribution_pct("total_sales", partition_by="category").alias("category_sales_percentage"),
        # Ranks
        dense_rank("total_sales").alias("overall_revenue_rank"),
        dense_rank("total_sales", partition_by="category").alias("category_revenue_rank"),
        dense_rank("total_orders").alias("order_frequency_rank"),
    ])

    df = add_ntiles(
        df,
        order_by="total_sales",
        tie_breaker="product_key",
        ntiles={"revenue_decile": decile_buckets, "revenue_quartile": quartile_buckets},
    )

    df = df.rename({
        "cost": "product_cost",
        "first_activity_date": "first_sale_date",
        "last_activity_date": "last_sale_date",
        "min_price": "min_selling_price",
        "max_price": "max_selling_price",
    })

    return df.select(PRODUCT_REPORT_COLUMNS).sort(
        ["total_sales", "product_key"],
        descending=[True, False],
        nulls_last=True,
    )


def build_product_report(
    sales: RowSet,
    products: RowSet,
    evaluation_date: date,
    max_workers: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> pl.DataFrame:
    """
    Build the product report from raw facts and the product dimension.

    Args:
        sales: Sales fact rows (DataFrame or sequence of mappings)
        products: Product dimension rows
        evaluation_date: Date that recency is measured against
        max_workers: Aggregation threads (default from settings)
        settings: Settings override

    Raises:
        InvalidInputShapeError: an input violates the star schema
    """
    settings = settings or get_settings()
    workers = resolve_workers(max_workers, settings.reports.aggregation_workers)
    started = time.perf_counter()

    logger.info("Building product report", evaluation_date=evaluation_date.isoformat())

    products_df = prepare_input(products, PRODUCT_SCHEMA, create_products_validator(), "products")
    sales_df = prepare_input(
        sales,
        SALES_ACCEPTED_TYPES,
        create_sales_validator().add_referential_integrity_check(
            "product_key", products_df, "product_key",
        ),
        "sales",
    )

    lines = TransactionJoiner(evaluation_date).join_products(sales_df, products_df)
    metrics = MetricAggregator(evaluation_date, max_workers=workers).aggregate(lines, PRODUCT_PROFILE)
    report = decorate_products(
        metrics,
        decile_buckets=settings.reports.decile_buckets,
        quartile_buckets=settings.reports.quartile_buckets,
    )

    duration = time.perf_counter() - started
    record_build("products", report.height, duration)

    logger.info(
        "Product report complete",
        products=report.height,
        duration_ms=round(duration * 1000, 2),
    )
    return report
