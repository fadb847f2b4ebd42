"""
Customer Analytics Report

Customer-level view consolidating purchase history, engagement and
segmentation:

- Customer value: lifetime value, average order value, purchase frequency
- Engagement: recency, lifespan, order frequency
- Product affinity: distinct products purchased, basket diversity
- Segmentation: lifecycle stage, age group, value tier, health score
- Ranking: overall, by order count and within country; revenue deciles and quartiles
"""

import time
from datetime import date
from typing import Optional

import polars as pl
import structlog

from sales_analytics.config import Settings, get_settings
from sales_analytics.data.schemas import CUSTOMER_SCHEMA, SALES_ACCEPTED_TYPES, RowSet
from sales_analytics.quality.validators import (
    create_customers_validator,
    create_sales_validator,
)
from sales_analytics.transformation.aggregator import CUSTOMER_PROFILE, MetricAggregator
from sales_analytics.transformation.expressions import safe_divide
from sales_analytics.transformation.joiner import TransactionJoiner
from sales_analytics.transformation.ranking import add_ntiles, dense_rank
from sales_analytics.transformation.segmentation import CUSTOMER_RULE_SETS, apply_rule_sets

from .inputs import prepare_input, record_build, resolve_workers

logger = structlog.get_logger(__name__)


CUSTOMER_REPORT_COLUMNS = [
    # Customer identifiers
    "customer_key",
    "customer_number",
    "first_name",
    "last_name",
    "full_name",
    # Demographics
    "age",
    "age_group",
    "gender",
    "country",
    "birthdate",
    # Segmentation
    "customer_segment",
    "engagement_status",
    "value_tier",
    "purchase_frequency_segment",
    # Temporal information
    "first_order_date",
    "last_order_date",
    "recency_months",
    "recency_days",
    "lifespan_months",
    # Volume metrics
    "total_orders",
    "total_products",
    "total_quantity",
    # Revenue metrics
    "customer_lifetime_value",
    "avg_transaction_value",
    # Calculated KPIs
    "avg_order_value",
    "avg_monthly_spend",
    "avg_orders_per_month",
    "avg_items_per_order",
    "product_diversity_score",
    # Pricing insights
    "highest_price_paid",
    "lowest_price_paid",
    "avg_price_paid",
    # Health
    "customer_health_score",
    # Ranking
    "revenue_rank",
    "order_frequency_rank",
    "country_revenue_rank",
    # Percentiles
    "revenue_decile",
    "revenue_quartile",
]


def _full_name() -> pl.Expr:
    # Null when either part is missing
    return pl.concat_str([pl.col("first_name"), pl.col("last_name")], separator=" ").alias("full_name")


def decorate_customers(
    metrics: pl.DataFrame,
    decile_buckets: int = 10,
    quartile_buckets: int = 4,
) -> pl.DataFrame:
    """
    Turn customer metrics into report rows.

    Adds segment labels, ratio KPIs, ranks and revenue buckets. Never raises
    on data values: undefined ratios become null and null metrics fall into
    each rule set's default label.

    Args:
        metrics: MetricAggregator output for CUSTOMER_PROFILE
        decile_buckets: Bucket count for revenue_decile
        quartile_buckets: Bucket count for revenue_quartile

    Returns:
        Report frame ordered by lifetime value (desc) then customer_key
    """
    df = metrics.rename({"total_counterparts": "total_products"})

    df = df.with_columns(_full_name())
    df = apply_rule_sets(df, CUSTOMER_RULE_SETS)

    df = df.with_columns([
        # KPIs
        safe_divide("total_sales", "total_orders").alias("avg_order_value"),
        safe_divide("total_sales", "lifespan_months").alias("avg_monthly_spend"),
        safe_divide("total_orders", "lifespan_months").alias("avg_orders_per_month"),
        safe_divide("total_quantity", "total_orders").alias("avg_items_per_order"),
        safe_divide("total_products", "total_orders").alias("product_diversity_score"),
        # Pricing
        pl.col("avg_transaction_value").round(2),
        pl.col("avg_price").round(2).alias("avg_price_paid"),
        # Ranks
        dense_rank("total_sales").alias("revenue_rank"),
        dense_rank("total_orders").alias("order_frequency_rank"),
        dense_rank("total_sales", partition_by="country").alias("country_revenue_rank"),
    ])

    df = add_ntiles(
        df,
        order_by="total_sales",
        tie_breaker="customer_key",
        ntiles={"revenue_decile": decile_buckets, "revenue_quartile": quartile_buckets},
    )

    df = df.rename({
        "first_activity_date": "first_order_date",
        "last_activity_date": "last_order_date",
        "total_sales": "customer_lifetime_value",
        "max_price": "highest_price_paid",
        "min_price": "lowest_price_paid",
    })

    return df.select(CUSTOMER_REPORT_COLUMNS).sort(
        ["customer_lifetime_value", "customer_key"],
        descending=[True, False],
        nulls_last=True,
    )


def build_customer_report(
    sales: RowSet,
    customers: RowSet,
    evaluation_date: date,
    max_workers: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> pl.DataFrame:
    """
    Build the customer report from raw facts and the customer dimension.

    Args:
        sales: Sales fact rows (DataFrame or sequence of mappings)
        customers: Customer dimension rows
        evaluation_date: Date that age and recency are measured against
        max_workers: Aggregation threads (default from settings)
        settings: Settings override

    Raises:
        InvalidInputShapeError: an input violates the star schema
    """
    settings = settings or get_settings()
    workers = resolve_workers(max_workers, settings.reports.aggregation_workers)
    started = time.perf_counter()

    logger.info("Building customer report", evaluation_date=evaluation_date.isoformat())

    customers_df = prepare_input(customers, CUSTOMER_SCHEMA, create_customers_validator(), "customers")
    sales_df = prepare_input(
        sales,
        SALES_ACCEPTED_TYPES,
        create_sales_validator().add_referential_integrity_check(
            "customer_key", customers_df, "customer_key",
        ),
        "sales",
    )

    lines = TransactionJoiner(evaluation_date).join_customers(sales_df, customers_df)
    metrics = MetricAggregator(evaluation_date, max_workers=workers).aggregate(lines, CUSTOMER_PROFILE)
    report = decorate_customers(
        metrics,
        decile_buckets=settings.reports.decile_buckets,
        quartile_buckets=settings.reports.quartile_buckets,
    )

    duration = time.perf_counter() - started
    record_build("customers", report.height, duration)

    logger.info(
        "Customer report complete",
        customers=report.height,
        duration_ms=round(duration * 1000, 2),
    )
    return report
