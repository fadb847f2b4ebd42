"""
Segment and Contribution Summaries

Part-to-whole views computed from finished reports: how entities and revenue
spread across the labels of a segment family, and how much each product
category and subcategory contributes to total sales.
"""

import polars as pl
import structlog

from sales_analytics.transformation.ranking import contribution_pct, dense_rank
from sales_analytics.transformation.segmentation import RULE_SETS

logger = structlog.get_logger(__name__)

ORDER_COLUMN = "__label_order"


def segment_distribution(
    report: pl.DataFrame,
    segment_column: str,
    value_column: str,
) -> pl.DataFrame:
    """
    Distribution of entities and value across one segment family.

    Args:
        report: Customer or product report
        segment_column: Label column, e.g. "age_group" or "cost_range"
        value_column: Revenue column, e.g. "customer_lifetime_value"

    Returns:
        One row per label present, in the rule set's label order, with
        total_entities, total_value, avg_value, entity_percentage and
        value_percentage

    Raises:
        KeyError: segment_column or value_column is not in the report
    """
    for column in (segment_column, value_column):
        if column not in report.columns:
            raise KeyError(f"Column '{column}' not in report")

    summary = report.group_by(segment_column).agg([
        # One report row per entity, including the null-key entity
        pl.len().cast(pl.Int64).alias("total_entities"),
        pl.col(value_column).sum().alias("total_value"),
        pl.col(value_column).mean().round(2).alias("avg_value"),
    ])

    summary = summary.with_columns([
        contribution_pct("total_entities").alias("entity_percentage"),
        contribution_pct("total_value").alias("value_percentage"),
    ])

    rule_set = RULE_SETS.get(segment_column)
    if rule_set is None:
        return summary.sort(segment_column, nulls_last=True)

    label_order = pl.DataFrame({
        segment_column: rule_set.labels,
        ORDER_COLUMN: list(range(len(rule_set.labels))),
    })
    return (
        summary.join(label_order, on=segment_column, how="left")
        .sort([ORDER_COLUMN, segment_column], nulls_last=True)
        .drop(ORDER_COLUMN)
    )


def category_contribution(product_report: pl.DataFrame) -> pl.DataFrame:
    """
    Category share of total sales.

    Returns:
        category, total_products, category_sales, total_quantity,
        sales_percentage and revenue_rank, highest sales first
    """
    summary = product_report.group_by("category").agg([
        pl.len().cast(pl.Int64).alias("total_products"),
        pl.col("total_sales").sum().alias("category_sales"),
        pl.col("total_quantity").sum().alias("total_quantity"),
    ])

    summary = summary.with_columns([
        contribution_pct("category_sales").alias("sales_percentage"),
        dense_rank("category_sales").alias("revenue_rank"),
    ])

    logger.debug("Category contribution computed", categories=summary.height)

    return summary.sort(
        ["category_sales", "category"],
        descending=[True, False],
        nulls_last=True,
    )


def subcategory_contribution(product_report: pl.DataFrame) -> pl.DataFrame:
    """
    Subcategory share of total sales and of its own category's sales.

    Returns:
        category, subcategory, total_products, subcategory_sales,
        total_quantity, sales_percentage and category_percentage, highest
        sales first
    """
    summary = product_report.group_by(["category", "subcategory"]).agg([
        pl.len().cast(pl.Int64).alias("total_products"),
        pl.col("total_sales").sum().alias("subcategory_sales"),
        pl.col("total_quantity").sum().alias("total_quantity"),
    ])

    summary = summary.with_columns([
        contribution_pct("subcategory_sales").alias("sales_percentage"),
        contribution_pct("subcategory_sales", partition_by="category").alias("category_percentage"),
    ])

    return summary.sort(
        ["subcategory_sales", "category", "subcategory"],
        descending=[True, False, False],
        nulls_last=True,
    )
