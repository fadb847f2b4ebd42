"""
Transaction Joiner

Attaches dimension attributes to sales lines. The join is a best-effort left
join: a line whose key has no dimension row keeps null attributes rather than
being dropped. Lines without an order date are excluded because every
downstream metric is temporal.
"""

from datetime import date
from typing import List, Optional

import polars as pl
import structlog

from .expressions import elapsed_years

logger = structlog.get_logger(__name__)


class TransactionJoiner:
    """
    Join sales facts to the customer or product dimension.

    Example:
        joiner = TransactionJoiner(evaluation_date=date(2024, 7, 1))
        lines = joiner.join_customers(sales_df, customers_df)
    """

    def __init__(self, evaluation_date: date):
        self.evaluation_date = evaluation_date

    def join(
        self,
        facts: pl.DataFrame,
        dimension: pl.DataFrame,
        on: str,
        columns: Optional[List[str]] = None,
    ) -> pl.DataFrame:
        """
        Left-join facts to a dimension on a shared key.

        Args:
            facts: Sales lines
            dimension: Customer or product rows, unique on `on`
            on: Join key column
            columns: Dimension columns to carry (default: all)

        Returns:
            Enriched lines, one per fact line with a non-null order date
        """
        lines = facts.filter(pl.col("order_date").is_not_null())
        dropped = facts.height - lines.height

        dim_columns = [c for c in (columns or dimension.columns) if c != on and c not in lines.columns]
        dim = dimension.select([on] + dim_columns)

        if lines.schema[on] != dim.schema[on]:
            dim = dim.with_columns(pl.col(on).cast(lines.schema[on]))

        # Normalize datetimes to dates so that month arithmetic sees calendar dates
        if lines.schema["order_date"] != pl.Date:
            lines = lines.with_columns(pl.col("order_date").cast(pl.Date))

        enriched = lines.join(dim, on=on, how="left")

        matched_keys = dim.get_column(on).drop_nulls().unique()
        unmatched = lines.filter(~pl.col(on).is_in(matched_keys.implode()) | pl.col(on).is_null()).height

        if unmatched:
            logger.warning(
                "Sales lines reference missing dimension rows",
                key=on,
                unmatched_lines=unmatched,
            )

        logger.info(
            "Joined sales lines",
            key=on,
            input_lines=facts.height,
            output_lines=enriched.height,
            dropped_without_order_date=dropped,
        )

        return enriched

    def join_customers(self, facts: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
        """Join to customers and add age at the evaluation date"""
        enriched = self.join(facts, customers, on="customer_key")

        if "birthdate" not in enriched.columns:
            return enriched.with_columns(pl.lit(None, dtype=pl.Int64).alias("age"))

        return enriched.with_columns(
            elapsed_years(pl.col("birthdate").cast(pl.Date), self.evaluation_date).alias("age")
        )

    def join_products(self, facts: pl.DataFrame, products: pl.DataFrame) -> pl.DataFrame:
        """Join to products"""
        return self.join(facts, products, on="product_key")


def join_transactions(
    facts: pl.DataFrame,
    dimension: pl.DataFrame,
    evaluation_date: date,
    on: str = "customer_key",
) -> pl.DataFrame:
    """
    Convenience function joining facts to a dimension.

    Customer joins also receive the `age` column.
    """
    joiner = TransactionJoiner(evaluation_date)
    if on == "customer_key":
        return joiner.join_customers(facts, dimension)
    if on == "product_key":
        return joiner.join_products(facts, dimension)
    return joiner.join(facts, dimension, on=on)
