"""
Metric Aggregator

Reduces enriched sales lines to one metrics row per entity (customer or
product). Entities without lines never appear in the output.

Reduction can fan out over worker threads: lines are hash-partitioned on the
entity key so every entity lives in exactly one partition, each partition is
reduced independently, and the partial results are concatenated.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import List, Sequence

import polars as pl
import structlog

from .expressions import days_between, months_between

logger = structlog.get_logger(__name__)

PARTITION_COLUMN = "__partition"


@dataclass(frozen=True)
class EntityProfile:
    """Which columns identify an entity and which are carried alongside its metrics"""
    name: str
    key: str
    counterpart_key: str
    attributes: Sequence[str] = field(default_factory=tuple)


CUSTOMER_PROFILE = EntityProfile(
    name="customer",
    key="customer_key",
    counterpart_key="product_key",
    attributes=(
        "customer_number",
        "first_name",
        "last_name",
        "country",
        "gender",
        "birthdate",
        "age",
    ),
)

PRODUCT_PROFILE = EntityProfile(
    name="product",
    key="product_key",
    counterpart_key="customer_key",
    attributes=(
        "product_name",
        "category",
        "subcategory",
        "cost",
    ),
)


class MetricAggregator:
    """
    Per-entity metric reduction.

    Output columns:
        total_orders, total_sales, total_quantity, total_counterparts,
        avg_transaction_value, first_activity_date, last_activity_date,
        lifespan_months, recency_months, recency_days, min_price, max_price,
        avg_price, avg_selling_price, plus the profile's attribute columns.

    Example:
        aggregator = MetricAggregator(evaluation_date=date(2024, 7, 1), max_workers=4)
        metrics = aggregator.aggregate(lines, CUSTOMER_PROFILE)
    """

    def __init__(self, evaluation_date: date, max_workers: int = 1):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.evaluation_date = evaluation_date
        self.max_workers = max_workers

    def _metric_exprs(self, profile: EntityProfile, columns: Sequence[str]) -> List[pl.Expr]:
        """Aggregations for one entity group"""
        exprs = [
            pl.col("order_id").drop_nulls().n_unique().alias("total_orders"),
            pl.col("sales_amount").sum().alias("total_sales"),
            pl.col("quantity").sum().alias("total_quantity"),
            pl.col(profile.counterpart_key).drop_nulls().n_unique().alias("total_counterparts"),
            pl.col("sales_amount").mean().alias("avg_transaction_value"),
            pl.col("order_date").min().alias("first_activity_date"),
            pl.col("order_date").max().alias("last_activity_date"),
            pl.col("unit_price").min().alias("min_price"),
            pl.col("unit_price").max().alias("max_price"),
            pl.col("unit_price").mean().alias("avg_price"),
            # Mean of per-line unit revenue; zero-quantity lines are skipped
            (
                pl.col("sales_amount").cast(pl.Float64)
                / pl.when(pl.col("quantity") != 0).then(pl.col("quantity")).cast(pl.Float64)
            ).mean().round(2).alias("avg_selling_price"),
        ]
        # Attributes are constant within an entity
        exprs.extend(
            pl.col(attr).first().alias(attr)
            for attr in profile.attributes
            if attr in columns
        )
        return exprs

    def _reduce(self, lines: pl.DataFrame, profile: EntityProfile) -> pl.DataFrame:
        """Reduce one partition of lines"""
        return lines.group_by(profile.key).agg(self._metric_exprs(profile, lines.columns))

    def _partitions(self, lines: pl.DataFrame, profile: EntityProfile) -> List[pl.DataFrame]:
        """Split lines into disjoint key partitions"""
        if self.max_workers == 1 or lines.height == 0:
            return [lines]

        keyed = lines.with_columns(
            (pl.col(profile.key).hash(seed=0) % self.max_workers).alias(PARTITION_COLUMN)
        )
        return keyed.partition_by(PARTITION_COLUMN, include_key=False, maintain_order=True)

    def aggregate(self, lines: pl.DataFrame, profile: EntityProfile) -> pl.DataFrame:
        """
        Reduce enriched lines to per-entity metrics.

        Args:
            lines: Output of the TransactionJoiner
            profile: Entity definition (CUSTOMER_PROFILE or PRODUCT_PROFILE)

        Returns:
            One row per entity key, sorted by key
        """
        partitions = self._partitions(lines, profile)

        if len(partitions) == 1:
            metrics = self._reduce(partitions[0], profile)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                reduced = list(pool.map(lambda part: self._reduce(part, profile), partitions))
            metrics = pl.concat(reduced, how="vertical")

        evaluation_date = pl.lit(self.evaluation_date, dtype=pl.Date)
        metrics = metrics.with_columns([
            months_between("first_activity_date", "last_activity_date").alias("lifespan_months"),
            months_between(pl.col("last_activity_date"), evaluation_date).clip(lower_bound=0).alias("recency_months"),
            days_between(pl.col("last_activity_date"), evaluation_date).clip(lower_bound=0).alias("recency_days"),
        ])

        metrics = metrics.sort(profile.key, nulls_last=True)

        logger.info(
            "Aggregated entity metrics",
            entity=profile.name,
            input_lines=lines.height,
            entities=metrics.height,
            partitions=len(partitions),
        )

        return metrics


def aggregate(
    lines: pl.DataFrame,
    profile: EntityProfile,
    evaluation_date: date,
    max_workers: int = 1,
) -> pl.DataFrame:
    """Convenience function for one-off aggregation"""
    return MetricAggregator(evaluation_date, max_workers=max_workers).aggregate(lines, profile)
