"""
Ranking and Percentile Functions

Set-wide computations that need every entity row materialized first:
dense ranks (global or partitioned), NTILE-style buckets and contribution
percentages.
"""

from typing import List, Optional, Sequence, Union

import polars as pl

POSITION_COLUMN = "__position"


def dense_rank(
    column: str,
    descending: bool = True,
    partition_by: Optional[Union[str, Sequence[str]]] = None,
) -> pl.Expr:
    """
    Dense rank of a column: ties share a rank and the next value is exactly one higher.

    Args:
        column: Column to rank on
        descending: Highest value gets rank 1
        partition_by: Rank independently inside each partition
    """
    expr = pl.col(column).rank(method="dense", descending=descending)
    if partition_by is not None:
        expr = expr.over(partition_by)
    return expr.cast(pl.Int64)


def contribution_pct(
    column: str,
    partition_by: Optional[Union[str, Sequence[str]]] = None,
    decimals: int = 2,
) -> pl.Expr:
    """
    Share of a value in its column total, as a percentage.

    Gives 0 when the total is 0 or null.
    """
    total = pl.col(column).sum()
    if partition_by is not None:
        total = total.over(partition_by)

    return (
        pl.when(total.is_null() | (total == 0))
        .then(pl.lit(0.0))
        .otherwise((pl.col(column).cast(pl.Float64) * 100 / total.cast(pl.Float64)).round(decimals))
    )


def ntile_expr(buckets: int, row_count: int, position: pl.Expr) -> pl.Expr:
    """
    Bucket number (1..buckets) of a 0-based position in an ordered set.

    Bucket sizes differ by at most one and the larger buckets come first.
    """
    if buckets < 1:
        raise ValueError("buckets must be at least 1")

    base, remainder = divmod(row_count, buckets)
    large = base + 1
    boundary = remainder * large

    if base == 0:
        return (position + 1).cast(pl.Int64)

    return (
        pl.when(position < boundary)
        .then(position // large + 1)
        .otherwise(remainder + (position - boundary) // base + 1)
        .cast(pl.Int64)
    )


def add_ntiles(
    df: pl.DataFrame,
    order_by: str,
    tie_breaker: str,
    ntiles: dict,
    descending: bool = True,
) -> pl.DataFrame:
    """
    Add NTILE columns over the whole frame.

    Rows are ordered by `order_by` (descending by default, nulls last) and then
    by `tie_breaker` ascending, so equal values are bucketed deterministically.

    Args:
        df: Fully materialized entity rows
        order_by: Ordering column
        tie_breaker: Column making the order total
        ntiles: Mapping of output column name to bucket count

    Returns:
        Frame sorted in bucket order with one column per entry in `ntiles`
    """
    ordered = df.sort(
        [order_by, tie_breaker],
        descending=[descending, False],
        nulls_last=True,
    ).with_row_index(POSITION_COLUMN)

    position = pl.col(POSITION_COLUMN).cast(pl.Int64)
    columns: List[pl.Expr] = [
        ntile_expr(buckets, ordered.height, position).alias(name)
        for name, buckets in ntiles.items()
    ]

    return ordered.with_columns(columns).drop(POSITION_COLUMN)
