"""
Shared Polars Expressions

Null-safe arithmetic and calendar helpers used by the aggregation and
decoration stages.
"""

from datetime import date
from typing import Optional, Union

import polars as pl

IntoExpr = Union[pl.Expr, str]


def _expr(value: IntoExpr) -> pl.Expr:
    return pl.col(value) if isinstance(value, str) else value


def safe_divide(numerator: IntoExpr, denominator: IntoExpr, decimals: Optional[int] = 2) -> pl.Expr:
    """
    Divide two expressions, yielding null when the denominator is 0 or null.

    Args:
        numerator: Column name or expression
        denominator: Column name or expression
        decimals: Round the quotient to this many places (None keeps full precision)
    """
    num = _expr(numerator)
    den = _expr(denominator)

    quotient = num.cast(pl.Float64) / den.cast(pl.Float64)
    if decimals is not None:
        quotient = quotient.round(decimals)

    return (
        pl.when(den.is_null() | (den == 0))
        .then(pl.lit(None, dtype=pl.Float64))
        .otherwise(quotient)
    )


def months_between(start: IntoExpr, end: IntoExpr) -> pl.Expr:
    """
    Whole calendar months from start to end, ignoring the day of month.

    months = (end.year - start.year) * 12 + (end.month - start.month)
    """
    start_expr = _expr(start)
    end_expr = _expr(end)
    return (
        (end_expr.dt.year().cast(pl.Int64) - start_expr.dt.year().cast(pl.Int64)) * 12
        + (end_expr.dt.month().cast(pl.Int64) - start_expr.dt.month().cast(pl.Int64))
    )


def days_between(start: IntoExpr, end: IntoExpr) -> pl.Expr:
    """Calendar days from start to end"""
    return (_expr(end) - _expr(start)).dt.total_days()


def elapsed_years(birthdate: IntoExpr, as_of: date) -> pl.Expr:
    """
    Whole years elapsed from birthdate to as_of.

    One year is subtracted when the birthday has not yet come round in the
    as_of year. Null birthdates give null.
    """
    born = _expr(birthdate)
    birthday_pending = (born.dt.month() > as_of.month) | (
        (born.dt.month() == as_of.month) & (born.dt.day() > as_of.day)
    )
    return (
        pl.lit(as_of.year, dtype=pl.Int64)
        - born.dt.year().cast(pl.Int64)
        - birthday_pending.cast(pl.Int64)
    )
