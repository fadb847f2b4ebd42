"""
Report Input Preparation

Converts caller-supplied row sets to frames and validates them before any
aggregation starts. Any shape violation aborts the build.
"""

from typing import Dict, Optional

import polars as pl
from prometheus_client import Counter, Gauge, Histogram

from sales_analytics.data.schemas import DTypeSpec, RowSet, to_frame
from sales_analytics.quality.validators import (
    DataValidator,
    InvalidInputShapeError,
    ensure_valid,
)


# =============================================================================
# METRICS
# =============================================================================

INPUTS_REJECTED = Counter(
    "sales_report_inputs_rejected_total",
    "Report inputs rejected by validation",
    ["dataset"],
)

REPORT_BUILD_TIME = Histogram(
    "sales_report_build_seconds",
    "Time spent building a report",
    ["report"],
)

REPORT_ROWS = Gauge(
    "sales_report_rows",
    "Rows in the most recently built report",
    ["report"],
)


def prepare_input(
    rows: RowSet,
    schema: Dict[str, DTypeSpec],
    validator: DataValidator,
    dataset: str,
) -> pl.DataFrame:
    """
    Build a frame from rows and validate it.

    Raises:
        InvalidInputShapeError: rows cannot be converted or fail an ERROR check
    """
    try:
        df = to_frame(rows, schema)
    except (pl.exceptions.PolarsError, TypeError, ValueError) as e:
        INPUTS_REJECTED.labels(dataset=dataset).inc()
        raise InvalidInputShapeError(dataset, f"cannot build frame: {e}") from e

    try:
        ensure_valid(df, validator, dataset)
    except InvalidInputShapeError:
        INPUTS_REJECTED.labels(dataset=dataset).inc()
        raise

    return df


def record_build(report: str, rows: int, duration_seconds: float) -> None:
    """Publish build metrics for one finished report"""
    REPORT_BUILD_TIME.labels(report=report).observe(duration_seconds)
    REPORT_ROWS.labels(report=report).set(rows)


def resolve_workers(max_workers: Optional[int], default: int) -> int:
    """Worker count for aggregation, falling back to configuration"""
    workers = max_workers if max_workers is not None else default
    if workers < 1:
        raise ValueError("max_workers must be at least 1")
    return workers
