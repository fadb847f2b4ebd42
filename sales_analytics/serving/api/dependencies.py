"""
API Dependencies

Snapshot loading and evaluation-date resolution shared by the report routes.
"""

from datetime import date
from functools import lru_cache
from typing import Optional

from fastapi import Query

from sales_analytics.config import get_settings
from sales_analytics.ingestion.csv_loader import DatasetLoader, DatasetSnapshot


@lru_cache()
def get_snapshot() -> DatasetSnapshot:
    """Load the configured extracts once per process"""
    return DatasetLoader().load_snapshot()


def get_evaluation_date(
    evaluation_date: Optional[date] = Query(
        None,
        description="Date recency and age are measured against (default: configured date, else today)",
    ),
) -> date:
    """Resolve the evaluation date; the wall clock is read only here"""
    if evaluation_date is not None:
        return evaluation_date
    pinned = get_settings().reports.evaluation_date
    return pinned or date.today()
