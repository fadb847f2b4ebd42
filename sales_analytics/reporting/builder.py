"""
Report Builder

Runs the customer and product reports over one snapshot and writes them to
the curated zone.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

import polars as pl
import structlog

from sales_analytics.config import get_settings
from sales_analytics.ingestion.csv_loader import DatasetSnapshot
from .customers import build_customer_report
from .products import build_product_report

logger = structlog.get_logger(__name__)


class ReportType(str, Enum):
    """Report kinds"""
    CUSTOMERS = "customers"
    PRODUCTS = "products"


@dataclass
class ReportResult:
    """Result of one report build"""
    report_type: ReportType
    evaluation_date: date
    input_rows: int
    output_rows: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    output_path: Optional[str] = None


class ReportBuilder:
    """
    Build and persist both reports for an evaluation date.

    Example:
        builder = ReportBuilder(output_path="data/curated")
        results = builder.run(snapshot, evaluation_date=date(2024, 7, 1))
    """

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        output_format: Optional[str] = None,
        max_workers: Optional[int] = None,
    ):
        settings = get_settings()
        self.settings = settings
        self.output_path = Path(output_path or settings.data_lake.curated_path)
        self.output_format = (output_format or settings.data_lake.output_format).lower()
        self.max_workers = max_workers

        if self.output_format not in ("parquet", "csv"):
            raise ValueError(f"Unsupported output format: {self.output_format}")

    def _write_output(self, df: pl.DataFrame, name: str, evaluation_date: date) -> str:
        """Write a report to the curated zone, named by report and evaluation date"""
        self.output_path.mkdir(parents=True, exist_ok=True)
        output_file = self.output_path / f"report_{name}_{evaluation_date:%Y%m%d}.{self.output_format}"

        if self.output_format == "parquet":
            df.write_parquet(output_file)
        else:
            df.write_csv(output_file)

        logger.info("Report written", report=name, rows=df.height, path=str(output_file))
        return str(output_file)

    def build(
        self,
        report_type: ReportType,
        snapshot: DatasetSnapshot,
        evaluation_date: date,
        write: bool = True,
    ) -> tuple:
        """
        Build one report.

        Returns:
            (report frame, ReportResult)
        """
        started_at = datetime.utcnow()

        if report_type == ReportType.CUSTOMERS:
            report = build_customer_report(
                snapshot.sales,
                snapshot.customers,
                evaluation_date,
                max_workers=self.max_workers,
                settings=self.settings,
            )
        else:
            report = build_product_report(
                snapshot.sales,
                snapshot.products,
                evaluation_date,
                max_workers=self.max_workers,
                settings=self.settings,
            )

        output_file = self._write_output(report, report_type.value, evaluation_date) if write else None
        completed_at = datetime.utcnow()

        result = ReportResult(
            report_type=report_type,
            evaluation_date=evaluation_date,
            input_rows=snapshot.sales.height,
            output_rows=report.height,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            output_path=output_file,
        )
        return report, result

    def run(
        self,
        snapshot: DatasetSnapshot,
        evaluation_date: date,
        write: bool = True,
    ) -> Dict[str, ReportResult]:
        """
        Build every report for the snapshot.

        Args:
            snapshot: Loaded sales, customers and products
            evaluation_date: Date recency and age are measured against
            write: Persist reports to the curated zone

        Returns:
            Dictionary of report results by report type
        """
        logger.info("Starting report run", evaluation_date=evaluation_date.isoformat(), **snapshot.row_counts)
        results = {}

        for report_type in ReportType:
            _, result = self.build(report_type, snapshot, evaluation_date, write=write)
            results[report_type.value] = result

        total_duration = sum(r.duration_seconds for r in results.values())
        logger.info(
            "Report run complete",
            reports=len(results),
            duration_seconds=round(total_duration, 2),
        )

        return results
