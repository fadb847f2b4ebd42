"""
Report Command Line Interface

Builds the customer and product reports from a directory of CSV extracts.

Usage:
    sales-reports --data-dir datasets/csv-files --evaluation-date 2024-07-01
    sales-reports --format csv --output-dir out --workers 8
"""

import argparse
import sys
from datetime import date
from typing import List, Optional

import structlog

from sales_analytics.config import get_settings
from sales_analytics.config.logging import configure_logging
from sales_analytics.ingestion.csv_loader import DatasetLoader
from sales_analytics.quality.validators import InvalidInputShapeError
from sales_analytics.reporting.builder import ReportBuilder

logger = structlog.get_logger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sales-reports",
        description="Build customer and product analytic reports",
    )
    parser.add_argument("--data-dir", help="Directory with the CSV extracts (default: DATA_RAW_PATH)")
    parser.add_argument("--output-dir", help="Directory for built reports (default: DATA_CURATED_PATH)")
    parser.add_argument(
        "--evaluation-date",
        type=_parse_date,
        help="Date recency and age are measured against (default: REPORT_EVALUATION_DATE, else today)",
    )
    parser.add_argument("--format", choices=["parquet", "csv"], help="Report file format")
    parser.add_argument("--workers", type=int, help="Aggregation worker threads")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the report build; returns the process exit code"""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    configure_logging(args.log_level)

    evaluation_date = args.evaluation_date or settings.reports.evaluation_date or date.today()

    try:
        snapshot = DatasetLoader(args.data_dir).load_snapshot()
        builder = ReportBuilder(
            output_path=args.output_dir,
            output_format=args.format,
            max_workers=args.workers,
        )
        results = builder.run(snapshot, evaluation_date)
    except FileNotFoundError as e:
        logger.error("Extract missing", error=str(e))
        return 1
    except InvalidInputShapeError as e:
        logger.error("Report build aborted", dataset=e.dataset, error=str(e))
        return 2

    for name, result in results.items():
        print(
            f"{name}: {result.output_rows} rows from {result.input_rows} sales lines "
            f"in {result.duration_seconds:.2f}s -> {result.output_path}"
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
