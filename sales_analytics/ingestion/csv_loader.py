"""
Dataset Loader

Reads the star-schema CSV extracts (sales facts, customer and product
dimensions) into polars frames with explicit schemas.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import polars as pl
import structlog

from sales_analytics.config import get_settings
from sales_analytics.data.schemas import CUSTOMER_SCHEMA, PRODUCT_SCHEMA, SALES_SCHEMA

logger = structlog.get_logger(__name__)

NULL_VALUES: List[str] = ["", "NULL", "null", "None", "NA", "N/A"]

# Warehouse extract headers that differ from the engine's column names
COLUMN_ALIASES: Dict[str, str] = {
    "order_number": "order_id",
    "price": "unit_price",
}


@dataclass
class DatasetSnapshot:
    """Immutable input snapshot for one report run"""
    sales: pl.DataFrame
    customers: pl.DataFrame
    products: pl.DataFrame

    @property
    def row_counts(self) -> Dict[str, int]:
        return {
            "sales": self.sales.height,
            "customers": self.customers.height,
            "products": self.products.height,
        }


class DatasetLoader:
    """
    Load the sales, customer and product extracts from a directory.

    Example:
        loader = DatasetLoader("datasets/csv-files")
        snapshot = loader.load_snapshot()
    """

    def __init__(
        self,
        data_dir: Optional[Union[str, Path]] = None,
        sales_file: Optional[str] = None,
        customers_file: Optional[str] = None,
        products_file: Optional[str] = None,
    ):
        settings = get_settings()
        self.data_dir = Path(data_dir or settings.data_lake.raw_path)
        self.sales_file = sales_file or settings.data_lake.sales_file
        self.customers_file = customers_file or settings.data_lake.customers_file
        self.products_file = products_file or settings.data_lake.products_file

    def _read_csv(self, file_name: str, schema: Dict[str, pl.DataType]) -> pl.DataFrame:
        """Read one extract, renaming warehouse column names and casting to the schema"""
        path = self.data_dir / file_name
        if not path.exists():
            raise FileNotFoundError(f"Extract not found: {path}")

        df = pl.read_csv(
            path,
            null_values=NULL_VALUES,
            try_parse_dates=True,
            infer_schema_length=10000,
        )

        renames = {
            source: target
            for source, target in COLUMN_ALIASES.items()
            if source in df.columns and target in schema and target not in df.columns
        }
        if renames:
            df = df.rename(renames)

        df = df.with_columns([
            pl.col(column).cast(dtype)
            for column, dtype in schema.items()
            if column in df.columns
        ])

        logger.info("Loaded extract", file=str(path), rows=df.height)
        return df

    def load_sales(self) -> pl.DataFrame:
        """Load the sales fact extract"""
        return self._read_csv(self.sales_file, SALES_SCHEMA)

    def load_customers(self) -> pl.DataFrame:
        """Load the customer dimension extract"""
        return self._read_csv(self.customers_file, CUSTOMER_SCHEMA)

    def load_products(self) -> pl.DataFrame:
        """Load the product dimension extract"""
        return self._read_csv(self.products_file, PRODUCT_SCHEMA)

    def load_snapshot(self) -> DatasetSnapshot:
        """Load all three extracts"""
        snapshot = DatasetSnapshot(
            sales=self.load_sales(),
            customers=self.load_customers(),
            products=self.load_products(),
        )
        logger.info("Snapshot loaded", data_dir=str(self.data_dir), **snapshot.row_counts)
        return snapshot
