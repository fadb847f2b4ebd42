"""
Test Suite Configuration
"""
from datetime import date

import pytest
import polars as pl

from sales_analytics.config import Settings
from sales_analytics.data.schemas import CUSTOMER_SCHEMA, PRODUCT_SCHEMA, SALES_SCHEMA
from sales_analytics.ingestion.csv_loader import DatasetSnapshot


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def evaluation_date() -> date:
    """Fixed evaluation date for every report test"""
    return date(2024, 7, 1)


@pytest.fixture
def sample_sales_df() -> pl.DataFrame:
    """
    Sales lines covering the main report paths.

    - customer 1: two orders three months apart, last one three months ago
    - customer 2: one two-line order plus a later order, lifespan over a year
    - customer 3: one old order
    - customer 99: no dimension row
    - customer 4: only a line without order date
    """
    return pl.DataFrame(
        {
            "order_id": ["SO1", "SO2", "SO3", "SO3", "SO4", "SO5", "SO6", "SO7"],
            "product_key": [10, 20, 10, 30, 10, 20, 10, 20],
            "customer_key": [1, 1, 2, 2, 2, 3, 99, 4],
            "order_date": [
                date(2024, 1, 1),
                date(2024, 4, 1),
                date(2023, 1, 15),
                date(2023, 1, 15),
                date(2024, 2, 20),
                date(2022, 12, 10),
                date(2024, 6, 15),
                None,
            ],
            "shipping_date": [
                date(2024, 1, 8),
                date(2024, 4, 8),
                date(2023, 1, 22),
                date(2023, 1, 22),
                date(2024, 2, 27),
                date(2022, 12, 17),
                date(2024, 6, 22),
                None,
            ],
            "due_date": [
                date(2024, 1, 13),
                date(2024, 4, 13),
                date(2023, 1, 27),
                date(2023, 1, 27),
                date(2024, 3, 3),
                date(2022, 12, 22),
                date(2024, 6, 27),
                None,
            ],
            "sales_amount": [100, 200, 3000, 1200, 3000, 500, 50, 999],
            "quantity": [1, 2, 1, 2, 1, 5, 1, 1],
            "unit_price": [100, 100, 3000, 600, 3000, 100, 50, 999],
        },
        schema=SALES_SCHEMA,
    )


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Customer dimension; customer 5 never buys"""
    return pl.DataFrame(
        {
            "customer_key": [1, 2, 3, 4, 5],
            "customer_id": [11000, 11001, 11002, 11003, 11004],
            "customer_number": ["AW00011000", "AW00011001", "AW00011002", "AW00011003", "AW00011004"],
            "first_name": ["John", "Jane", "Bob", "Ann", "Eve"],
            "last_name": ["Doe", "Smith", "Wilson", "Lee", "Park"],
            "country": ["United States", "Germany", "United States", "Germany", "France"],
            "marital_status": ["Married", "Single", "Single", "Married", "Single"],
            "gender": ["Male", "Female", "Male", "Female", "Female"],
            "birthdate": [date(1990, 8, 15), date(2006, 1, 10), None, date(1970, 7, 1), date(1985, 3, 3)],
            "create_date": [date(2020, 1, 1)] * 5,
        },
        schema=CUSTOMER_SCHEMA,
    )


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Product dimension; product 40 never sells"""
    return pl.DataFrame(
        {
            "product_key": [10, 20, 30, 40],
            "product_id": [210, 211, 212, 213],
            "product_number": ["BK-M68B-38", "HL-U509", "LJ-0192-S", "CA-1098"],
            "product_name": ["Mountain-200 Black", "Sport-100 Helmet", "Long-Sleeve Jersey", "Cycling Cap"],
            "category_id": ["BI_MB", "AC_HE", "CL_JE", "CL_CA"],
            "category": ["Bikes", "Accessories", "Clothing", "Clothing"],
            "subcategory": ["Mountain Bikes", "Helmets", "Jerseys", "Caps"],
            "maintenance": ["Yes", "No", "No", "No"],
            "cost": [50, 150, 600, 5],
            "product_line": ["Mountain", "Other Sales", "Other Sales", "Other Sales"],
            "start_date": [date(2020, 1, 1)] * 4,
        },
        schema=PRODUCT_SCHEMA,
    )


@pytest.fixture
def sample_snapshot(sample_sales_df, sample_customers_df, sample_products_df) -> DatasetSnapshot:
    """All three sample frames as one snapshot"""
    return DatasetSnapshot(
        sales=sample_sales_df,
        customers=sample_customers_df,
        products=sample_products_df,
    )


@pytest.fixture
def csv_dir(tmp_path, sample_snapshot):
    """Sample snapshot written as warehouse CSV extracts"""
    data_dir = tmp_path / "raw"
    data_dir.mkdir()

    sample_snapshot.sales.rename(
        {"order_id": "order_number", "unit_price": "price"}
    ).write_csv(data_dir / "gold.fact_sales.csv")
    sample_snapshot.customers.write_csv(data_dir / "gold.dim_customers.csv")
    sample_snapshot.products.write_csv(data_dir / "gold.dim_products.csv")

    return data_dir
