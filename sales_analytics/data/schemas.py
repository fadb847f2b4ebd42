"""
Star Schema Definitions

Polars schemas for the sales fact table and the customer/product dimensions,
plus conversion of caller-supplied row sets into frames.
"""

from typing import Any, Dict, Iterable, Mapping, Tuple, Union

import polars as pl

DTypeSpec = Union[pl.DataType, Tuple[pl.DataType, ...]]


SALES_SCHEMA: Dict[str, pl.DataType] = {
    "order_id": pl.Utf8,
    "product_key": pl.Int64,
    "customer_key": pl.Int64,
    "order_date": pl.Date,
    "shipping_date": pl.Date,
    "due_date": pl.Date,
    "sales_amount": pl.Int64,
    "quantity": pl.Int64,
    "unit_price": pl.Int64,
}

# order_id is only counted distinct, so integer order numbers are accepted too
SALES_ACCEPTED_TYPES: Dict[str, DTypeSpec] = {
    **SALES_SCHEMA,
    "order_id": (pl.Utf8, pl.Int64),
}

CUSTOMER_SCHEMA: Dict[str, pl.DataType] = {
    "customer_key": pl.Int64,
    "customer_id": pl.Int64,
    "customer_number": pl.Utf8,
    "first_name": pl.Utf8,
    "last_name": pl.Utf8,
    "country": pl.Utf8,
    "marital_status": pl.Utf8,
    "gender": pl.Utf8,
    "birthdate": pl.Date,
    "create_date": pl.Date,
}

PRODUCT_SCHEMA: Dict[str, pl.DataType] = {
    "product_key": pl.Int64,
    "product_id": pl.Int64,
    "product_number": pl.Utf8,
    "product_name": pl.Utf8,
    "category_id": pl.Utf8,
    "category": pl.Utf8,
    "subcategory": pl.Utf8,
    "maintenance": pl.Utf8,
    "cost": pl.Int64,
    "product_line": pl.Utf8,
    "start_date": pl.Date,
}

# Columns the engine actually reads; the rest are carried if present
SALES_REQUIRED = [
    "order_id", "product_key", "customer_key", "order_date",
    "sales_amount", "quantity", "unit_price",
]
CUSTOMER_REQUIRED = [
    "customer_key", "customer_number", "first_name", "last_name",
    "country", "gender", "birthdate",
]
PRODUCT_REQUIRED = [
    "product_key", "product_name", "category", "subcategory", "cost",
]

RowSet = Union[pl.DataFrame, Iterable[Mapping[str, Any]]]


def to_frame(rows: RowSet, schema: Dict[str, DTypeSpec]) -> pl.DataFrame:
    """
    Return rows as a DataFrame.

    DataFrames are passed through untouched so that shape problems surface in
    validation; sequences of mappings are built with the given schema, missing
    keys becoming nulls. Columns accepting several types are inferred.
    """
    if isinstance(rows, pl.DataFrame):
        return rows
    frame_schema = {
        column: None if isinstance(dtype, tuple) else dtype
        for column, dtype in schema.items()
    }
    return pl.from_dicts(list(rows), schema=frame_schema)
