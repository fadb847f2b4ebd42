"""
Star Schema Data Definitions
"""
from .schemas import (
    SALES_SCHEMA,
    CUSTOMER_SCHEMA,
    PRODUCT_SCHEMA,
    to_frame,
)

__all__ = [
    "SALES_SCHEMA",
    "CUSTOMER_SCHEMA",
    "PRODUCT_SCHEMA",
    "to_frame",
]
