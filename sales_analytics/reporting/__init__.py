"""
Reporting Module
"""
from .customers import build_customer_report, decorate_customers
from .products import build_product_report, decorate_products
from .builder import ReportBuilder, ReportResult, ReportType
from .summaries import category_contribution, segment_distribution, subcategory_contribution
from .trends import TrendGranularity, product_yoy, sales_trend, seasonality

__all__ = [
    "build_customer_report",
    "decorate_customers",
    "build_product_report",
    "decorate_products",
    "ReportBuilder",
    "ReportResult",
    "ReportType",
    "category_contribution",
    "segment_distribution",
    "subcategory_contribution",
    "TrendGranularity",
    "product_yoy",
    "sales_trend",
    "seasonality",
]
