"""
Sales Analytics Reports

Customer and product analytic reports over a star-schema sales dataset.
"""
from sales_analytics.reporting import build_customer_report, build_product_report

__version__ = "1.0.0"

__all__ = ["build_customer_report", "build_product_report"]
