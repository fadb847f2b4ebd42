"""
Report API Endpoints

REST API over the customer and product reports, their summaries and the
sales trends. Reports are rebuilt from the loaded snapshot for the requested
evaluation date.

Handlers are plain functions so that FastAPI runs the CPU-bound builds in its
thread pool instead of on the event loop.
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
import polars as pl
import structlog

from sales_analytics.config import get_settings
from sales_analytics.ingestion.csv_loader import DatasetSnapshot
from sales_analytics.quality.validators import InvalidInputShapeError
from sales_analytics.reporting import (
    build_customer_report,
    build_product_report,
    category_contribution,
    TrendGranularity,
    product_yoy,
    sales_trend,
    seasonality,
    segment_distribution,
    subcategory_contribution,
)
from sales_analytics.serving.api.dependencies import get_evaluation_date, get_snapshot
from sales_analytics.transformation.segmentation import CUSTOMER_RULE_SETS, PRODUCT_RULE_SETS

router = APIRouter()
logger = structlog.get_logger(__name__)

CUSTOMER_SEGMENT_COLUMNS = [rs.name for rs in CUSTOMER_RULE_SETS]
PRODUCT_SEGMENT_COLUMNS = [rs.name for rs in PRODUCT_RULE_SETS]


class CustomerReportRow(BaseModel):
    """Customer report row"""
    customer_key: Optional[int]
    customer_number: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    full_name: Optional[str]
    age: Optional[int]
    age_group: str
    gender: Optional[str]
    country: Optional[str]
    birthdate: Optional[date]
    customer_segment: str
    engagement_status: str
    value_tier: str
    purchase_frequency_segment: str
    first_order_date: Optional[date]
    last_order_date: Optional[date]
    recency_months: Optional[int]
    recency_days: Optional[int]
    lifespan_months: Optional[int]
    total_orders: int
    total_products: int
    total_quantity: Optional[int]
    customer_lifetime_value: Optional[int]
    avg_transaction_value: Optional[float]
    avg_order_value: Optional[float]
    avg_monthly_spend: Optional[float]
    avg_orders_per_month: Optional[float]
    avg_items_per_order: Optional[float]
    product_diversity_score: Optional[float]
    highest_price_paid: Optional[int]
    lowest_price_paid: Optional[int]
    avg_price_paid: Optional[float]
    customer_health_score: str
    revenue_rank: Optional[int]
    order_frequency_rank: Optional[int]
    country_revenue_rank: Optional[int]
    revenue_decile: int
    revenue_quartile: int


class ProductReportRow(BaseModel):
    """Product report row"""
    product_key: Optional[int]
    product_name: Optional[str]
    category: Optional[str]
    subcategory: Optional[str]
    product_cost: Optional[int]
    cost_range: str
    first_sale_date: Optional[date]
    last_sale_date: Optional[date]
    recency_months: Optional[int]
    recency_days: Optional[int]
    lifespan_months: Optional[int]
    performance_segment: str
    recency_status: str
    total_orders: int
    total_customers: int
    total_quantity: Optional[int]
    total_sales: Optional[int]
    sales_percentage: float
    category_sales_percentage: float
    avg_transaction_value: Optional[float]
    avg_order_revenue: Optional[float]
    avg_monthly_revenue: Optional[float]
    avg_orders_per_customer: Optional[float]
    avg_selling_price: Optional[float]
    min_selling_price: Optional[int]
    max_selling_price: Optional[int]
    avg_profit_margin: Optional[float]
    profit_margin_pct: Optional[float]
    product_health_score: str
    overall_revenue_rank: Optional[int]
    category_revenue_rank: Optional[int]
    order_frequency_rank: Optional[int]
    revenue_decile: int
    revenue_quartile: int


class CustomerReportPage(BaseModel):
    """Paginated customer report"""
    evaluation_date: date
    items: List[CustomerReportRow]
    total: int
    page: int
    page_size: int


class ProductReportPage(BaseModel):
    """Paginated product report"""
    evaluation_date: date
    items: List[ProductReportRow]
    total: int
    page: int
    page_size: int


def _run(report: str, builder: Callable[..., pl.DataFrame], *args: Any) -> pl.DataFrame:
    try:
        return builder(*args)
    except InvalidInputShapeError as e:
        logger.error("Report build failed", report=report, dataset=e.dataset, error=str(e))
        raise HTTPException(
            status_code=500,
            detail={"message": str(e), "dataset": e.dataset, "checks": [c.name for c in e.checks]},
        )


def _customer_report(snapshot: DatasetSnapshot, evaluation_date: date) -> pl.DataFrame:
    return _run("customers", build_customer_report, snapshot.sales, snapshot.customers, evaluation_date)


def _product_report(snapshot: DatasetSnapshot, evaluation_date: date) -> pl.DataFrame:
    return _run("products", build_product_report, snapshot.sales, snapshot.products, evaluation_date)


def _apply_filters(df: pl.DataFrame, filters: Dict[str, Any]) -> pl.DataFrame:
    for column, value in filters.items():
        if value is not None:
            df = df.filter(pl.col(column) == value)
    return df


@router.get("/customers", response_model=CustomerReportPage)
def list_customer_report(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    country: Optional[str] = None,
    customer_segment: Optional[str] = None,
    engagement_status: Optional[str] = None,
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> CustomerReportPage:
    """Customer report rows, highest lifetime value first."""
    logger.info(
        "list_customer_report called",
        page=page,
        page_size=page_size,
        country=country,
        customer_segment=customer_segment,
        engagement_status=engagement_status,
    )

    report = _customer_report(snapshot, evaluation_date)
    report = _apply_filters(report, {
        "country": country,
        "customer_segment": customer_segment,
        "engagement_status": engagement_status,
    })

    offset = (page - 1) * page_size
    return CustomerReportPage(
        evaluation_date=evaluation_date,
        items=report.slice(offset, page_size).to_dicts(),
        total=report.height,
        page=page,
        page_size=page_size,
    )


@router.get("/customers/segments/{column}")
def get_customer_segments(
    column: str,
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Distribution of customers and lifetime value across one segment family."""
    if column not in CUSTOMER_SEGMENT_COLUMNS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown segment column '{column}'. Expected one of {CUSTOMER_SEGMENT_COLUMNS}",
        )

    report = _customer_report(snapshot, evaluation_date)
    return segment_distribution(report, column, "customer_lifetime_value").to_dicts()


@router.get("/customers/{customer_key}", response_model=CustomerReportRow)
def get_customer_report_row(
    customer_key: int,
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> CustomerReportRow:
    """Report row for one customer."""
    report = _customer_report(snapshot, evaluation_date)
    rows = report.filter(pl.col("customer_key") == customer_key).to_dicts()

    if not rows:
        raise HTTPException(status_code=404, detail="Customer not found")

    return CustomerReportRow(**rows[0])


@router.get("/products", response_model=ProductReportPage)
def list_product_report(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    category: Optional[str] = None,
    performance_segment: Optional[str] = None,
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> ProductReportPage:
    """Product report rows, highest sales first."""
    logger.info(
        "list_product_report called",
        page=page,
        page_size=page_size,
        category=category,
        performance_segment=performance_segment,
    )

    report = _product_report(snapshot, evaluation_date)
    report = _apply_filters(report, {
        "category": category,
        "performance_segment": performance_segment,
    })

    offset = (page - 1) * page_size
    return ProductReportPage(
        evaluation_date=evaluation_date,
        items=report.slice(offset, page_size).to_dicts(),
        total=report.height,
        page=page,
        page_size=page_size,
    )


@router.get("/products/categories")
def get_category_contribution(
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Category share of total sales."""
    report = _product_report(snapshot, evaluation_date)
    return category_contribution(report).to_dicts()


@router.get("/products/subcategories")
def get_subcategory_contribution(
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Subcategory share of total sales and of its category."""
    report = _product_report(snapshot, evaluation_date)
    return subcategory_contribution(report).to_dicts()


@router.get("/products/segments/{column}")
def get_product_segments(
    column: str,
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Distribution of products and sales across one segment family."""
    if column not in PRODUCT_SEGMENT_COLUMNS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown segment column '{column}'. Expected one of {PRODUCT_SEGMENT_COLUMNS}",
        )

    report = _product_report(snapshot, evaluation_date)
    return segment_distribution(report, column, "total_sales").to_dicts()


@router.get("/products/{product_key}", response_model=ProductReportRow)
def get_product_report_row(
    product_key: int,
    evaluation_date: date = Depends(get_evaluation_date),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> ProductReportRow:
    """Report row for one product."""
    report = _product_report(snapshot, evaluation_date)
    rows = report.filter(pl.col("product_key") == product_key).to_dicts()

    if not rows:
        raise HTTPException(status_code=404, detail="Product not found")

    return ProductReportRow(**rows[0])


@router.get("/trends/sales")
def get_sales_trend(
    granularity: TrendGranularity = Query(TrendGranularity.MONTH),
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Sales per month or year with growth, running totals and rolling averages."""
    logger.info("get_sales_trend called", granularity=granularity.value)

    window = get_settings().reports.trend_window
    return _run("sales_trend", sales_trend, snapshot.sales, granularity, window).to_dicts()


@router.get("/trends/seasonality")
def get_seasonality(
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Month-of-year sales across all years."""
    return _run("seasonality", seasonality, snapshot.sales).to_dicts()


@router.get("/trends/products/yoy")
def get_product_yoy(
    product_key: Optional[int] = None,
    snapshot: DatasetSnapshot = Depends(get_snapshot),
) -> List[Dict[str, Any]]:
    """Yearly sales per product against the previous year and the product average."""
    yearly = _run("product_yoy", product_yoy, snapshot.sales, snapshot.products)
    if product_key is not None:
        yearly = yearly.filter(pl.col("product_key") == product_key)
    return yearly.to_dicts()
