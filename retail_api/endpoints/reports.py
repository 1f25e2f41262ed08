"""Sales report endpoints module.

One GET endpoint per report. Parameters arrive as raw strings and are
validated by the report service, which answers 400 on malformed input.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from retail_api.database.database import get_db
from retail_api.schemas.report import (
    AverageAgeResponse,
    BestMonthResponse,
    CategoryCustomersResponse,
    CategoryTotalsResponse,
    GenderCategoryResponse,
    SaleReportResponse,
    SalesSummary,
    ShiftCountsResponse,
    TopCustomersResponse,
)
from retail_api.services.report_service import (
    average_age_for_category,
    best_month_per_year,
    clothing_high_quantity,
    high_value_transactions,
    orders_by_shift,
    sales_on_date,
    sales_summary,
    top_customers_by_sales,
    totals_by_category,
    transaction_counts_by_gender_category,
    unique_customers_per_category,
)
from retail_api.settings import settings

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary", response_model=SalesSummary)
async def get_summary(db: AsyncSession = Depends(get_db)) -> SalesSummary:
    """Total sales, unique customers and the list of categories."""
    return await sales_summary(db)


@router.get("/sales-on-date", response_model=SaleReportResponse)
async def get_sales_on_date(
    sale_date: str = Query(..., description="Sale date (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
) -> SaleReportResponse:
    """All sales made on the given date."""
    return await sales_on_date(db, sale_date)


@router.get("/clothing-high-quantity", response_model=SaleReportResponse)
async def get_clothing_high_quantity(
    year_month: str = Query(..., description="Month (YYYY-MM)"),
    db: AsyncSession = Depends(get_db),
) -> SaleReportResponse:
    """Clothing sales in the month with quantity above 4."""
    return await clothing_high_quantity(db, year_month)


@router.get("/totals-by-category", response_model=CategoryTotalsResponse)
async def get_totals_by_category(db: AsyncSession = Depends(get_db)) -> CategoryTotalsResponse:
    """Net sales and order count per category."""
    return await totals_by_category(db)


@router.get("/average-age", response_model=AverageAgeResponse)
async def get_average_age(
    category: str = Query(..., description="Category, e.g. Beauty"),
    db: AsyncSession = Depends(get_db),
) -> AverageAgeResponse:
    """Average customer age for a category (null when it has no sales)."""
    return await average_age_for_category(db, category)


@router.get("/high-value", response_model=SaleReportResponse)
async def get_high_value(
    threshold: str = Query(
        default=str(settings.HIGH_VALUE_THRESHOLD),
        description="Exclusive lower bound on total_sale",
    ),
    db: AsyncSession = Depends(get_db),
) -> SaleReportResponse:
    """Sales with total_sale above the threshold."""
    return await high_value_transactions(db, threshold)


@router.get("/gender-category-counts", response_model=GenderCategoryResponse)
async def get_gender_category_counts(db: AsyncSession = Depends(get_db)) -> GenderCategoryResponse:
    """Number of transactions per gender and category."""
    return await transaction_counts_by_gender_category(db)


@router.get("/best-month-per-year", response_model=BestMonthResponse)
async def get_best_month_per_year(db: AsyncSession = Depends(get_db)) -> BestMonthResponse:
    """Month with the highest average sale in each year."""
    return await best_month_per_year(db)


@router.get("/top-customers", response_model=TopCustomersResponse)
async def get_top_customers(
    n: int = Query(
        default=settings.TOP_CUSTOMERS_LIMIT,
        description="Number of customers to return",
    ),
    db: AsyncSession = Depends(get_db),
) -> TopCustomersResponse:
    """Customers with the highest total sales."""
    return await top_customers_by_sales(db, n)


@router.get("/unique-customers-per-category", response_model=CategoryCustomersResponse)
async def get_unique_customers_per_category(
    db: AsyncSession = Depends(get_db),
) -> CategoryCustomersResponse:
    """Distinct customers per category."""
    return await unique_customers_per_category(db)


@router.get("/orders-by-shift", response_model=ShiftCountsResponse)
async def get_orders_by_shift(db: AsyncSession = Depends(get_db)) -> ShiftCountsResponse:
    """Order count per Morning / Afternoon / Evening shift."""
    return await orders_by_shift(db)
