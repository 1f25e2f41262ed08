"""Sales report service module.

Fixed battery of read-only reports over the cleaned ``retail_sales`` set.
Every query is filtered with :func:`valid_sale_clause`, so rows that were
never cleaned still stay out of the results.

Ranking reports (best month, top customers) aggregate in SQL and rank in
Python with an explicit tie-break:
- best month per year: highest average total_sale, earliest month on ties
- top customers: highest total, lowest customer_id on ties, cut at n
"""
import re
from collections import Counter
from datetime import date, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from itertools import groupby
from typing import Union

from sqlalchemy import select, func, extract
from sqlalchemy.ext.asyncio import AsyncSession

from retail_api.exceptions.api_exception import InvalidArgumentError
from retail_api.models.sale import RetailSale
from retail_api.schemas.report import (
    AverageAgeResponse,
    BestMonth,
    BestMonthResponse,
    CategoryCustomers,
    CategoryCustomersResponse,
    CategoryTotal,
    CategoryTotalsResponse,
    CustomerTotal,
    GenderCategoryCount,
    GenderCategoryResponse,
    SaleReportResponse,
    SalesSummary,
    ShiftCount,
    ShiftCountsResponse,
    TopCustomersResponse,
)
from retail_api.schemas.sale import SaleResponse
from retail_api.services.cache import cached
from retail_api.services.sales_service import normalize_label, valid_sale_clause
from retail_api.settings import settings

CLOTHING_CATEGORY = "Clothing"

# Shift boundaries: [start hour, end hour)
AFTERNOON_START_HOUR = 12
EVENING_START_HOUR = 17
SHIFT_ORDER = ["Morning", "Afternoon", "Evening"]

# ASCII digits only
YEAR_MONTH_RE = re.compile(r"(\d{4})-(\d{1,2})", re.ASCII)


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def _parse_date(value: Union[date, str]) -> date:
    """Parse an ISO date (YYYY-MM-DD) or pass a date through."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidArgumentError(f"Invalid date '{value}', expected YYYY-MM-DD")


def _parse_year_month(value: str) -> tuple[date, date]:
    """Parse 'YYYY-MM' into the half-open range [first day, first day of next month)."""
    match = YEAR_MONTH_RE.fullmatch(str(value).strip())
    if match is None:
        raise InvalidArgumentError(f"Invalid month '{value}', expected YYYY-MM")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidArgumentError(f"Invalid month '{value}', expected YYYY-MM")

    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def _parse_threshold(value: Union[Decimal, float, int, str]) -> Decimal:
    """Parse a finite numeric threshold."""
    try:
        threshold = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidArgumentError(f"Invalid threshold '{value}', expected a number")
    if not threshold.is_finite():
        raise InvalidArgumentError(f"Invalid threshold '{value}', expected a finite number")
    return threshold


def _parse_category(value: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError("Category must not be blank")
    return normalize_label(str(value))


def _round_half_up(value) -> float:
    """Round to 2 decimals the way SQL ROUND does: 25.125 -> 25.13."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def classify_shift(sale_time: time) -> str:
    """Bucket a time of day: Morning < 12h <= Afternoon < 17h <= Evening."""
    if sale_time.hour < AFTERNOON_START_HOUR:
        return "Morning"
    if sale_time.hour < EVENING_START_HOUR:
        return "Afternoon"
    return "Evening"


def _sale_rows_response(rows) -> SaleReportResponse:
    return SaleReportResponse(
        total=len(rows),
        items=[SaleResponse.model_validate(row) for row in rows],
    )


# =============================================================================
# SUMMARY
# =============================================================================

@cached("sales_summary")
async def sales_summary(db: AsyncSession) -> SalesSummary:
    """Count sales and distinct customers and list the distinct categories."""
    counts = await db.execute(
        select(
            func.count().label("total_sales"),
            func.count(func.distinct(RetailSale.customer_id)).label("unique_customers"),
        ).where(valid_sale_clause())
    )
    row = counts.one()

    categories = await db.execute(
        select(RetailSale.category)
        .where(valid_sale_clause())
        .distinct()
        .order_by(RetailSale.category)
    )
    return SalesSummary(
        total_sales=row.total_sales or 0,
        unique_customers=row.unique_customers or 0,
        categories=list(categories.scalars().all()),
    )


# =============================================================================
# ROW-LEVEL REPORTS
# =============================================================================

@cached("sales_on_date")
async def sales_on_date(db: AsyncSession, sale_date: Union[date, str]) -> SaleReportResponse:
    """All sales made on one calendar day."""
    day = _parse_date(sale_date)
    result = await db.execute(
        select(RetailSale)
        .where(valid_sale_clause(), RetailSale.sale_date == day)
        .order_by(RetailSale.transaction_id)
    )
    return _sale_rows_response(result.scalars().all())


@cached("clothing_high_quantity")
async def clothing_high_quantity(
    db: AsyncSession,
    year_month: str,
    min_quantity: int = settings.CLOTHING_MIN_QUANTITY,
) -> SaleReportResponse:
    """
    Clothing sales in a given month with quantity strictly above min_quantity.

    Args:
        db: Database session
        year_month: Month as 'YYYY-MM'
        min_quantity: Exclusive lower bound on quantity (default 4)
    """
    start, end = _parse_year_month(year_month)
    result = await db.execute(
        select(RetailSale)
        .where(
            valid_sale_clause(),
            RetailSale.category == CLOTHING_CATEGORY,
            RetailSale.sale_date >= start,
            RetailSale.sale_date < end,
            RetailSale.quantity > min_quantity,
        )
        .order_by(RetailSale.sale_date, RetailSale.transaction_id)
    )
    return _sale_rows_response(result.scalars().all())


@cached("high_value_transactions")
async def high_value_transactions(
    db: AsyncSession,
    threshold: Union[Decimal, float, int, str],
) -> SaleReportResponse:
    """Sales whose total_sale is strictly greater than threshold."""
    limit = _parse_threshold(threshold)
    result = await db.execute(
        select(RetailSale)
        .where(valid_sale_clause(), RetailSale.total_sale > limit)
        .order_by(RetailSale.transaction_id)
    )
    return _sale_rows_response(result.scalars().all())


# =============================================================================
# AGGREGATE REPORTS
# =============================================================================

@cached("totals_by_category")
async def totals_by_category(db: AsyncSession) -> CategoryTotalsResponse:
    """Net sales and order count per category, highest net sales first."""
    net_sale = func.sum(RetailSale.total_sale)
    result = await db.execute(
        select(
            RetailSale.category,
            net_sale.label("net_sale"),
            func.count().label("total_orders"),
        )
        .where(valid_sale_clause())
        .group_by(RetailSale.category)
        .order_by(net_sale.desc(), RetailSale.category)
    )
    items = [
        CategoryTotal(
            category=row.category,
            net_sale=float(row.net_sale or 0),
            total_orders=row.total_orders,
        )
        for row in result.all()
    ]
    return CategoryTotalsResponse(total=len(items), items=items)


@cached("average_age")
async def average_age_for_category(db: AsyncSession, category: str) -> AverageAgeResponse:
    """
    Average customer age for one category, rounded to 2 decimals.

    avg_age is None when the category has no sales.
    """
    label = _parse_category(category)
    result = await db.execute(
        select(
            func.avg(RetailSale.age).label("avg_age"),
            func.count().label("sample_size"),
        ).where(valid_sale_clause(), RetailSale.category == label)
    )
    row = result.one()
    avg_age = _round_half_up(row.avg_age) if row.sample_size else None
    return AverageAgeResponse(category=label, avg_age=avg_age, sample_size=row.sample_size)


@cached("gender_category_counts")
async def transaction_counts_by_gender_category(db: AsyncSession) -> GenderCategoryResponse:
    """Number of sales per (gender, category) pair."""
    result = await db.execute(
        select(
            RetailSale.gender,
            RetailSale.category,
            func.count().label("total_trans"),
        )
        .where(valid_sale_clause())
        .group_by(RetailSale.gender, RetailSale.category)
        .order_by(RetailSale.gender, RetailSale.category)
    )
    items = [
        GenderCategoryCount(gender=row.gender, category=row.category, total_trans=row.total_trans)
        for row in result.all()
    ]
    return GenderCategoryResponse(total=len(items), items=items)


def _rank_best_months(monthly: list[tuple[int, int, float]]) -> list[BestMonth]:
    """Pick the best month per year from (year, month, avg_sale) rows.

    Sort by year, then avg_sale descending, then month ascending, and keep
    the first row of each year group.
    """
    ordered = sorted(monthly, key=lambda m: (m[0], -m[2], m[1]))
    best = []
    for year, months in groupby(ordered, key=lambda m: m[0]):
        _, month, avg_sale = next(months)
        best.append(BestMonth(year=year, month=month, avg_sale=round(avg_sale, 2)))
    return best


@cached("best_month_per_year")
async def best_month_per_year(db: AsyncSession) -> BestMonthResponse:
    """
    Best-selling month of each year by average total_sale.

    Monthly averages come from one GROUP BY (year, month) query; the ranking
    inside each year is done by :func:`_rank_best_months`.
    """
    year = extract("year", RetailSale.sale_date)
    month = extract("month", RetailSale.sale_date)
    result = await db.execute(
        select(
            year.label("year"),
            month.label("month"),
            func.avg(RetailSale.total_sale).label("avg_sale"),
        )
        .where(valid_sale_clause())
        .group_by(year, month)
    )
    monthly = [(int(row.year), int(row.month), float(row.avg_sale)) for row in result.all()]
    items = _rank_best_months(monthly)
    return BestMonthResponse(total=len(items), items=items)


def _rank_customers(totals: list[tuple[int, float]], n: int) -> list[CustomerTotal]:
    """Top n (customer_id, total) pairs: total desc, customer_id asc on ties."""
    ordered = sorted(totals, key=lambda t: (-t[1], t[0]))
    return [CustomerTotal(customer_id=cid, total_sale=total) for cid, total in ordered[:n]]


@cached("top_customers")
async def top_customers_by_sales(
    db: AsyncSession,
    n: int = settings.TOP_CUSTOMERS_LIMIT,
) -> TopCustomersResponse:
    """The n customers with the highest summed total_sale."""
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise InvalidArgumentError(f"Invalid customer count '{n}', expected an integer >= 1")

    result = await db.execute(
        select(
            RetailSale.customer_id,
            func.sum(RetailSale.total_sale).label("total_sale"),
        )
        .where(valid_sale_clause())
        .group_by(RetailSale.customer_id)
    )
    totals = [(row.customer_id, float(row.total_sale or 0)) for row in result.all()]
    items = _rank_customers(totals, n)
    return TopCustomersResponse(total=len(items), items=items)


@cached("unique_customers_per_category")
async def unique_customers_per_category(db: AsyncSession) -> CategoryCustomersResponse:
    """Number of distinct customers who bought in each category."""
    result = await db.execute(
        select(
            RetailSale.category,
            func.count(func.distinct(RetailSale.customer_id)).label("unique_customers"),
        )
        .where(valid_sale_clause())
        .group_by(RetailSale.category)
        .order_by(RetailSale.category)
    )
    items = [
        CategoryCustomers(category=row.category, unique_customers=row.unique_customers)
        for row in result.all()
    ]
    return CategoryCustomersResponse(total=len(items), items=items)


@cached("orders_by_shift")
async def orders_by_shift(db: AsyncSession) -> ShiftCountsResponse:
    """Order count per shift (Morning, Afternoon, Evening); empty shifts omitted."""
    result = await db.execute(
        select(RetailSale.sale_time).where(valid_sale_clause())
    )
    counts = Counter(classify_shift(sale_time) for sale_time in result.scalars().all())
    items = [
        ShiftCount(shift=shift, total_orders=counts[shift])
        for shift in SHIFT_ORDER
        if counts[shift]
    ]
    return ShiftCountsResponse(total=len(items), items=items)
