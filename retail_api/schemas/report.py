"""Report schemas module.

Response models for the fixed battery of sales reports. Aggregate amounts
are floats; row-level amounts keep the Decimal of :class:`SaleResponse`.
"""
from typing import Optional

from pydantic import BaseModel, Field

from retail_api.schemas.sale import SaleResponse


class SalesSummary(BaseModel):
    """Data exploration figures for the cleaned set."""

    total_sales: int = Field(..., description="Number of sales")
    unique_customers: int = Field(..., description="Number of distinct customers")
    categories: list[str] = Field(default_factory=list, description="Distinct categories, sorted")


class SaleReportResponse(BaseModel):
    """Row-level report (sales on a date, clothing bulk buys, high value)."""

    total: int = Field(..., description="Number of matching sales")
    items: list[SaleResponse] = Field(default_factory=list)


# --- Category totals ---

class CategoryTotal(BaseModel):
    category: str
    net_sale: float = Field(..., description="Sum of total_sale")
    total_orders: int = Field(..., description="Number of sales")


class CategoryTotalsResponse(BaseModel):
    total: int
    items: list[CategoryTotal] = Field(default_factory=list)


# --- Average age ---

class AverageAgeResponse(BaseModel):
    """Average customer age for one category; avg_age is None without data."""

    category: str
    avg_age: Optional[float] = Field(None, description="Average age rounded to 2 decimals")
    sample_size: int = Field(0, description="Number of sales averaged")


# --- Gender x category ---

class GenderCategoryCount(BaseModel):
    gender: str
    category: str
    total_trans: int


class GenderCategoryResponse(BaseModel):
    total: int
    items: list[GenderCategoryCount] = Field(default_factory=list)


# --- Best month ---

class BestMonth(BaseModel):
    year: int
    month: int = Field(..., ge=1, le=12)
    avg_sale: float = Field(..., description="Average total_sale in that month")


class BestMonthResponse(BaseModel):
    total: int
    items: list[BestMonth] = Field(default_factory=list)


# --- Top customers ---

class CustomerTotal(BaseModel):
    customer_id: int
    total_sale: float


class TopCustomersResponse(BaseModel):
    total: int
    items: list[CustomerTotal] = Field(default_factory=list)


# --- Unique customers ---

class CategoryCustomers(BaseModel):
    category: str
    unique_customers: int


class CategoryCustomersResponse(BaseModel):
    total: int
    items: list[CategoryCustomers] = Field(default_factory=list)


# --- Shifts ---

class ShiftCount(BaseModel):
    shift: str = Field(..., description="Morning, Afternoon or Evening")
    total_orders: int


class ShiftCountsResponse(BaseModel):
    total: int
    items: list[ShiftCount] = Field(default_factory=list)
