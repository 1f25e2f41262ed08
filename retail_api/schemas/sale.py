"""Retail sale schemas module for load, clean and listing operations."""
from datetime import date, time
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Integer columns are 32-bit in the store
MAX_INT32 = 2**31 - 1
MAX_BATCH_SIZE = 10_000


class SaleBase(BaseModel):
    """Fields every complete sale record carries."""

    transaction_id: int = Field(..., ge=0, le=MAX_INT32, description="Unique transaction identifier")
    sale_date: date = Field(..., description="Calendar date of the sale")
    sale_time: time = Field(..., description="Time of day of the sale")
    customer_id: int = Field(..., ge=0, le=MAX_INT32, description="Customer identifier")
    gender: str = Field(..., max_length=15, description="Customer gender")
    age: int = Field(..., ge=0, le=120, description="Customer age")
    category: str = Field(..., max_length=15, description="Product category")
    quantity: int = Field(..., ge=0, le=MAX_INT32, description="Units sold")
    price_per_unit: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Price per unit")
    cogs: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Cost of goods sold")


class SaleCreate(SaleBase):
    """Schema a raw record must satisfy to be loaded.

    ``total_sale`` may be supplied by the source; it is checked against
    quantity * price_per_unit and then dropped, never stored.
    """

    total_sale: Optional[Decimal] = Field(None, exclude=True, description="Optional source total, verified only")

    @field_validator("gender", "category")
    @classmethod
    def _ascii_label(cls, value: str) -> str:
        # Normalization only changes ASCII letters, the same in Python and SQL
        if not value.isascii():
            raise ValueError("must contain ASCII characters only")
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _total_matches_inputs(self) -> "SaleCreate":
        if self.total_sale is not None and self.total_sale != self.quantity * self.price_per_unit:
            raise ValueError(
                f"total_sale {self.total_sale} != quantity * price_per_unit "
                f"({self.quantity} * {self.price_per_unit})"
            )
        return self


class SaleResponse(BaseModel):
    """Schema for a stored sale row (may be incomplete before cleaning)."""

    transaction_id: int
    sale_date: Optional[date] = None
    sale_time: Optional[time] = None
    customer_id: Optional[int] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    category: Optional[str] = None
    quantity: Optional[int] = None
    price_per_unit: Optional[Decimal] = None
    cogs: Optional[Decimal] = None
    total_sale: Optional[Decimal] = None

    class Config:
        from_attributes = True


class SaleBatchCreate(BaseModel):
    """Raw records to load; validated one by one, never as a whole."""

    records: list[dict[str, Any]] = Field(
        ..., max_length=MAX_BATCH_SIZE, description="Raw sale records"
    )


class RejectedRecord(BaseModel):
    """A record excluded from the load and why."""

    index: int = Field(..., description="Position of the record in the submitted batch")
    transaction_id: Optional[Any] = Field(None, description="transaction_id as submitted, if any")
    errors: list[str] = Field(default_factory=list, description="Validation messages")


class LoadResult(BaseModel):
    """Outcome of a batch load."""

    created: int = Field(..., description="Number of sales stored")
    rejected: list[RejectedRecord] = Field(default_factory=list, description="Records excluded")
    message: str = Field(..., description="Operation result message")


class CleanResult(BaseModel):
    """Outcome of the cleaning pass."""

    deleted: int = Field(..., description="Invalid rows removed")
    normalized: int = Field(..., description="Rows whose gender or category text changed")
    remaining: int = Field(..., description="Rows left in the cleaned set")
    message: str = Field(..., description="Operation result message")


class SaleListResponse(BaseModel):
    """Schema for paginated sale list response."""

    items: list[SaleResponse] = Field(default_factory=list, description="List of sales")
    total: int = Field(..., description="Total number of sales")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Number of items per page")
    pages: int = Field(..., description="Total number of pages")


class IncompleteSalesResponse(BaseModel):
    """Rows the cleaning pass would delete."""

    total: int
    items: list[SaleResponse] = Field(default_factory=list)
