"""Sale load, cleaning and lookup endpoints module."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from retail_api.database.database import get_db
from retail_api.exceptions.api_exception import NotFoundError
from retail_api.schemas.sale import (
    CleanResult,
    IncompleteSalesResponse,
    LoadResult,
    SaleBatchCreate,
    SaleListResponse,
    SaleResponse,
)
from retail_api.services.sales_service import (
    clean_sales,
    find_incomplete_sales,
    get_sale,
    list_sales,
    load_sales,
)

router = APIRouter(prefix="/sales", tags=["sales"])


@router.post("/batch", response_model=LoadResult, status_code=status.HTTP_201_CREATED)
async def create_sales_batch(
    batch: SaleBatchCreate,
    db: AsyncSession = Depends(get_db),
) -> LoadResult:
    """
    Bulk-load raw sale records.

    Each record is validated on its own; invalid ones are skipped and listed
    under **rejected** instead of failing the whole batch.
    """
    return await load_sales(db, batch.records)


@router.post("/clean", response_model=CleanResult)
async def run_cleaning(db: AsyncSession = Depends(get_db)) -> CleanResult:
    """
    Delete incomplete or out-of-domain rows and normalize gender/category text.

    Safe to call repeatedly: a second call changes nothing.
    """
    return await clean_sales(db)


@router.get("/incomplete", response_model=IncompleteSalesResponse)
async def get_incomplete_sales(db: AsyncSession = Depends(get_db)) -> IncompleteSalesResponse:
    """Rows the cleaning pass would delete."""
    return await find_incomplete_sales(db)


@router.get("", response_model=SaleListResponse)
async def get_sales(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=1000, description="Items per page"),
    category: Optional[str] = Query(None, description="Filter by category"),
    db: AsyncSession = Depends(get_db),
) -> SaleListResponse:
    """List stored sales with pagination and optional category filter."""
    return await list_sales(db, page=page, page_size=page_size, category=category)


@router.get("/{transaction_id}", response_model=SaleResponse)
async def get_sale_by_id(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
) -> SaleResponse:
    """Get a single sale by transaction id."""
    sale = await get_sale(db, transaction_id)
    if sale is None:
        raise NotFoundError(f"Sale with transaction_id {transaction_id} not found")
    return SaleResponse.model_validate(sale)
