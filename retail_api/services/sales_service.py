"""Sales pipeline service module.

Loads raw transaction records into ``retail_sales``, removes rows that fail
the required-field or domain checks, and normalizes free-text columns.

Validity rules (shared with the report service through
:func:`valid_sale_clause`):
- every required column is non-NULL
- gender and category are not blank
- age within 0-120; quantity, price_per_unit and cogs non-negative
"""
import logging
import string
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, not_, or_, select, update, String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from retail_api.models.sale import RetailSale
from retail_api.schemas.sale import (
    CleanResult,
    IncompleteSalesResponse,
    LoadResult,
    RejectedRecord,
    SaleCreate,
    SaleListResponse,
    SaleResponse,
)
from retail_api.services.cache import clear_cache

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    RetailSale.sale_date,
    RetailSale.sale_time,
    RetailSale.customer_id,
    RetailSale.gender,
    RetailSale.age,
    RetailSale.category,
    RetailSale.quantity,
    RetailSale.price_per_unit,
    RetailSale.cogs,
)

MIN_AGE = 0
MAX_AGE = 120
ID_LOOKUP_CHUNK = 1000


# =============================================================================
# VALIDITY PREDICATE
# =============================================================================

def invalid_sale_clause() -> ColumnElement[bool]:
    """SQL predicate matching rows outside the cleaned set."""
    return or_(
        *(column.is_(None) for column in REQUIRED_COLUMNS),
        func.trim(RetailSale.gender) == "",
        func.trim(RetailSale.category) == "",
        RetailSale.age < MIN_AGE,
        RetailSale.age > MAX_AGE,
        RetailSale.quantity < 0,
        RetailSale.price_per_unit < 0,
        RetailSale.cogs < 0,
    )


def valid_sale_clause() -> ColumnElement[bool]:
    """SQL predicate matching rows of the cleaned set."""
    return not_(invalid_sale_clause())


_TO_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)
_TO_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def normalize_label(value: str) -> str:
    """Trim and capitalize a text label: ' clothing ' -> 'Clothing'.

    Only spaces are trimmed and only ASCII letters change case, as SQL
    ``trim``/``upper``/``lower`` do on ASCII text. Loaded labels are ASCII,
    so both forms agree on every backend.
    """
    trimmed = value.strip(" ")
    return trimmed[:1].translate(_TO_UPPER) + trimmed[1:].translate(_TO_LOWER)


def _normalized_expression(column) -> ColumnElement[str]:
    """SQL equivalent of :func:`normalize_label` for a text column."""
    trimmed = func.trim(column, type_=String)
    return (
        func.upper(func.substr(trimmed, 1, 1), type_=String)
        + func.lower(func.substr(trimmed, 2), type_=String)
    )


# =============================================================================
# LOAD
# =============================================================================

def _format_errors(exc: ValidationError) -> list[str]:
    """Flatten pydantic errors into 'field: message' strings."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "record"
        messages.append(f"{location}: {error['msg']}")
    return messages


def validate_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[list[tuple[int, SaleCreate]], list[RejectedRecord]]:
    """Split raw records into (batch position, valid sale) pairs and rejections.

    Duplicate transaction ids inside the batch keep the first occurrence.
    The input records are not modified.
    """
    accepted: list[tuple[int, SaleCreate]] = []
    rejected: list[RejectedRecord] = []
    seen_ids: set[int] = set()

    for index, record in enumerate(records):
        try:
            sale = SaleCreate.model_validate(dict(record))
        except ValidationError as e:
            rejected.append(RejectedRecord(
                index=index,
                transaction_id=record.get("transaction_id"),
                errors=_format_errors(e),
            ))
            continue

        if sale.transaction_id in seen_ids:
            rejected.append(RejectedRecord(
                index=index,
                transaction_id=sale.transaction_id,
                errors=["transaction_id: duplicate within batch"],
            ))
            continue

        seen_ids.add(sale.transaction_id)
        accepted.append((index, sale))

    return accepted, rejected


async def _existing_ids(db: AsyncSession, ids: list[int]) -> set[int]:
    # One bind parameter per id; chunks stay below driver limits
    existing: set[int] = set()
    for start in range(0, len(ids), ID_LOOKUP_CHUNK):
        chunk = ids[start:start + ID_LOOKUP_CHUNK]
        result = await db.execute(
            select(RetailSale.transaction_id).where(RetailSale.transaction_id.in_(chunk))
        )
        existing.update(result.scalars().all())
    return existing


async def load_sales(
    db: AsyncSession,
    records: Iterable[Mapping[str, Any]],
) -> LoadResult:
    """
    Validate and store raw sale records.

    Records failing validation (missing field, unparsable value, domain
    violation, inconsistent total_sale, duplicate transaction_id) are
    excluded and reported back; they never fail the batch.

    Args:
        db: Database session
        records: Raw records, e.g. decoded JSON objects or CSV rows

    Returns:
        LoadResult with the created count and the rejected records
    """
    accepted, rejected = validate_records(records)

    existing = await _existing_ids(db, [sale.transaction_id for _, sale in accepted])
    if existing:
        rejected.extend(
            RejectedRecord(
                index=index,
                transaction_id=sale.transaction_id,
                errors=["transaction_id: already stored"],
            )
            for index, sale in accepted
            if sale.transaction_id in existing
        )
        rejected.sort(key=lambda r: r.index)
        accepted = [(i, sale) for i, sale in accepted if sale.transaction_id not in existing]

    for rejection in rejected:
        logger.warning(
            "Rejected record %d (transaction_id=%s): %s",
            rejection.index, rejection.transaction_id, "; ".join(rejection.errors),
        )

    db.add_all([RetailSale(**sale.model_dump()) for _, sale in accepted])
    await db.commit()
    clear_cache()

    logger.info("Loaded %d sale(s), rejected %d", len(accepted), len(rejected))
    return LoadResult(
        created=len(accepted),
        rejected=rejected,
        message=f"Successfully created {len(accepted)} sale(s), rejected {len(rejected)}",
    )


# =============================================================================
# CLEAN
# =============================================================================

async def _count_sales(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(RetailSale))
    return result.scalar() or 0


async def clean_sales(db: AsyncSession) -> CleanResult:
    """
    Remove invalid rows and normalize gender/category text in the store.

    Steps:
    1. DELETE every row matching :func:`invalid_sale_clause`
    2. UPDATE gender and category to their trimmed, capitalized form,
       touching only rows whose value would change

    Running it again on a cleaned table deletes and updates nothing.
    """
    deleted = await db.execute(
        delete(RetailSale)
        .where(invalid_sale_clause())
        .execution_options(synchronize_session=False)
    )

    label_columns = (RetailSale.gender, RetailSale.category)
    changed = await db.execute(
        select(func.count())
        .select_from(RetailSale)
        .where(or_(*(column != _normalized_expression(column) for column in label_columns)))
    )
    normalized = changed.scalar() or 0

    for column in label_columns:
        expression = _normalized_expression(column)
        await db.execute(
            update(RetailSale)
            .where(column != expression)
            .values({column.key: expression})
            .execution_options(synchronize_session=False)
        )

    await db.commit()
    db.expire_all()
    clear_cache()

    remaining = await _count_sales(db)
    logger.info(
        "Cleaning pass: deleted %d invalid row(s), normalized %d, %d remaining",
        deleted.rowcount, normalized, remaining,
    )
    return CleanResult(
        deleted=deleted.rowcount,
        normalized=normalized,
        remaining=remaining,
        message=f"Deleted {deleted.rowcount} invalid sale(s), normalized {normalized}",
    )


async def find_incomplete_sales(db: AsyncSession) -> IncompleteSalesResponse:
    """List the rows the cleaning pass would delete, without deleting them."""
    result = await db.execute(
        select(RetailSale)
        .where(invalid_sale_clause())
        .order_by(RetailSale.transaction_id)
    )
    rows = result.scalars().all()
    return IncompleteSalesResponse(
        total=len(rows),
        items=[SaleResponse.model_validate(row) for row in rows],
    )


# =============================================================================
# LISTING
# =============================================================================

async def list_sales(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 50,
    category: Optional[str] = None,
) -> SaleListResponse:
    """List stored sales with pagination and an optional category filter."""
    query = select(RetailSale)
    if category:
        query = query.where(RetailSale.category == normalize_label(category))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    pages = (total + page_size - 1) // page_size if total > 0 else 1
    offset = (page - 1) * page_size

    query = (
        query.order_by(RetailSale.sale_date.desc(), RetailSale.transaction_id)
        .offset(offset)
        .limit(page_size)
    )
    items = (await db.execute(query)).scalars().all()

    return SaleListResponse(
        items=[SaleResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=pages,
    )


async def get_sale(db: AsyncSession, transaction_id: int) -> Optional[RetailSale]:
    """Fetch one sale by primary key, or None."""
    result = await db.execute(
        select(RetailSale).where(RetailSale.transaction_id == transaction_id)
    )
    return result.scalar_one_or_none()
