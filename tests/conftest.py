"""Pytest fixtures for async SQLite test database."""
from datetime import date, time
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from retail_api.database.database import Base
from retail_api.models.sale import RetailSale
from retail_api.services.cache import clear_cache


def make_sale(transaction_id: int, **overrides) -> RetailSale:
    """Build a complete, already-normalized sale; overrides replace fields."""
    fields = dict(
        transaction_id=transaction_id,
        sale_date=date(2022, 11, 5),
        sale_time=time(9, 0),
        customer_id=7,
        gender="Male",
        age=30,
        category="Clothing",
        quantity=1,
        price_per_unit=Decimal("10.00"),
        cogs=Decimal("5.00"),
    )
    fields.update(overrides)
    return RetailSale(**fields)


@pytest.fixture
def sale_factory():
    """Expose make_sale to tests."""
    return make_sale


@pytest.fixture(autouse=True)
def _reset_report_cache():
    """Report results are cached per process; start every test empty."""
    clear_cache()
    yield
    clear_cache()


@pytest_asyncio.fixture
async def db_session():
    """Create an in-memory SQLite async session for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def sample_sales(db_session):
    """
    Six clean sales across three categories, two years and all shifts.

    | id | date       | time  | cust | gender | age | category    | total |
    |----|------------|-------|------|--------|-----|-------------|-------|
    | 1  | 2022-11-05 | 09:00 | 7    | Male   | 30  | Clothing    | 100   |
    | 2  | 2022-11-05 | 13:30 | 8    | Female | 20  | Beauty      | 100   |
    | 3  | 2022-11-20 | 17:00 | 7    | Male   | 40  | Clothing    | 900   |
    | 4  | 2022-12-01 | 19:45 | 9    | Female | 30  | Beauty      | 2000  |
    | 5  | 2023-01-10 | 11:59 | 8    | Female | 25  | Electronics | 1500  |
    | 6  | 2023-02-14 | 12:00 | 10   | Male   | 50  | Electronics | 50    |
    """
    sales = [
        make_sale(1, quantity=5, price_per_unit=Decimal("20.00"), cogs=Decimal("10.00")),
        make_sale(
            2, sale_time=time(13, 30), customer_id=8, gender="Female", age=20,
            category="Beauty", quantity=2, price_per_unit=Decimal("50.00"),
        ),
        make_sale(
            3, sale_date=date(2022, 11, 20), sale_time=time(17, 0), age=40,
            quantity=3, price_per_unit=Decimal("300.00"),
        ),
        make_sale(
            4, sale_date=date(2022, 12, 1), sale_time=time(19, 45), customer_id=9,
            gender="Female", category="Beauty", quantity=4, price_per_unit=Decimal("500.00"),
        ),
        make_sale(
            5, sale_date=date(2023, 1, 10), sale_time=time(11, 59), customer_id=8,
            gender="Female", age=25, category="Electronics", quantity=1,
            price_per_unit=Decimal("1500.00"),
        ),
        make_sale(
            6, sale_date=date(2023, 2, 14), sale_time=time(12, 0), customer_id=10,
            age=50, category="Electronics", quantity=2, price_per_unit=Decimal("25.00"),
        ),
    ]
    db_session.add_all(sales)
    await db_session.commit()
    return sales


@pytest_asyncio.fixture
async def dirty_sales(db_session):
    """Raw rows as a manual import might leave them: gaps, bad values, messy text."""
    sales = [
        make_sale(101, gender=" male ", category="clothing "),
        make_sale(102, gender="FEMALE", category="  BEAUTY"),
        make_sale(103, sale_time=None),
        make_sale(104, category=None),
        make_sale(105, age=150),
        make_sale(106, quantity=-1),
        make_sale(107, gender="   "),
        make_sale(108, sale_time=time(13, 0), gender="Female", category="Beauty"),
    ]
    db_session.add_all(sales)
    await db_session.commit()
    return sales
