"""Tests for the sales pipeline service (load and clean)."""
import copy
from datetime import date, time
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from retail_api.models.sale import RetailSale
from retail_api.schemas.sale import MAX_BATCH_SIZE, MAX_INT32, SaleBatchCreate, SaleCreate
from retail_api.services.cache import get_cache_stats, set_cached
from retail_api.services.sales_service import (
    ID_LOOKUP_CHUNK,
    _existing_ids,
    clean_sales,
    find_incomplete_sales,
    get_sale,
    list_sales,
    load_sales,
    normalize_label,
    validate_records,
)


def raw_record(**overrides) -> dict:
    record = {
        "transaction_id": 1,
        "sale_date": "2022-11-05",
        "sale_time": "09:00",
        "customer_id": 7,
        "gender": "M",
        "age": 30,
        "category": "Clothing",
        "quantity": 5,
        "price_per_unit": 20,
        "cogs": 10,
    }
    record.update(overrides)
    return record


async def stored_rows(db):
    result = await db.execute(
        select(RetailSale.transaction_id, RetailSale.gender, RetailSale.category)
        .order_by(RetailSale.transaction_id)
    )
    return [tuple(row) for row in result.all()]


class TestSaleCreateSchema:
    """Tests for record-level validation."""

    def test_valid_record_parses(self):
        sale = SaleCreate.model_validate(raw_record())
        assert sale.sale_date == date(2022, 11, 5)
        assert sale.sale_time == time(9, 0)
        assert sale.price_per_unit == Decimal("20")

    def test_missing_field_rejected(self):
        record = raw_record()
        del record["sale_time"]
        with pytest.raises(ValidationError):
            SaleCreate.model_validate(record)

    @pytest.mark.parametrize("field,value", [
        ("age", 121),
        ("age", -1),
        ("quantity", -3),
        ("price_per_unit", "-0.01"),
        ("cogs", "-5"),
        ("sale_date", "2022-13-01"),
        ("gender", "  "),
        ("transaction_id", 2**31),
        ("customer_id", 2**31),
        ("quantity", 2**40),
        ("category", "Électronique"),
        ("gender", "Ｍ"),
    ])
    def test_domain_violation_rejected(self, field, value):
        with pytest.raises(ValidationError):
            SaleCreate.model_validate(raw_record(**{field: value}))

    def test_largest_stored_id_accepted(self):
        sale = SaleCreate.model_validate(raw_record(transaction_id=MAX_INT32, customer_id=MAX_INT32))
        assert sale.transaction_id == MAX_INT32

    def test_batch_size_capped(self):
        SaleBatchCreate(records=[raw_record()] * MAX_BATCH_SIZE)
        with pytest.raises(ValidationError):
            SaleBatchCreate(records=[raw_record()] * (MAX_BATCH_SIZE + 1))

    def test_consistent_total_sale_accepted(self):
        sale = SaleCreate.model_validate(raw_record(total_sale="100.00"))
        assert "total_sale" not in sale.model_dump()

    def test_inconsistent_total_sale_rejected(self):
        with pytest.raises(ValidationError):
            SaleCreate.model_validate(raw_record(total_sale=99))


class TestValidateRecords:
    """Tests for batch splitting."""

    def test_duplicate_in_batch_keeps_first(self):
        accepted, rejected = validate_records([
            raw_record(transaction_id=1),
            raw_record(transaction_id=1, age=40),
        ])
        assert [(i, s.age) for i, s in accepted] == [(0, 30)]
        assert rejected[0].index == 1
        assert "duplicate" in rejected[0].errors[0]

    def test_rejection_names_field(self):
        record = raw_record()
        del record["category"]
        _, rejected = validate_records([record])
        assert rejected[0].transaction_id == 1
        assert any(e.startswith("category") for e in rejected[0].errors)

    def test_normalize_label(self):
        assert normalize_label("  clothing ") == "Clothing"
        assert normalize_label("FEMALE") == "Female"
        assert normalize_label(normalize_label("bEAUTY")) == "Beauty"

    def test_normalize_label_changes_ascii_letters_only(self):
        assert normalize_label("éclair") == "éclair"
        assert normalize_label(" ÉLAN") == "Élan"
        assert normalize_label("sTRASSE") == "Strasse"
        # only spaces are trimmed, as SQL trim does
        assert normalize_label("\tbeauty ") == "\tbeauty"


@pytest.mark.asyncio
class TestLoadSales:
    """Integration tests for load_sales."""

    async def test_load_stores_valid_records(self, db_session):
        result = await load_sales(db_session, [raw_record()])

        assert result.created == 1
        assert result.rejected == []
        stored = await get_sale(db_session, 1)
        assert stored.total_sale == Decimal("100")

    async def test_load_skips_invalid_without_failing(self, db_session):
        missing_time = raw_record(transaction_id=2)
        del missing_time["sale_time"]
        records = [
            raw_record(transaction_id=1),
            missing_time,
            raw_record(transaction_id=3, quantity=-1),
            raw_record(transaction_id=4),
        ]
        result = await load_sales(db_session, records)

        assert result.created == 2
        assert [r.index for r in result.rejected] == [1, 2]
        assert [row[0] for row in await stored_rows(db_session)] == [1, 4]

    async def test_load_rejects_already_stored_id(self, db_session):
        await load_sales(db_session, [raw_record(transaction_id=1)])
        result = await load_sales(db_session, [
            raw_record(transaction_id=2),
            raw_record(transaction_id=1),
        ])

        assert result.created == 1
        assert result.rejected[0].index == 1
        assert "already stored" in result.rejected[0].errors[0]

    async def test_load_rejects_out_of_range_integer(self, db_session):
        result = await load_sales(db_session, [
            raw_record(transaction_id=1),
            raw_record(transaction_id=2**40),
        ])

        assert result.created == 1
        assert result.rejected[0].index == 1
        assert result.rejected[0].errors[0].startswith("transaction_id")
        assert [row[0] for row in await stored_rows(db_session)] == [1]

    async def test_existing_ids_spans_several_lookups(self, db_session, sale_factory):
        db_session.add_all([sale_factory(5), sale_factory(1500), sale_factory(2400)])
        await db_session.commit()

        ids = list(range(1, 2 * ID_LOOKUP_CHUNK + 501))
        assert await _existing_ids(db_session, ids) == {5, 1500, 2400}
        assert await _existing_ids(db_session, []) == set()

    async def test_load_does_not_mutate_input(self, db_session):
        records = [raw_record(), raw_record(transaction_id=2, age="old")]
        snapshot = copy.deepcopy(records)
        await load_sales(db_session, records)
        assert records == snapshot

    async def test_load_clears_report_cache(self, db_session):
        set_cached("totals_by_category", "stale")
        await load_sales(db_session, [raw_record()])
        assert get_cache_stats()["entries"] == 0


@pytest.mark.asyncio
class TestCleanSales:
    """Integration tests for clean_sales."""

    async def test_clean_deletes_invalid_and_normalizes(self, db_session, dirty_sales):
        result = await clean_sales(db_session)

        assert result.deleted == 5
        assert result.normalized == 2
        assert result.remaining == 3
        assert await stored_rows(db_session) == [
            (101, "Male", "Clothing"),
            (102, "Female", "Beauty"),
            (108, "Female", "Beauty"),
        ]

    async def test_clean_is_idempotent(self, db_session, dirty_sales):
        await clean_sales(db_session)
        after_first = await stored_rows(db_session)

        second = await clean_sales(db_session)

        assert second.deleted == 0
        assert second.normalized == 0
        assert await stored_rows(db_session) == after_first

    async def test_cleaned_set_invariants(self, db_session, dirty_sales):
        await clean_sales(db_session)
        result = await db_session.execute(select(RetailSale))

        for sale in result.scalars().all():
            for field in (
                "sale_date", "sale_time", "customer_id", "gender", "age",
                "category", "quantity", "price_per_unit", "cogs",
            ):
                assert getattr(sale, field) is not None
            assert 0 <= sale.age <= 120
            assert sale.total_sale == sale.quantity * sale.price_per_unit

    async def test_clean_counts_each_changed_row_once(self, db_session, sale_factory):
        db_session.add_all([
            sale_factory(1, gender="male", category="beauty"),
            sale_factory(2, category="BEAUTY"),
            sale_factory(3, gender=" Female"),
            sale_factory(4),
        ])
        await db_session.commit()

        result = await clean_sales(db_session)

        assert result.normalized == 3
        assert await stored_rows(db_session) == [
            (1, "Male", "Beauty"),
            (2, "Male", "Beauty"),
            (3, "Female", "Clothing"),
            (4, "Male", "Clothing"),
        ]

    async def test_clean_on_empty_table(self, db_session):
        result = await clean_sales(db_session)
        assert (result.deleted, result.normalized, result.remaining) == (0, 0, 0)

    async def test_find_incomplete_previews_deletions(self, db_session, dirty_sales):
        preview = await find_incomplete_sales(db_session)
        assert [s.transaction_id for s in preview.items] == [103, 104, 105, 106, 107]

        result = await clean_sales(db_session)
        assert result.deleted == preview.total
        assert (await find_incomplete_sales(db_session)).total == 0


@pytest.mark.asyncio
class TestListSales:
    """Tests for listing and lookup."""

    async def test_list_paginates(self, db_session, sample_sales):
        page = await list_sales(db_session, page=1, page_size=4)
        assert page.total == 6
        assert page.pages == 2
        assert len(page.items) == 4
        # newest first
        assert page.items[0].transaction_id == 6

    async def test_list_filters_by_normalized_category(self, db_session, sample_sales):
        page = await list_sales(db_session, category=" beauty")
        assert {s.transaction_id for s in page.items} == {2, 4}

    async def test_get_sale_missing(self, db_session):
        assert await get_sale(db_session, 999) is None
