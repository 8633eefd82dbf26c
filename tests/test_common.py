"""Tests for the shared query helpers — filters, sorting, search, pagination."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.filters import (
    _get_column,
    apply_filters,
    apply_search,
    apply_sorting,
    name_equals,
)
from hrms.common.pagination import PaginationParams, paginate
from hrms.companies.models import Company
from tests.conftest import make_company


async def _seed(db: AsyncSession, *names: str) -> list[Company]:
    companies = []
    for i, name in enumerate(names):
        companies.append(await make_company(db, name=name, company_code=f"C{i:03d}", city="Dhaka"))
    return companies


async def _names(db: AsyncSession, query) -> list[str]:
    return [c.name for c in (await db.execute(query)).scalars().all()]


class TestApplyFilters:

    async def test_filter_by_equality(self, db: AsyncSession):
        await _seed(db, "Alpha Knit", "Beta Denim")
        query = apply_filters(select(Company), Company, {"name": "Alpha Knit"})
        assert await _names(db, query) == ["Alpha Knit"]

    async def test_none_values_skipped(self, db: AsyncSession):
        await _seed(db, "Alpha Knit")
        query = apply_filters(select(Company), Company, {"name": None, "is_active": True})
        assert len(await _names(db, query)) == 1

    async def test_filter_by_ilike(self, db: AsyncSession):
        await _seed(db, "Alpha Knit", "Beta Denim")
        query = apply_filters(select(Company), Company, {"name__ilike": "DENIM"})
        assert await _names(db, query) == ["Beta Denim"]

    async def test_filter_by_from_to_range(self, db: AsyncSession):
        companies = await _seed(db, "Alpha Knit", "Beta Denim", "Gamma Wash")
        query = apply_filters(select(Company), Company, {
            "id__from": companies[1].id,
            "id__to": companies[1].id,
        })
        assert await _names(db, query) == ["Beta Denim"]

    async def test_filter_by_in(self, db: AsyncSession):
        await _seed(db, "Alpha Knit", "Beta Denim", "Gamma Wash")
        query = apply_filters(select(Company), Company, {"name__in": ["Alpha Knit", "Gamma Wash"]})
        assert set(await _names(db, query)) == {"Alpha Knit", "Gamma Wash"}

    async def test_unknown_column_ignored(self, db: AsyncSession):
        await _seed(db, "Alpha Knit")
        query = apply_filters(select(Company), Company, {"nonexistent_field": "value"})
        assert len(await _names(db, query)) == 1


class TestApplySorting:

    async def test_sort_ascending(self, db: AsyncSession):
        await _seed(db, "Gamma Wash", "Alpha Knit", "Beta Denim")
        query = apply_sorting(select(Company), Company, "name")
        assert await _names(db, query) == ["Alpha Knit", "Beta Denim", "Gamma Wash"]

    async def test_sort_descending(self, db: AsyncSession):
        await _seed(db, "Gamma Wash", "Alpha Knit", "Beta Denim")
        query = apply_sorting(select(Company), Company, "-name")
        assert await _names(db, query) == ["Gamma Wash", "Beta Denim", "Alpha Knit"]

    def test_sort_none_is_noop(self):
        query = select(Company)
        assert apply_sorting(query, Company, None) is query

    def test_unknown_column_leaves_query_untouched(self):
        query = select(Company)
        assert apply_sorting(query, Company, "-nonexistent_field") is query


class TestSearchAndNames:

    async def test_search_across_columns(self, db: AsyncSession):
        await _seed(db, "Alpha Knit", "Beta Denim")
        query = apply_search(select(Company), Company, "c001", ["name", "company_code"])
        assert await _names(db, query) == ["Beta Denim"]

    async def test_blank_search_is_noop(self):
        query = select(Company)
        assert apply_search(query, Company, "   ", ["name"]) is query

    async def test_name_equals_ignores_case_and_padding(self, db: AsyncSession):
        await _seed(db, "Alpha Knit")
        query = select(Company).where(name_equals(Company.name, "  ALPHA knit "))
        assert await _names(db, query) == ["Alpha Knit"]


class TestGetColumn:

    def test_existing_column(self):
        assert _get_column(Company, "name") is not None

    def test_missing_column(self):
        assert _get_column(Company, "totally_fake_column") is None

    def test_private_attribute_rejected(self):
        assert _get_column(Company, "__tablename__") is None


class TestPagination:

    async def test_paginate_with_sort(self, db: AsyncSession):
        await _seed(db, *(f"Factory {i}" for i in range(5)))
        params = PaginationParams(page=1, page_size=3, sort="-name")
        result = await paginate(db, select(Company), params, model=Company)
        assert [c.name for c in result.data] == ["Factory 4", "Factory 3", "Factory 2"]
        assert result.meta.total == 5
        assert result.meta.total_pages == 2
        assert result.meta.has_next is True
        assert result.meta.has_prev is False

    async def test_paginate_page_2(self, db: AsyncSession):
        await _seed(db, *(f"Factory {i}" for i in range(5)))
        params = PaginationParams(page=2, page_size=3, sort=None)
        result = await paginate(
            db, select(Company), params, model=Company, default_order=(Company.name,),
        )
        assert [c.name for c in result.data] == ["Factory 3", "Factory 4"]
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_unknown_sort_uses_default_order(self, db: AsyncSession):
        await _seed(db, "Gamma Wash", "Alpha Knit")
        params = PaginationParams(page=1, page_size=10, sort="bogus")
        result = await paginate(
            db, select(Company), params, model=Company, default_order=(Company.name.desc(),),
        )
        assert [c.name for c in result.data] == ["Gamma Wash", "Alpha Knit"]

    async def test_paginate_empty_result(self, db: AsyncSession):
        query = select(Company).where(Company.name == "ZZZ_NONEXISTENT")
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, query, params, model=Company)
        assert len(result.data) == 0
        assert result.meta.total == 0
        assert result.meta.total_pages == 0
