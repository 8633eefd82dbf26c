"""Bangladesh address reference data — lookups, hierarchy listings and statistics."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.addresses.models import BangladeshAddress
from hrms.addresses.schemas import AddressCreate, NamedPlace
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import ConflictError, NotFoundException
from hrms.common.filters import apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate

logger = logging.getLogger(__name__)

A = BangladeshAddress

# (division, district, upazila, union, area, postal_code) identifies an address
_IDENTITY_FIELDS = ("division", "district", "upazila", "union", "area", "postal_code")


class AddressService:

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_addresses(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        division: Optional[str] = None,
        district: Optional[str] = None,
        upazila: Optional[str] = None,
        union: Optional[str] = None,
        postal_code: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> PaginatedResponse:
        query = select(A)
        for column, bangla, value in (
            (A.division, A.division_bangla, division),
            (A.district, A.district_bangla, district),
            (A.upazila, A.upazila_bangla, upazila),
            (A.union, A.union_bangla, union),
        ):
            if value:
                query = query.where(or_(column.ilike(f"%{value}%"), bangla.ilike(f"%{value}%")))
        if postal_code:
            query = query.where(A.postal_code.ilike(f"{postal_code}%"))
        if not include_inactive:
            query = query.where(A.is_active.is_(True))
        query = apply_search(
            query, A, search,
            ["division", "district", "upazila", "union", "area", "postal_code",
             "division_bangla", "district_bangla", "upazila_bangla", "area_bangla"],
        )
        return await paginate(
            db, query, pagination, model=A,
            default_order=(A.division, A.district, A.upazila, A.id),
        )

    # ── Single lookups ──────────────────────────────────────────────

    @staticmethod
    async def get_address(db: AsyncSession, address_id: int) -> BangladeshAddress:
        address = await db.get(A, address_id)
        if address is None:
            raise NotFoundException("BangladeshAddress", address_id)
        return address

    @staticmethod
    async def by_postal_code(db: AsyncSession, postal_code: str) -> BangladeshAddress:
        result = await db.execute(
            select(A)
            .where(A.postal_code == postal_code.strip(), A.is_active.is_(True))
            .order_by(A.id)
            .limit(1)
        )
        address = result.scalars().first()
        if address is None:
            raise NotFoundException("BangladeshAddress", f"postal code {postal_code}")
        return address

    # ── Hierarchy ───────────────────────────────────────────────────

    @staticmethod
    async def divisions(db: AsyncSession) -> list[NamedPlace]:
        rows = await db.execute(
            select(
                A.division,
                func.max(A.division_bangla),
                func.count(distinct(A.district)),
                func.count(A.id),
            )
            .where(A.is_active.is_(True))
            .group_by(A.division)
            .order_by(A.division)
        )
        return [
            NamedPlace(name=name, name_bangla=bangla, child_count=children, address_count=total)
            for name, bangla, children, total in rows.all()
        ]

    @staticmethod
    async def districts(db: AsyncSession, division: Optional[str] = None) -> list[NamedPlace]:
        query = select(
            A.district,
            func.max(A.district_bangla),
            A.division,
            func.count(distinct(A.upazila)),
            func.count(A.id),
        ).where(A.is_active.is_(True))
        if division:
            query = query.where(or_(A.division == division, A.division_bangla == division))
        rows = await db.execute(
            query.group_by(A.division, A.district).order_by(A.division, A.district)
        )
        return [
            NamedPlace(
                name=name, name_bangla=bangla, parent=parent,
                child_count=children, address_count=total,
            )
            for name, bangla, parent, children, total in rows.all()
        ]

    @staticmethod
    async def upazilas(db: AsyncSession, district: Optional[str] = None) -> list[NamedPlace]:
        query = select(
            A.upazila,
            func.max(A.upazila_bangla),
            A.district,
            func.count(distinct(A.union)),
            func.count(A.id),
        ).where(A.is_active.is_(True), A.upazila.is_not(None))
        if district:
            query = query.where(or_(A.district == district, A.district_bangla == district))
        rows = await db.execute(
            query.group_by(A.district, A.upazila).order_by(A.district, A.upazila)
        )
        return [
            NamedPlace(
                name=name, name_bangla=bangla, parent=parent,
                child_count=children, address_count=total,
            )
            for name, bangla, parent, children, total in rows.all()
        ]

    # ── Statistics ──────────────────────────────────────────────────

    @staticmethod
    async def statistics(db: AsyncSession) -> dict[str, Any]:
        active = A.is_active.is_(True)

        async def count(expr, *where) -> int:
            return (await db.execute(select(expr).where(active, *where))).scalar_one()

        per_division = await db.execute(
            select(A.division, func.count(A.id))
            .where(active)
            .group_by(A.division)
            .order_by(A.division)
        )
        top_districts = await db.execute(
            select(A.district, func.count(A.id))
            .where(active)
            .group_by(A.district)
            .order_by(func.count(A.id).desc(), A.district)
            .limit(10)
        )

        return {
            "total_addresses": await count(func.count(A.id)),
            "total_divisions": await count(func.count(distinct(A.division))),
            "total_districts": await count(func.count(distinct(A.district))),
            "total_upazilas": await count(func.count(distinct(A.upazila))),
            "total_unions": await count(func.count(distinct(A.union))),
            "total_postal_codes": await count(func.count(distinct(A.postal_code))),
            "addresses_with_coordinates": await count(
                func.count(A.id), A.latitude.is_not(None), A.longitude.is_not(None),
            ),
            "division_counts": {name: total for name, total in per_division.all()},
            "top_districts": [
                {"district": name, "count": total} for name, total in top_districts.all()
            ],
        }

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_address(
        db: AsyncSession,
        data: AddressCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BangladeshAddress:
        conditions = []
        for field in _IDENTITY_FIELDS:
            column = getattr(A, field)
            value = getattr(data, field)
            conditions.append(column.is_(None) if value is None else column == value)
        duplicate = await db.execute(
            select(A.id).where(A.is_active.is_(True), *conditions).limit(1)
        )
        if duplicate.first() is not None:
            raise ConflictError(
                "postal_code",
                data.postal_code,
                detail="An address with the same location and postal code already exists.",
            )

        address = A(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(address)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="bangladesh_address",
            entity_id=address.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Address %s created: %s", address.id, address.full_address)
        return address

    # ── Delete (soft) ───────────────────────────────────────────────

    @staticmethod
    async def delete_address(
        db: AsyncSession,
        address_id: int,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        address = await AddressService.get_address(db, address_id)
        address.is_active = False
        address.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="bangladesh_address",
            entity_id=address.id,
            actor_id=actor_id,
        )
