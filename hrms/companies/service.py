"""Company service layer — async CRUD, scoping and statistics.

Uses:
  - ``CompanyScope`` from hrms.auth.dependencies for tenant visibility
  - ``create_audit_entry`` from hrms.common.audit
  - ``NotFoundException / ConflictError / InUseException`` from hrms.common.exceptions
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope
from hrms.auth.models import User
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import ConflictError, InUseException, NotFoundException
from hrms.common.filters import apply_search, name_equals
from hrms.companies.models import Company
from hrms.companies.schemas import CompanyCreate, CompanyUpdate
from hrms.employees.models import Employee

logger = logging.getLogger(__name__)


class CompanyService:
    """Async CRUD operations for companies."""

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_companies(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[Company]:
        query = scope.restrict(select(Company), Company.id)
        if not scope.show_inactive(include_inactive):
            query = query.where(Company.is_active.is_(True))
        if search:
            query = apply_search(query, Company, search, ["name", "company_code", "city"])
        result = await db.execute(query.order_by(Company.name))
        return list(result.scalars().all())

    @staticmethod
    async def my_companies(db: AsyncSession, scope: CompanyScope) -> list[Company]:
        """Companies the caller can work in (all active ones for admins)."""
        return await CompanyService.list_companies(db, scope)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_company(
        db: AsyncSession,
        company_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Company:
        company = await db.get(Company, company_id)
        if company is None:
            raise NotFoundException("Company", company_id)
        if scope is not None:
            scope.ensure(company.id)
            if not scope.is_admin and not company.is_active:
                raise NotFoundException("Company", company_id)
        return company

    # ── Uniqueness ──────────────────────────────────────────────────

    @staticmethod
    async def _check_unique(
        db: AsyncSession,
        *,
        name: Optional[str],
        company_code: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> None:
        if name:
            query = select(Company.id).where(name_equals(Company.name, name))
            if exclude_id is not None:
                query = query.where(Company.id != exclude_id)
            if (await db.execute(query)).first() is not None:
                raise ConflictError("name", name)
        if company_code:
            query = select(Company.id).where(name_equals(Company.company_code, company_code))
            if exclude_id is not None:
                query = query.where(Company.id != exclude_id)
            if (await db.execute(query)).first() is not None:
                raise ConflictError("company_code", company_code)

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_company(
        db: AsyncSession,
        data: CompanyCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        await CompanyService._check_unique(db, name=data.name, company_code=data.company_code)

        company = Company(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(company)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="company",
            entity_id=company.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Company %s created", company.name)
        return company

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_company(
        db: AsyncSession,
        company_id: int,
        data: CompanyUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        company = await CompanyService.get_company(db, company_id)
        changes = data.model_dump(exclude_unset=True)
        await CompanyService._check_unique(
            db,
            name=changes.get("name"),
            company_code=changes.get("company_code"),
            exclude_id=company.id,
        )

        old_values = {field: getattr(company, field) for field in changes}
        for field, value in changes.items():
            setattr(company, field, value)
        company.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="company",
            entity_id=company.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return company

    # ── Delete (soft) ───────────────────────────────────────────────

    @staticmethod
    async def delete_company(
        db: AsyncSession,
        company_id: int,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        company = await CompanyService.get_company(db, company_id)

        users = (
            await db.execute(
                select(func.count(User.id)).where(
                    User.company_id == company.id, User.is_active.is_(True),
                )
            )
        ).scalar_one()
        if users:
            raise InUseException("company", f"{users} active user(s)")

        employees = (
            await db.execute(
                select(func.count(Employee.id)).where(
                    Employee.company_id == company.id, Employee.is_active.is_(True),
                )
            )
        ).scalar_one()
        if employees:
            raise InUseException("company", f"{employees} active employee(s)")

        company.is_active = False
        company.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="company",
            entity_id=company.id,
            actor_id=actor_id,
            old_values={"name": company.name},
        )
        logger.info("Company %s deactivated", company.name)

    # ── Statistics ──────────────────────────────────────────────────

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        base = scope.restrict(select(Company), Company.id).subquery()

        total = (await db.execute(select(func.count()).select_from(base))).scalar_one()
        active = (
            await db.execute(
                select(func.count()).select_from(base).where(base.c.is_active.is_(True))
            )
        ).scalar_one()

        by_country = await db.execute(
            select(base.c.country, func.count().label("count"))
            .where(base.c.country.is_not(None))
            .group_by(base.c.country)
            .order_by(func.count().desc(), base.c.country)
            .limit(10)
        )
        recent = await db.execute(
            select(base.c.id, base.c.name, base.c.created_at)
            .order_by(base.c.created_at.desc(), base.c.id.desc())
            .limit(5)
        )

        return {
            "overview": {
                "total_companies": total,
                "active_companies": active,
                "inactive_companies": total - active,
            },
            "companies_by_country": [
                {"country": country, "count": count} for country, count in by_country.all()
            ],
            "recent_companies": [
                {
                    "id": cid,
                    "name": name,
                    "created_at": created_at.isoformat() if created_at else None,
                }
                for cid, name, created_at in recent.all()
            ],
        }
