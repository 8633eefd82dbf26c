"""Shift service layer — CRUD with time-window validation."""

from __future__ import annotations

import logging
import uuid
from datetime import time
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.dependencies import CompanyScope
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import (
    BadRequestException,
    ConflictError,
    InUseException,
    NotFoundException,
)
from hrms.common.filters import apply_search, name_equals
from hrms.companies.models import Company
from hrms.employees.models import Employee
from hrms.roster.models import RosterSchedule
from hrms.shifts.models import Shift
from hrms.shifts.schemas import ShiftCreate, ShiftResponse, ShiftUpdate

logger = logging.getLogger(__name__)


def validate_shift_times(
    start: time,
    end: time,
    break_start: Optional[time],
    break_end: Optional[time],
) -> None:
    """Raise 400 unless start < end and any break lies inside the shift."""
    if start >= end:
        raise BadRequestException("Start time must be before end time")
    if break_start is not None and break_end is not None:
        if break_start >= break_end:
            raise BadRequestException("Break start time must be before break end time")
        if break_start < start or break_end > end:
            raise BadRequestException("Break times must be within shift hours")


class ShiftService:

    @staticmethod
    def to_response(shift: Shift) -> ShiftResponse:
        out = ShiftResponse.model_validate(shift)
        out.company_name = shift.company.name if shift.company else None
        return out

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_shifts(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        company_id: Optional[int] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> list[Shift]:
        query = (
            select(Shift)
            .join(Company, Company.id == Shift.company_id)
            .options(selectinload(Shift.company))
        )
        query = scope.restrict(query, Shift.company_id)
        company_id = scope.resolve_filter(company_id)
        if company_id is not None:
            query = query.where(Shift.company_id == company_id)
        if not scope.show_inactive(include_inactive):
            query = query.where(Shift.is_active.is_(True))
        if search:
            query = apply_search(query, Shift, search, ["name", "name_bangla"])
        result = await db.execute(query.order_by(Company.name, Shift.start_time, Shift.name))
        return list(result.scalars().all())

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_shift(
        db: AsyncSession,
        shift_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Shift:
        result = await db.execute(
            select(Shift)
            .where(Shift.id == shift_id)
            .options(selectinload(Shift.company))
            .execution_options(populate_existing=True)
        )
        shift = result.scalars().first()
        if shift is None:
            raise NotFoundException("Shift", shift_id)
        if scope is not None:
            scope.ensure(shift.company_id)
            if not scope.is_admin and not shift.is_active:
                raise NotFoundException("Shift", shift_id)
        return shift

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _check_company(db: AsyncSession, company_id: int) -> None:
        company = await db.get(Company, company_id)
        if company is None or not company.is_active:
            raise BadRequestException(f"Invalid company: {company_id}.")

    @staticmethod
    async def _check_unique(
        db: AsyncSession,
        name: str,
        company_id: int,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = select(Shift.id).where(
            name_equals(Shift.name, name),
            Shift.company_id == company_id,
            Shift.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.where(Shift.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError("name", name)

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_shift(
        db: AsyncSession,
        data: ShiftCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        scope.ensure(data.company_id)
        validate_shift_times(
            data.start_time, data.end_time, data.break_start_time, data.break_end_time,
        )
        await ShiftService._check_company(db, data.company_id)
        await ShiftService._check_unique(db, data.name, data.company_id)

        shift = Shift(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(shift)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="shift",
            entity_id=shift.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Shift %s created for company %s", shift.name, shift.company_id)
        return await ShiftService.get_shift(db, shift.id)

    @staticmethod
    async def _ensure_unused(db: AsyncSession, shift: Shift, *, action: str = "delete") -> None:
        """409 while active employees or roster schedules use *shift*."""
        employees = (
            await db.execute(
                select(func.count(Employee.id)).where(
                    Employee.shift_id == shift.id, Employee.is_active.is_(True),
                )
            )
        ).scalar_one()
        if employees:
            raise InUseException("shift", f"{employees} active employee(s)", action=action)

        schedules = (
            await db.execute(
                select(func.count(RosterSchedule.id)).where(
                    RosterSchedule.shift_id == shift.id, RosterSchedule.is_active.is_(True),
                )
            )
        ).scalar_one()
        if schedules:
            raise InUseException("shift", f"{schedules} active roster schedule(s)", action=action)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_shift(
        db: AsyncSession,
        shift_id: int,
        data: ShiftUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        shift = await ShiftService.get_shift(db, shift_id, scope)
        changes = data.model_dump(exclude_unset=True)

        # Validate the merged time window, not just the submitted fields
        merged = {
            field: changes.get(field, getattr(shift, field))
            for field in ("start_time", "end_time", "break_start_time", "break_end_time")
        }
        validate_shift_times(
            merged["start_time"],
            merged["end_time"],
            merged["break_start_time"],
            merged["break_end_time"],
        )

        if "company_id" in changes and changes["company_id"] != shift.company_id:
            scope.ensure(changes["company_id"])
            await ShiftService._check_company(db, changes["company_id"])
            await ShiftService._ensure_unused(db, shift, action="move")
        if "name" in changes or "company_id" in changes:
            await ShiftService._check_unique(
                db,
                changes.get("name") or shift.name,
                changes.get("company_id") or shift.company_id,
                exclude_id=shift.id,
            )

        old_values = {field: getattr(shift, field) for field in changes}
        for field, value in changes.items():
            setattr(shift, field, value)
        shift.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="shift",
            entity_id=shift.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await ShiftService.get_shift(db, shift.id)

    # ── Delete (soft) ───────────────────────────────────────────────

    @staticmethod
    async def delete_shift(
        db: AsyncSession,
        shift_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        shift = await ShiftService.get_shift(db, shift_id, scope)
        await ShiftService._ensure_unused(db, shift)

        shift.is_active = False
        shift.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="shift",
            entity_id=shift.id,
            actor_id=actor_id,
            old_values={"name": shift.name},
        )

    # ── Statistics ──────────────────────────────────────────────────

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        shifts = await ShiftService.list_shifts(db, scope)
        employee_counts = dict(
            (
                await db.execute(
                    select(Employee.shift_id, func.count(Employee.id))
                    .where(
                        Employee.shift_id.in_([s.id for s in shifts]),
                        Employee.is_active.is_(True),
                    )
                    .group_by(Employee.shift_id)
                )
            ).all()
        )
        return {
            "total_active_shifts": len(shifts),
            "shifts": [
                {
                    "id": s.id,
                    "name": s.name,
                    "company_name": s.company.name if s.company else None,
                    "working_hours": s.working_hours,
                    "employee_count": employee_counts.get(s.id, 0),
                }
                for s in shifts
            ],
        }
