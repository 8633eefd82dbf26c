"""Roster service layer — scheduling, bulk generation, check-in / check-out
and attendance summaries.

Check-in / check-out times are stored as naive wall-clock datetimes in the
workplace timezone (``TIMEZONE``); aware inputs are converted before storing.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.dependencies import CompanyScope
from hrms.common.audit import create_audit_entry
from hrms.common.constants import ROSTER_STATUS_BANGLA, TIMEZONE, RosterStatus
from hrms.common.exceptions import BadRequestException, ConflictError, NotFoundException
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.employees.models import Employee
from hrms.roster.models import RosterSchedule
from hrms.roster.schemas import (
    BulkRosterCreate,
    BulkRosterResult,
    CheckInOutRequest,
    RosterCreate,
    RosterResponse,
    RosterSummary,
    RosterUpdate,
)
from hrms.shifts.models import Shift

logger = logging.getLogger(__name__)

MAX_BULK_DAYS = 366


def wall_clock(value: Optional[datetime]) -> datetime:
    """Normalise *value* (default: now) to a naive workplace-local datetime."""
    tz = ZoneInfo(TIMEZONE)
    if value is None:
        return datetime.now(tz).replace(tzinfo=None, microsecond=0)
    if value.tzinfo is not None:
        return value.astimezone(tz).replace(tzinfo=None)
    return value


def _status_bangla(status: RosterStatus) -> str:
    return ROSTER_STATUS_BANGLA[status]


def _load_options():
    return (
        selectinload(RosterSchedule.employee),
        selectinload(RosterSchedule.shift),
        selectinload(RosterSchedule.company),
    )


class RosterService:

    @staticmethod
    def to_response(schedule: RosterSchedule) -> RosterResponse:
        out = RosterResponse.model_validate(schedule)
        if schedule.employee is not None:
            out.employee_name = schedule.employee.name
            out.employee_name_bangla = schedule.employee.name_bangla
            out.emp_id = schedule.employee.emp_id
        if schedule.shift is not None:
            out.shift_name = schedule.shift.name
            out.shift_start_time = schedule.shift.start_time
            out.shift_end_time = schedule.shift.end_time
        out.company_name = schedule.company.name if schedule.company else None
        return out

    # ── Query building ──────────────────────────────────────────────

    @staticmethod
    def _filtered_query(
        scope: CompanyScope,
        *,
        employee_id: Optional[int] = None,
        shift_id: Optional[int] = None,
        company_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[RosterStatus] = None,
        has_check_in: Optional[bool] = None,
        has_check_out: Optional[bool] = None,
        include_inactive: bool = False,
    ) -> Select:
        query = scope.restrict(select(RosterSchedule), RosterSchedule.company_id)
        company_id = scope.resolve_filter(company_id)
        if company_id is not None:
            query = query.where(RosterSchedule.company_id == company_id)
        if employee_id is not None:
            query = query.where(RosterSchedule.employee_id == employee_id)
        if shift_id is not None:
            query = query.where(RosterSchedule.shift_id == shift_id)
        if start_date is not None:
            query = query.where(RosterSchedule.schedule_date >= start_date)
        if end_date is not None:
            query = query.where(RosterSchedule.schedule_date <= end_date)
        if status is not None:
            query = query.where(RosterSchedule.status == status.value)
        if has_check_in is not None:
            column = RosterSchedule.check_in_time
            query = query.where(column.is_not(None) if has_check_in else column.is_(None))
        if has_check_out is not None:
            column = RosterSchedule.check_out_time
            query = query.where(column.is_not(None) if has_check_out else column.is_(None))
        if not scope.show_inactive(include_inactive):
            query = query.where(RosterSchedule.is_active.is_(True))
        return query

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_schedules(
        db: AsyncSession,
        pagination: PaginationParams,
        scope: CompanyScope,
        **filters: Any,
    ) -> PaginatedResponse:
        query = RosterService._filtered_query(scope, **filters).options(*_load_options())
        return await paginate(
            db,
            query,
            pagination,
            model=RosterSchedule,
            default_order=(
                RosterSchedule.schedule_date.desc(),
                RosterSchedule.employee_id,
                RosterSchedule.id,
            ),
        )

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_schedule(
        db: AsyncSession,
        schedule_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> RosterSchedule:
        result = await db.execute(
            select(RosterSchedule)
            .where(RosterSchedule.id == schedule_id)
            .options(*_load_options())
            .execution_options(populate_existing=True)
        )
        schedule = result.scalars().first()
        if schedule is None:
            raise NotFoundException("RosterSchedule", schedule_id)
        if scope is not None:
            scope.ensure(schedule.company_id)
            if not scope.is_admin and not schedule.is_active:
                raise NotFoundException("RosterSchedule", schedule_id)
        return schedule

    # ── Validation helpers ──────────────────────────────────────────

    @staticmethod
    async def _valid_employee(db: AsyncSession, employee_id: int, company_id: int) -> Employee:
        employee = await db.get(Employee, employee_id)
        if employee is None or not employee.is_active or employee.company_id != company_id:
            raise BadRequestException(
                "Invalid employee",
                errors={"employee_id": [f"Employee with ID {employee_id} does not exist in this company."]},
            )
        return employee

    @staticmethod
    async def _valid_shift(db: AsyncSession, shift_id: int, company_id: int) -> Shift:
        shift = await db.get(Shift, shift_id)
        if shift is None or not shift.is_active or shift.company_id != company_id:
            raise BadRequestException(
                "Invalid shift",
                errors={"shift_id": [f"Shift with ID {shift_id} does not exist or does not belong to the company."]},
            )
        return shift

    @staticmethod
    async def _ensure_no_duplicate(
        db: AsyncSession,
        employee_id: int,
        schedule_date: date,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = select(RosterSchedule.id).where(
            RosterSchedule.employee_id == employee_id,
            RosterSchedule.schedule_date == schedule_date,
            RosterSchedule.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.where(RosterSchedule.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError(
                "schedule_date",
                schedule_date.isoformat(),
                detail=(
                    "Schedule already exists: a schedule already exists for this "
                    f"employee on {schedule_date.isoformat()}."
                ),
            )

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_schedule(
        db: AsyncSession,
        data: RosterCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> RosterSchedule:
        scope.ensure(data.company_id)
        await RosterService._valid_employee(db, data.employee_id, data.company_id)
        await RosterService._valid_shift(db, data.shift_id, data.company_id)
        await RosterService._ensure_no_duplicate(db, data.employee_id, data.schedule_date)

        schedule = RosterSchedule(
            employee_id=data.employee_id,
            shift_id=data.shift_id,
            company_id=data.company_id,
            schedule_date=data.schedule_date,
            status=data.status.value,
            status_bangla=data.status_bangla or _status_bangla(data.status),
            notes=data.notes,
            notes_bangla=data.notes_bangla,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(schedule)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="roster_schedule",
            entity_id=schedule.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info(
            "Roster schedule created for employee %s on %s", data.employee_id, data.schedule_date,
        )
        return await RosterService.get_schedule(db, schedule.id)

    # ── Bulk create ─────────────────────────────────────────────────

    @staticmethod
    async def bulk_create(
        db: AsyncSession,
        data: BulkRosterCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BulkRosterResult:
        """One schedule per employee per matching weekday in the date range.

        Existing (employee, date) pairs are skipped rather than rejected.
        """
        scope.ensure(data.company_id)
        if data.end_date < data.start_date:
            raise BadRequestException("End date must be on or after start date")
        if (data.end_date - data.start_date).days >= MAX_BULK_DAYS:
            raise BadRequestException(f"Date range cannot exceed {MAX_BULK_DAYS} days")

        await RosterService._valid_shift(db, data.shift_id, data.company_id)
        employee_ids = list(dict.fromkeys(data.employee_ids))
        for employee_id in employee_ids:
            await RosterService._valid_employee(db, employee_id, data.company_id)

        days: list[date] = []
        current = data.start_date
        while current <= data.end_date:
            # date.weekday(): Monday=0; days_of_week: Sunday=0
            if (current.weekday() + 1) % 7 in data.days_of_week:
                days.append(current)
            current += timedelta(days=1)

        existing = set(
            (
                await db.execute(
                    select(RosterSchedule.employee_id, RosterSchedule.schedule_date).where(
                        RosterSchedule.employee_id.in_(employee_ids),
                        RosterSchedule.schedule_date >= data.start_date,
                        RosterSchedule.schedule_date <= data.end_date,
                        RosterSchedule.is_active.is_(True),
                    )
                )
            ).all()
        )

        created: list[RosterSchedule] = []
        skipped: list[dict] = []
        for employee_id in employee_ids:
            for day in days:
                if (employee_id, day) in existing:
                    skipped.append({"employee_id": employee_id, "schedule_date": day.isoformat()})
                    continue
                schedule = RosterSchedule(
                    employee_id=employee_id,
                    shift_id=data.shift_id,
                    company_id=data.company_id,
                    schedule_date=day,
                    status=data.status.value,
                    status_bangla=_status_bangla(data.status),
                    notes=data.notes,
                    notes_bangla=data.notes_bangla,
                    created_by=actor_id,
                    updated_by=actor_id,
                )
                db.add(schedule)
                created.append(schedule)
        await db.flush()

        await create_audit_entry(
            db,
            action="bulk_create",
            entity_type="roster_schedule",
            entity_id=data.company_id,
            actor_id=actor_id,
            new_values={
                "shift_id": data.shift_id,
                "start_date": data.start_date,
                "end_date": data.end_date,
                "created": len(created),
                "skipped": len(skipped),
            },
        )
        logger.info(
            "Bulk roster: %d created, %d skipped for company %s",
            len(created), len(skipped), data.company_id,
        )
        return BulkRosterResult(
            created_count=len(created),
            skipped_count=len(skipped),
            created_ids=[s.id for s in created],
            skipped=skipped,
        )

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_schedule(
        db: AsyncSession,
        schedule_id: int,
        data: RosterUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> RosterSchedule:
        schedule = await RosterService.get_schedule(db, schedule_id, scope)
        changes = data.model_dump(exclude_unset=True)

        shift = None
        if "shift_id" in changes:
            shift = await RosterService._valid_shift(db, changes["shift_id"], schedule.company_id)
        if "schedule_date" in changes:
            await RosterService._ensure_no_duplicate(
                db, schedule.employee_id, changes["schedule_date"], exclude_id=schedule.id,
            )
        if "status" in changes:
            status = RosterStatus(changes["status"])
            changes["status"] = status.value
            if not changes.get("status_bangla"):
                changes["status_bangla"] = _status_bangla(status)

        old_values = {field: getattr(schedule, field) for field in changes}
        for field, value in changes.items():
            setattr(schedule, field, value)
        if shift is not None:
            schedule.shift = shift
        # Overtime depends on the shift end, which moves with shift or date
        if schedule.check_out_time is not None:
            schedule.overtime_hours = schedule.compute_overtime()
        schedule.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="roster_schedule",
            entity_id=schedule.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await RosterService.get_schedule(db, schedule.id)

    # ── Delete (soft) ───────────────────────────────────────────────

    @staticmethod
    async def delete_schedule(
        db: AsyncSession,
        schedule_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        schedule = await RosterService.get_schedule(db, schedule_id, scope)
        schedule.is_active = False
        schedule.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="roster_schedule",
            entity_id=schedule.id,
            actor_id=actor_id,
        )

    # ── Check-in / check-out ────────────────────────────────────────

    @staticmethod
    async def check_in(
        db: AsyncSession,
        data: CheckInOutRequest,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> RosterSchedule:
        schedule = await RosterService.get_schedule(db, data.roster_schedule_id, scope)
        if schedule.check_in_time is not None:
            raise BadRequestException("Already checked in")
        if schedule.status == RosterStatus.cancelled.value:
            raise BadRequestException("Cannot check in to a cancelled schedule")

        schedule.check_in_time = wall_clock(data.date_time)
        schedule.status = RosterStatus.confirmed.value
        schedule.status_bangla = _status_bangla(RosterStatus.confirmed)
        if data.notes is not None:
            schedule.notes = data.notes
        if data.notes_bangla is not None:
            schedule.notes_bangla = data.notes_bangla
        schedule.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="check_in",
            entity_type="roster_schedule",
            entity_id=schedule.id,
            actor_id=actor_id,
            new_values={"check_in_time": schedule.check_in_time},
        )
        logger.info("Employee %s checked in at %s", schedule.employee_id, schedule.check_in_time)
        return await RosterService.get_schedule(db, schedule.id)

    @staticmethod
    async def check_out(
        db: AsyncSession,
        data: CheckInOutRequest,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> RosterSchedule:
        schedule = await RosterService.get_schedule(db, data.roster_schedule_id, scope)
        if schedule.check_in_time is None:
            raise BadRequestException("Not checked in")
        if schedule.check_out_time is not None:
            raise BadRequestException("Already checked out")

        check_out_time = wall_clock(data.date_time)
        if check_out_time <= schedule.check_in_time:
            raise BadRequestException("Check-out time must be after check-in time")

        schedule.check_out_time = check_out_time
        schedule.overtime_hours = schedule.compute_overtime()
        schedule.status = RosterStatus.completed.value
        schedule.status_bangla = _status_bangla(RosterStatus.completed)
        if data.notes is not None:
            schedule.notes = data.notes
        if data.notes_bangla is not None:
            schedule.notes_bangla = data.notes_bangla
        schedule.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="check_out",
            entity_type="roster_schedule",
            entity_id=schedule.id,
            actor_id=actor_id,
            new_values={
                "check_out_time": schedule.check_out_time,
                "overtime_hours": schedule.overtime_hours,
            },
        )
        logger.info(
            "Employee %s checked out at %s (overtime %s h)",
            schedule.employee_id, schedule.check_out_time, schedule.overtime_hours,
        )
        return await RosterService.get_schedule(db, schedule.id)

    # ── Summary ─────────────────────────────────────────────────────

    @staticmethod
    async def summary(db: AsyncSession, scope: CompanyScope, **filters: Any) -> RosterSummary:
        query = RosterService._filtered_query(scope, **filters).options(
            selectinload(RosterSchedule.shift),
        )
        schedules = (await db.execute(query)).scalars().all()

        counts = {status: 0 for status in RosterStatus}
        late = overtime = on_time = checked_in = 0
        worked_hours = overtime_hours = 0.0

        for schedule in schedules:
            try:
                counts[RosterStatus(schedule.status)] += 1
            except ValueError:
                logger.warning("Roster %s has unknown status %r", schedule.id, schedule.status)
            if schedule.check_in_time is not None:
                checked_in += 1
                if schedule.is_late:
                    late += 1
                else:
                    on_time += 1
            if schedule.is_overtime:
                overtime += 1
                overtime_hours += float(schedule.overtime_hours)
            if schedule.worked_hours is not None:
                worked_hours += schedule.worked_hours

        total = len(schedules)
        attended = counts[RosterStatus.confirmed] + counts[RosterStatus.completed]
        expected = total - counts[RosterStatus.cancelled]

        return RosterSummary(
            total_schedules=total,
            scheduled=counts[RosterStatus.scheduled],
            confirmed=counts[RosterStatus.confirmed],
            completed=counts[RosterStatus.completed],
            cancelled=counts[RosterStatus.cancelled],
            absent=counts[RosterStatus.absent],
            late_arrivals=late,
            overtime_schedules=overtime,
            total_worked_hours=round(worked_hours, 2),
            total_overtime_hours=round(overtime_hours, 2),
            attendance_rate=round(attended / expected * 100, 2) if expected else 0.0,
            punctuality_rate=round(on_time / checked_in * 100, 2) if checked_in else 0.0,
        )
