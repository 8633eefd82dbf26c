"""Roster schedules router.

Routes:
    GET    /roster-schedules              — List (paginated, scoped)
    GET    /roster-schedules/summary      — Attendance summary over the filtered set
    GET    /roster-schedules/{id}         — Detail
    POST   /roster-schedules              — Create (Admin, HR, HR Manager)
    POST   /roster-schedules/bulk         — Generate for a date range (Admin, HR, HR Manager)
    POST   /roster-schedules/check-in     — Record arrival
    POST   /roster-schedules/check-out    — Record departure and overtime
    PUT    /roster-schedules/{id}         — Update (Admin, HR, HR Manager)
    DELETE /roster-schedules/{id}         — Soft delete (Admin)
"""


from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope, get_company_scope, get_current_user, require_role
from hrms.auth.models import User
from hrms.common.constants import HR_WRITE_ROLES, RosterStatus, UserRole
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.roster.schemas import BulkRosterCreate, CheckInOutRequest, RosterCreate, RosterUpdate
from hrms.roster.service import RosterService

router = APIRouter(prefix="", tags=["roster"])


def roster_filters(
    employee_id: Optional[int] = Query(None),
    shift_id: Optional[int] = Query(None),
    company_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[RosterStatus] = Query(None),
    has_check_in: Optional[bool] = Query(None),
    has_check_out: Optional[bool] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
) -> dict[str, Any]:
    return {
        "employee_id": employee_id,
        "shift_id": shift_id,
        "company_id": company_id,
        "start_date": start_date,
        "end_date": end_date,
        "status": status,
        "has_check_in": has_check_in,
        "has_check_out": has_check_out,
        "include_inactive": include_inactive,
    }


def _one(schedule) -> dict:
    return RosterService.to_response(schedule).model_dump(mode="json")


# ── GET /roster-schedules ───────────────────────────────────────────

@router.get("")
async def list_roster_schedules(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
    pagination: PaginationParams = Depends(),
    filters: dict = Depends(roster_filters),
):
    result = await RosterService.list_schedules(db, pagination, scope, **filters)
    return {
        "data": [_one(s) for s in result.data],
        "meta": result.meta.model_dump(),
    }


# NOTE: static paths are declared before /{schedule_id}

@router.get("/summary")
async def roster_summary(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
    filters: dict = Depends(roster_filters),
):
    summary = await RosterService.summary(db, scope, **filters)
    return {"data": summary.model_dump(), "message": "Roster summary retrieved successfully."}


@router.post("/bulk", status_code=201)
async def bulk_create_roster(
    body: BulkRosterCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    result = await RosterService.bulk_create(db, body, scope, actor_id=current_user.id)
    return {
        "data": result.model_dump(),
        "message": (
            f"Created {result.created_count} schedule(s), "
            f"skipped {result.skipped_count} existing."
        ),
    }


@router.post("/check-in")
async def check_in(
    body: CheckInOutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    scope: CompanyScope = Depends(get_company_scope),
):
    schedule = await RosterService.check_in(db, body, scope, actor_id=current_user.id)
    return {"data": _one(schedule), "message": "Checked in successfully."}


@router.post("/check-out")
async def check_out(
    body: CheckInOutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    scope: CompanyScope = Depends(get_company_scope),
):
    schedule = await RosterService.check_out(db, body, scope, actor_id=current_user.id)
    return {"data": _one(schedule), "message": "Checked out successfully."}


# ── Single schedule ─────────────────────────────────────────────────

@router.get("/{schedule_id}")
async def get_roster_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
):
    schedule = await RosterService.get_schedule(db, schedule_id, scope)
    return {"data": _one(schedule), "message": "Roster schedule retrieved successfully."}


@router.post("", status_code=201)
async def create_roster_schedule(
    body: RosterCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    schedule = await RosterService.create_schedule(db, body, scope, actor_id=current_user.id)
    return {"data": _one(schedule), "message": "Roster schedule created successfully."}


@router.put("/{schedule_id}")
async def update_roster_schedule(
    schedule_id: int,
    body: RosterUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    schedule = await RosterService.update_schedule(
        db, schedule_id, body, scope, actor_id=current_user.id,
    )
    return {"data": _one(schedule), "message": "Roster schedule updated successfully."}


@router.delete("/{schedule_id}")
async def delete_roster_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await RosterService.delete_schedule(db, schedule_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Roster schedule deleted successfully."}
