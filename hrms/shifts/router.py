"""Shifts router.

Routes:
    GET    /shifts              — List (any authenticated user, scoped)
    GET    /shifts/statistics   — Active shifts with employee counts
    GET    /shifts/{id}         — Detail
    POST   /shifts              — Create (Admin, HR, HR Manager)
    PUT    /shifts/{id}         — Update (Admin, HR, HR Manager)
    DELETE /shifts/{id}         — Soft delete (Admin)
"""


from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope, get_company_scope, require_role
from hrms.auth.models import User
from hrms.common.constants import HR_WRITE_ROLES, UserRole
from hrms.database import get_db
from hrms.shifts.schemas import ShiftCreate, ShiftUpdate
from hrms.shifts.service import ShiftService

router = APIRouter(prefix="", tags=["shifts"])


@router.get("")
async def list_shifts(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
    company_id: Optional[int] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
    search: Optional[str] = Query(None),
):
    shifts = await ShiftService.list_shifts(
        db, scope, company_id=company_id, include_inactive=include_inactive, search=search,
    )
    return {
        "data": [ShiftService.to_response(s).model_dump(mode="json") for s in shifts],
        "message": f"Found {len(shifts)} shift(s).",
    }


@router.get("/statistics")
async def shift_statistics(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await ShiftService.statistics(db, scope)
    return {"data": stats, "message": "Shift statistics retrieved successfully."}


@router.get("/{shift_id}")
async def get_shift(
    shift_id: int,
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
):
    shift = await ShiftService.get_shift(db, shift_id, scope)
    return {
        "data": ShiftService.to_response(shift).model_dump(mode="json"),
        "message": "Shift retrieved successfully.",
    }


@router.post("", status_code=201)
async def create_shift(
    body: ShiftCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    shift = await ShiftService.create_shift(db, body, scope, actor_id=current_user.id)
    return {
        "data": ShiftService.to_response(shift).model_dump(mode="json"),
        "message": "Shift created successfully.",
    }


@router.put("/{shift_id}")
async def update_shift(
    shift_id: int,
    body: ShiftUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    shift = await ShiftService.update_shift(db, shift_id, body, scope, actor_id=current_user.id)
    return {
        "data": ShiftService.to_response(shift).model_dump(mode="json"),
        "message": "Shift updated successfully.",
    }


@router.delete("/{shift_id}")
async def delete_shift(
    shift_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await ShiftService.delete_shift(db, shift_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Shift deleted successfully."}
