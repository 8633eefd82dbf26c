"""Employees router.

Routes:
    GET    /employees              — List (paginated, scoped)
    GET    /employees/statistics   — Counts by company / department / gender
    GET    /employees/{id}         — Full employee record
    POST   /employees              — Create (Admin, HR, HR Manager)
    PUT    /employees/{id}         — Update (Admin, HR, HR Manager)
    DELETE /employees/{id}         — Soft delete (Admin)
"""


from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope, get_company_scope, require_role
from hrms.auth.models import User
from hrms.common.constants import HR_WRITE_ROLES, ORG_READ_ROLES, UserRole
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.employees.schemas import EmployeeCreate, EmployeeUpdate
from hrms.employees.service import EmployeeService

router = APIRouter(prefix="", tags=["employees"])


# ── GET /employees — List employees ─────────────────────────────────

@router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, employee id or NID"),
    company_id: Optional[int] = Query(None),
    department_id: Optional[int] = Query(None),
    section_id: Optional[int] = Query(None),
    designation_id: Optional[int] = Query(None),
    shift_id: Optional[int] = Query(None),
    line_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None, description="Admin only"),
):
    result = await EmployeeService.list_employees(
        db,
        pagination,
        scope,
        search=search,
        company_id=company_id,
        department_id=department_id,
        section_id=section_id,
        designation_id=designation_id,
        shift_id=shift_id,
        line_id=line_id,
        is_active=is_active,
    )
    return {
        "data": [EmployeeService.to_list_item(e).model_dump(mode="json") for e in result.data],
        "meta": result.meta.model_dump(),
    }


# NOTE: defined before /{employee_id} to avoid a path parameter conflict

@router.get("/statistics")
async def employee_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await EmployeeService.statistics(db, scope)
    return {"data": stats, "message": "Employee statistics retrieved successfully."}


# ── GET /employees/{id} ─────────────────────────────────────────────

@router.get("/{employee_id}")
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    employee = await EmployeeService.get_employee(db, employee_id, scope)
    return {
        "data": EmployeeService.to_detail(employee).model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── POST /employees — Create employee ──────────────────────────────

@router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    employee = await EmployeeService.create_employee(db, body, scope, actor_id=current_user.id)
    return {
        "data": EmployeeService.to_detail(employee).model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# ── PUT /employees/{id} — Update employee ──────────────────────────

@router.put("/{employee_id}")
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    employee = await EmployeeService.update_employee(
        db, employee_id, body, scope, actor_id=current_user.id,
    )
    return {
        "data": EmployeeService.to_detail(employee).model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── DELETE /employees/{id} — Soft delete ───────────────────────────

@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await EmployeeService.delete_employee(db, employee_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Employee deleted successfully."}
