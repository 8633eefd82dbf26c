"""Employee service layer — async CRUD + business logic.

Uses:
  - ``paginate()`` from hrms.common.pagination
  - ``apply_filters / apply_search`` from hrms.common.filters
  - ``create_audit_entry`` from hrms.common.audit
  - ``NotFoundException / ConflictError`` from hrms.common.exceptions
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.dependencies import CompanyScope
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import BadRequestException, ConflictError, NotFoundException
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.companies.models import Company
from hrms.employees.models import Employee
from hrms.employees.schemas import (
    EmployeeCreate,
    EmployeeDetail,
    EmployeeListItem,
    EmployeeUpdate,
)
from hrms.organization.models import Degree, Department, Designation, Line, Section
from hrms.shifts.models import Shift

logger = logging.getLogger(__name__)

_REFERENCE_FIELDS = (
    "company_id",
    "department_id",
    "section_id",
    "designation_id",
    "line_id",
    "shift_id",
    "degree_id",
)


def _list_options():
    return (
        selectinload(Employee.company),
        selectinload(Employee.department),
        selectinload(Employee.section),
        selectinload(Employee.designation),
    )


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── Serialisation ───────────────────────────────────────────────

    @staticmethod
    def _enrich(out: Any, employee: Employee) -> Any:
        out.company_name = employee.company.name if employee.company else None
        out.department_name = employee.department.name if employee.department else None
        out.section_name = employee.section.name if employee.section else None
        if employee.designation:
            out.designation_name = employee.designation.name
            out.grade = employee.designation.grade
        return out

    @staticmethod
    def to_list_item(employee: Employee) -> EmployeeListItem:
        return EmployeeService._enrich(EmployeeListItem.model_validate(employee), employee)

    @staticmethod
    def to_detail(employee: Employee) -> EmployeeDetail:
        detail = EmployeeService._enrich(EmployeeDetail.model_validate(employee), employee)
        detail.line_name = employee.line.name if employee.line else None
        detail.shift_name = employee.shift.name if employee.shift else None
        detail.degree_name = employee.degree.name if employee.degree else None
        return detail

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        scope: CompanyScope,
        *,
        search: Optional[str] = None,
        company_id: Optional[int] = None,
        department_id: Optional[int] = None,
        section_id: Optional[int] = None,
        designation_id: Optional[int] = None,
        shift_id: Optional[int] = None,
        line_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""

        query = select(Employee).options(*_list_options())
        query = scope.restrict(query, Employee.company_id)

        # Non-admins never see deactivated records
        if not scope.is_admin:
            is_active = True

        filters: dict[str, Any] = {
            "company_id": scope.resolve_filter(company_id),
            "department_id": department_id,
            "section_id": section_id,
            "designation_id": designation_id,
            "shift_id": shift_id,
            "line_id": line_id,
            "is_active": is_active,
        }
        query = apply_filters(query, Employee, filters)

        if search:
            query = apply_search(query, Employee, search, ["name", "emp_id", "nid_no"])

        return await paginate(
            db, query, pagination, model=Employee, default_order=(Employee.emp_id, Employee.id),
        )

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Employee:
        """Load an employee with every reference resolved."""
        result = await db.execute(
            select(Employee)
            .where(Employee.id == employee_id)
            .options(
                *_list_options(),
                selectinload(Employee.line),
                selectinload(Employee.shift),
                selectinload(Employee.degree),
            )
            .execution_options(populate_existing=True)
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", employee_id)
        if scope is not None:
            scope.ensure(employee.company_id)
            if not scope.is_admin and not employee.is_active:
                raise NotFoundException("Employee", employee_id)
        return employee

    # ── Reference validation ────────────────────────────────────────

    @staticmethod
    async def _validate_references(db: AsyncSession, refs: dict[str, Any]) -> None:
        """Check the org chain (company → department → section → designation)
        and that optional line / shift / degree belong to the same company.
        Soft-deleted references are rejected like missing ones."""
        company_id = refs["company_id"]
        company = await db.get(Company, company_id)
        if company is None or not company.is_active:
            raise BadRequestException(f"Invalid company: {company_id}.")

        department = await db.get(Department, refs["department_id"])
        if department is None or not department.is_active or department.company_id != company_id:
            raise BadRequestException("Department does not belong to the selected company.")

        section = await db.get(Section, refs["section_id"])
        if section is None or not section.is_active or section.department_id != department.id:
            raise BadRequestException("Section does not belong to the selected department.")

        designation = await db.get(Designation, refs["designation_id"])
        if designation is None or not designation.is_active or designation.section_id != section.id:
            raise BadRequestException("Designation does not belong to the selected section.")

        for field, model, label in (
            ("line_id", Line, "Line"),
            ("shift_id", Shift, "Shift"),
            ("degree_id", Degree, "Degree"),
        ):
            ref_id = refs.get(field)
            if ref_id is None:
                continue
            obj = await db.get(model, ref_id)
            if obj is None or not obj.is_active or obj.company_id != company_id:
                raise BadRequestException(f"{label} does not belong to the selected company.")

    @staticmethod
    async def _check_emp_id(
        db: AsyncSession,
        emp_id: str,
        company_id: int,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = select(Employee.id).where(
            Employee.emp_id == emp_id, Employee.company_id == company_id,
        )
        if exclude_id is not None:
            query = query.where(Employee.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError("emp_id", emp_id)

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create a new employee record."""
        scope.ensure(data.company_id)
        await EmployeeService._validate_references(
            db, data.model_dump(include=set(_REFERENCE_FIELDS)),
        )
        await EmployeeService._check_emp_id(db, data.emp_id, data.company_id)

        employee = Employee(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(employee)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values={"emp_id": data.emp_id, "name": data.name, "company_id": data.company_id},
        )
        logger.info("Employee %s created in company %s", employee.emp_id, employee.company_id)
        return await EmployeeService.get_employee(db, employee.id)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: int,
        data: EmployeeUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        employee = await EmployeeService.get_employee(db, employee_id, scope)
        changes = data.model_dump(exclude_unset=True)

        if any(field in changes for field in _REFERENCE_FIELDS):
            refs = {
                field: changes.get(field, getattr(employee, field))
                for field in _REFERENCE_FIELDS
            }
            scope.ensure(refs["company_id"])
            await EmployeeService._validate_references(db, refs)

        if "emp_id" in changes or "company_id" in changes:
            await EmployeeService._check_emp_id(
                db,
                changes.get("emp_id") or employee.emp_id,
                changes.get("company_id") or employee.company_id,
                exclude_id=employee.id,
            )

        old_values = {field: getattr(employee, field) for field in changes}
        for field, value in changes.items():
            setattr(employee, field, value)
        employee.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await EmployeeService.get_employee(db, employee.id)

    # ── Delete (soft) ───────────────────────────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        employee_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        employee = await EmployeeService.get_employee(db, employee_id, scope)
        employee.is_active = False
        employee.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values={"emp_id": employee.emp_id, "name": employee.name},
        )
        logger.info("Employee %s deactivated", employee.emp_id)

    # ── Statistics ──────────────────────────────────────────────────

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        scoped_ids = scope.restrict(select(Employee.id), Employee.company_id)

        total = (
            await db.execute(select(func.count()).select_from(scoped_ids.subquery()))
        ).scalar_one()
        active = (
            await db.execute(
                select(func.count(Employee.id)).where(
                    Employee.id.in_(scoped_ids), Employee.is_active.is_(True),
                )
            )
        ).scalar_one()

        active_scoped = (Employee.id.in_(scoped_ids), Employee.is_active.is_(True))

        by_company = await db.execute(
            select(Company.name, func.count(Employee.id))
            .join(Company, Company.id == Employee.company_id)
            .where(*active_scoped)
            .group_by(Company.name)
            .order_by(func.count(Employee.id).desc(), Company.name)
        )
        by_department = await db.execute(
            select(Department.name, func.count(Employee.id))
            .join(Department, Department.id == Employee.department_id)
            .where(*active_scoped)
            .group_by(Department.name)
            .order_by(func.count(Employee.id).desc(), Department.name)
        )
        by_gender = await db.execute(
            select(func.coalesce(Employee.gender, "Unspecified"), func.count(Employee.id))
            .where(*active_scoped)
            .group_by(func.coalesce(Employee.gender, "Unspecified"))
        )

        return {
            "overview": {
                "total_employees": total,
                "active_employees": active,
                "inactive_employees": total - active,
            },
            "by_company": [{"company_name": n, "count": c} for n, c in by_company.all()],
            "by_department": [{"department_name": n, "count": c} for n, c in by_department.all()],
            "by_gender": {gender: count for gender, count in by_gender.all()},
        }
