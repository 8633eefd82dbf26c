"""Organisation service layer — async CRUD + business logic for departments,
sections, designations, degrees and lines.

Every entity is owned by a company, either directly (department, degree,
line) or through its parent chain (section → department, designation →
section → department). Visibility is enforced with ``CompanyScope``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import Select, func, select
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
from hrms.organization.degree_templates import COMMON_DEGREES
from hrms.organization.models import Degree, Department, Designation, Line, Section
from hrms.organization.schemas import (
    CommonDegree,
    DegreeCreate,
    DegreeResponse,
    DegreeUpdate,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    DesignationCreate,
    DesignationResponse,
    DesignationUpdate,
    LineCreate,
    LineResponse,
    LineUpdate,
    SectionCreate,
    SectionResponse,
    SectionUpdate,
)

logger = logging.getLogger(__name__)

# Active rows that pin an entity to its parent: they block a delete and a
# move to another parent alike.
_DEPARTMENT_DEPENDANTS = [
    ("section(s)", Section, Section.department_id),
    ("employee(s)", Employee, Employee.department_id),
]
_SECTION_DEPENDANTS = [
    ("designation(s)", Designation, Designation.section_id),
    ("employee(s)", Employee, Employee.section_id),
]
_DESIGNATION_DEPENDANTS = [("employee(s)", Employee, Employee.designation_id)]
_DEGREE_DEPENDANTS = [("employee(s)", Employee, Employee.degree_id)]
_LINE_DEPENDANTS = [("employee(s)", Employee, Employee.line_id)]


# ── Shared helpers ──────────────────────────────────────────────────

async def _count_active(db: AsyncSession, model: Any, column: Any, value: Any) -> int:
    result = await db.execute(
        select(func.count(model.id)).where(column == value, model.is_active.is_(True)),
    )
    return result.scalar_one()


async def _ensure_not_referenced(
    db: AsyncSession,
    entity_type: str,
    checks: list[tuple[str, Any, Any]],
    value: Any,
    *,
    action: str = "delete",
) -> None:
    """Raise 409 if any ``(label, model, fk_column)`` has active rows pointing at *value*."""
    for label, model, column in checks:
        count = await _count_active(db, model, column, value)
        if count:
            raise InUseException(entity_type, f"{count} active {label}", action=action)


def _moves(obj: Any, changes: dict[str, Any], field: str) -> bool:
    return field in changes and changes[field] != getattr(obj, field)


async def _ensure_unique_name(
    db: AsyncSession,
    model: Any,
    name: str,
    parent_column: Any,
    parent_id: int,
    exclude_id: Optional[int] = None,
) -> None:
    query = select(model.id).where(
        name_equals(model.name, name),
        parent_column == parent_id,
        model.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError("name", name)


async def _active_company(db: AsyncSession, company_id: int) -> Company:
    company = await db.get(Company, company_id)
    if company is None or not company.is_active:
        raise BadRequestException(f"Invalid company: {company_id}.")
    return company


async def _overview(db: AsyncSession, query: Select, label: str) -> dict[str, int]:
    base = query.subquery()
    total = (await db.execute(select(func.count()).select_from(base))).scalar_one()
    active = (
        await db.execute(
            select(func.count()).select_from(base).where(base.c.is_active.is_(True))
        )
    ).scalar_one()
    return {
        f"total_{label}": total,
        f"active_{label}": active,
        f"inactive_{label}": total - active,
    }


async def _recent(db: AsyncSession, model: Any, query: Select, limit: int = 5) -> list[dict[str, Any]]:
    result = await db.execute(
        query.order_by(model.created_at.desc(), model.id.desc()).limit(limit)
    )
    return [
        {
            "id": obj.id,
            "name": obj.name,
            "created_at": obj.created_at.isoformat() if obj.created_at else None,
        }
        for obj in result.scalars().all()
    ]


async def _employee_counts(
    db: AsyncSession,
    model: Any,
    employee_fk: Any,
    query: Select,
    limit: int = 10,
) -> list[dict[str, Any]]:
    """Top *limit* rows of *query* ranked by active employee count."""
    ids = query.with_only_columns(model.id).where(model.is_active.is_(True))
    result = await db.execute(
        select(model.id, model.name, func.count(Employee.id).label("employee_count"))
        .outerjoin(Employee, (employee_fk == model.id) & Employee.is_active.is_(True))
        .where(model.id.in_(ids))
        .group_by(model.id, model.name)
        .order_by(func.count(Employee.id).desc(), model.name)
        .limit(limit)
    )
    return [
        {"id": row_id, "name": name, "employee_count": count}
        for row_id, name, count in result.all()
    ]


def _apply_changes(obj: Any, changes: dict[str, Any], actor_id: Optional[uuid.UUID]) -> dict[str, Any]:
    old_values = {field: getattr(obj, field) for field in changes}
    for field, value in changes.items():
        setattr(obj, field, value)
    obj.updated_by = actor_id
    return old_values


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:

    @staticmethod
    def to_response(department: Department) -> DepartmentResponse:
        out = DepartmentResponse.model_validate(department)
        out.company_name = department.company.name if department.company else None
        return out

    @staticmethod
    async def _load(db: AsyncSession, department_id: int) -> Optional[Department]:
        result = await db.execute(
            select(Department)
            .where(Department.id == department_id)
            .options(selectinload(Department.company))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_departments(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        company_id: Optional[int] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> list[Department]:
        query = (
            select(Department)
            .join(Company, Company.id == Department.company_id)
            .options(selectinload(Department.company))
        )
        query = scope.restrict(query, Department.company_id)
        company_id = scope.resolve_filter(company_id)
        if company_id is not None:
            query = query.where(Department.company_id == company_id)
        if not scope.show_inactive(include_inactive):
            query = query.where(Department.is_active.is_(True))
        if search:
            query = apply_search(query, Department, search, ["name", "name_bangla"])
        result = await db.execute(query.order_by(Company.name, Department.name))
        return list(result.scalars().all())

    @staticmethod
    async def by_company(db: AsyncSession, company_id: int, scope: CompanyScope) -> list[Department]:
        scope.ensure(company_id)
        return await DepartmentService.list_departments(db, scope, company_id=company_id)

    @staticmethod
    async def get_department(
        db: AsyncSession,
        department_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Department:
        department = await DepartmentService._load(db, department_id)
        if department is None:
            raise NotFoundException("Department", department_id)
        if scope is not None:
            scope.ensure(department.company_id)
            if not scope.is_admin and not department.is_active:
                raise NotFoundException("Department", department_id)
        return department

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Department:
        scope.ensure(data.company_id)
        await _active_company(db, data.company_id)
        await _ensure_unique_name(db, Department, data.name, Department.company_id, data.company_id)

        department = Department(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(department)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="department",
            entity_id=department.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await DepartmentService.get_department(db, department.id)

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: int,
        data: DepartmentUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Department:
        department = await DepartmentService.get_department(db, department_id, scope)
        changes = data.model_dump(exclude_unset=True)

        if _moves(department, changes, "company_id"):
            scope.ensure(changes["company_id"])
            await _active_company(db, changes["company_id"])
            await _ensure_not_referenced(
                db, "department", _DEPARTMENT_DEPENDANTS, department.id, action="move",
            )
        if "name" in changes or "company_id" in changes:
            await _ensure_unique_name(
                db,
                Department,
                changes.get("name") or department.name,
                Department.company_id,
                changes.get("company_id") or department.company_id,
                exclude_id=department.id,
            )

        old_values = _apply_changes(department, changes, actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="department",
            entity_id=department.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await DepartmentService.get_department(db, department.id)

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        department = await DepartmentService.get_department(db, department_id, scope)
        await _ensure_not_referenced(db, "department", _DEPARTMENT_DEPENDANTS, department.id)
        department.is_active = False
        department.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="department",
            entity_id=department.id,
            actor_id=actor_id,
            old_values={"name": department.name},
        )

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        query = scope.restrict(select(Department), Department.company_id)
        return {
            "overview": await _overview(db, query, "departments"),
            "employees_by_department": await _employee_counts(
                db, Department, Employee.department_id, query,
            ),
            "recent_departments": await _recent(db, Department, query),
        }


# ═════════════════════════════════════════════════════════════════════
# SectionService
# ═════════════════════════════════════════════════════════════════════


class SectionService:

    @staticmethod
    def to_response(section: Section) -> SectionResponse:
        out = SectionResponse.model_validate(section)
        department = section.department
        if department is not None:
            out.department_name = department.name
            out.company_id = department.company_id
            out.company_name = department.company.name if department.company else None
        return out

    @staticmethod
    def _base_query() -> Select:
        return (
            select(Section)
            .join(Department, Department.id == Section.department_id)
            .join(Company, Company.id == Department.company_id)
            .options(selectinload(Section.department).selectinload(Department.company))
        )

    @staticmethod
    async def _active_department(db: AsyncSession, department_id: int, scope: CompanyScope) -> Department:
        department = await db.get(Department, department_id)
        if department is None or not department.is_active:
            raise BadRequestException(f"Invalid department: {department_id}.")
        scope.ensure(department.company_id)
        return department

    @staticmethod
    async def list_sections(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        department_id: Optional[int] = None,
        company_id: Optional[int] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> list[Section]:
        query = scope.restrict(SectionService._base_query(), Department.company_id)
        company_id = scope.resolve_filter(company_id)
        if company_id is not None:
            query = query.where(Department.company_id == company_id)
        if department_id is not None:
            query = query.where(Section.department_id == department_id)
        if not scope.show_inactive(include_inactive):
            query = query.where(Section.is_active.is_(True))
        if search:
            query = apply_search(query, Section, search, ["name", "name_bangla"])
        result = await db.execute(query.order_by(Company.name, Department.name, Section.name))
        return list(result.scalars().all())

    @staticmethod
    async def by_department(db: AsyncSession, department_id: int, scope: CompanyScope) -> list[Section]:
        await DepartmentService.get_department(db, department_id, scope)
        return await SectionService.list_sections(db, scope, department_id=department_id)

    @staticmethod
    async def get_section(
        db: AsyncSession,
        section_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Section:
        result = await db.execute(
            SectionService._base_query()
            .where(Section.id == section_id)
            .execution_options(populate_existing=True)
        )
        section = result.scalars().first()
        if section is None:
            raise NotFoundException("Section", section_id)
        if scope is not None:
            scope.ensure(section.department.company_id)
            if not scope.is_admin and not section.is_active:
                raise NotFoundException("Section", section_id)
        return section

    @staticmethod
    async def create_section(
        db: AsyncSession,
        data: SectionCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Section:
        await SectionService._active_department(db, data.department_id, scope)
        await _ensure_unique_name(db, Section, data.name, Section.department_id, data.department_id)

        section = Section(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(section)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="section",
            entity_id=section.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await SectionService.get_section(db, section.id)

    @staticmethod
    async def update_section(
        db: AsyncSession,
        section_id: int,
        data: SectionUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Section:
        section = await SectionService.get_section(db, section_id, scope)
        changes = data.model_dump(exclude_unset=True)

        if _moves(section, changes, "department_id"):
            await SectionService._active_department(db, changes["department_id"], scope)
            await _ensure_not_referenced(
                db, "section", _SECTION_DEPENDANTS, section.id, action="move",
            )
        if "name" in changes or "department_id" in changes:
            await _ensure_unique_name(
                db,
                Section,
                changes.get("name") or section.name,
                Section.department_id,
                changes.get("department_id") or section.department_id,
                exclude_id=section.id,
            )

        old_values = _apply_changes(section, changes, actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="section",
            entity_id=section.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await SectionService.get_section(db, section.id)

    @staticmethod
    async def delete_section(
        db: AsyncSession,
        section_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        section = await SectionService.get_section(db, section_id, scope)
        await _ensure_not_referenced(db, "section", _SECTION_DEPENDANTS, section.id)
        section.is_active = False
        section.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="section",
            entity_id=section.id,
            actor_id=actor_id,
            old_values={"name": section.name},
        )

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        query = scope.restrict(
            select(Section).join(Department, Department.id == Section.department_id),
            Department.company_id,
        )
        by_department = await db.execute(
            select(Department.name, func.count(Section.id))
            .join(Section, Section.department_id == Department.id)
            .where(Section.id.in_(query.with_only_columns(Section.id)), Section.is_active.is_(True))
            .group_by(Department.name)
            .order_by(func.count(Section.id).desc(), Department.name)
        )
        return {
            "overview": await _overview(db, query, "sections"),
            "sections_by_department": [
                {"department_name": name, "count": count} for name, count in by_department.all()
            ],
            "employees_by_section": await _employee_counts(db, Section, Employee.section_id, query),
            "recent_sections": await _recent(db, Section, query),
        }


# ═════════════════════════════════════════════════════════════════════
# DesignationService
# ═════════════════════════════════════════════════════════════════════


class DesignationService:

    @staticmethod
    def to_response(designation: Designation) -> DesignationResponse:
        out = DesignationResponse.model_validate(designation)
        section = designation.section
        if section is not None:
            out.section_name = section.name
            out.department_id = section.department_id
            department = section.department
            if department is not None:
                out.department_name = department.name
                out.company_id = department.company_id
                out.company_name = department.company.name if department.company else None
        return out

    @staticmethod
    def _base_query() -> Select:
        return (
            select(Designation)
            .join(Section, Section.id == Designation.section_id)
            .join(Department, Department.id == Section.department_id)
            .join(Company, Company.id == Department.company_id)
            .options(
                selectinload(Designation.section)
                .selectinload(Section.department)
                .selectinload(Department.company)
            )
        )

    @staticmethod
    async def _active_section(db: AsyncSession, section_id: int, scope: CompanyScope) -> Section:
        result = await db.execute(
            select(Section)
            .where(Section.id == section_id)
            .options(selectinload(Section.department))
        )
        section = result.scalars().first()
        if section is None or not section.is_active:
            raise BadRequestException(f"Invalid section: {section_id}.")
        scope.ensure(section.department.company_id)
        return section

    @staticmethod
    async def list_designations(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        section_id: Optional[int] = None,
        department_id: Optional[int] = None,
        company_id: Optional[int] = None,
        grade: Optional[str] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> list[Designation]:
        query = scope.restrict(DesignationService._base_query(), Department.company_id)
        company_id = scope.resolve_filter(company_id)
        if company_id is not None:
            query = query.where(Department.company_id == company_id)
        if department_id is not None:
            query = query.where(Section.department_id == department_id)
        if section_id is not None:
            query = query.where(Designation.section_id == section_id)
        if grade:
            query = query.where(name_equals(Designation.grade, grade))
        if not scope.show_inactive(include_inactive):
            query = query.where(Designation.is_active.is_(True))
        if search:
            query = apply_search(query, Designation, search, ["name", "name_bangla", "grade"])
        result = await db.execute(
            query.order_by(Company.name, Department.name, Section.name, Designation.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def by_section(db: AsyncSession, section_id: int, scope: CompanyScope) -> list[Designation]:
        await SectionService.get_section(db, section_id, scope)
        return await DesignationService.list_designations(db, scope, section_id=section_id)

    @staticmethod
    async def get_designation(
        db: AsyncSession,
        designation_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Designation:
        result = await db.execute(
            DesignationService._base_query()
            .where(Designation.id == designation_id)
            .execution_options(populate_existing=True)
        )
        designation = result.scalars().first()
        if designation is None:
            raise NotFoundException("Designation", designation_id)
        if scope is not None:
            scope.ensure(designation.section.department.company_id)
            if not scope.is_admin and not designation.is_active:
                raise NotFoundException("Designation", designation_id)
        return designation

    @staticmethod
    async def create_designation(
        db: AsyncSession,
        data: DesignationCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Designation:
        await DesignationService._active_section(db, data.section_id, scope)
        await _ensure_unique_name(
            db, Designation, data.name, Designation.section_id, data.section_id,
        )

        designation = Designation(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(designation)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="designation",
            entity_id=designation.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await DesignationService.get_designation(db, designation.id)

    @staticmethod
    async def update_designation(
        db: AsyncSession,
        designation_id: int,
        data: DesignationUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Designation:
        designation = await DesignationService.get_designation(db, designation_id, scope)
        changes = data.model_dump(exclude_unset=True)

        if _moves(designation, changes, "section_id"):
            await DesignationService._active_section(db, changes["section_id"], scope)
            await _ensure_not_referenced(
                db, "designation", _DESIGNATION_DEPENDANTS, designation.id, action="move",
            )
        if "name" in changes or "section_id" in changes:
            await _ensure_unique_name(
                db,
                Designation,
                changes.get("name") or designation.name,
                Designation.section_id,
                changes.get("section_id") or designation.section_id,
                exclude_id=designation.id,
            )

        old_values = _apply_changes(designation, changes, actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="designation",
            entity_id=designation.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await DesignationService.get_designation(db, designation.id)

    @staticmethod
    async def delete_designation(
        db: AsyncSession,
        designation_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        designation = await DesignationService.get_designation(db, designation_id, scope)
        await _ensure_not_referenced(db, "designation", _DESIGNATION_DEPENDANTS, designation.id)
        designation.is_active = False
        designation.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="designation",
            entity_id=designation.id,
            actor_id=actor_id,
            old_values={"name": designation.name},
        )

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        query = scope.restrict(
            select(Designation)
            .join(Section, Section.id == Designation.section_id)
            .join(Department, Department.id == Section.department_id),
            Department.company_id,
        )
        by_grade = await db.execute(
            select(Designation.grade, func.count(Designation.id))
            .where(
                Designation.id.in_(query.with_only_columns(Designation.id)),
                Designation.is_active.is_(True),
            )
            .group_by(Designation.grade)
            .order_by(Designation.grade)
        )
        return {
            "overview": await _overview(db, query, "designations"),
            "grade_distribution": [
                {"grade": grade, "count": count} for grade, count in by_grade.all()
            ],
            "employees_by_designation": await _employee_counts(
                db, Designation, Employee.designation_id, query,
            ),
            "recent_designations": await _recent(db, Designation, query),
        }


# ═════════════════════════════════════════════════════════════════════
# Company-owned lookups: Degree & Line
# ═════════════════════════════════════════════════════════════════════


async def _list_company_owned(
    db: AsyncSession,
    model: Any,
    scope: CompanyScope,
    *,
    company_id: Optional[int],
    include_inactive: bool,
    search: Optional[str],
    search_columns: list[str],
    filters: Optional[dict[str, Any]] = None,
) -> list[Any]:
    query = (
        select(model)
        .join(Company, Company.id == model.company_id)
        .options(selectinload(model.company))
    )
    query = scope.restrict(query, model.company_id)
    company_id = scope.resolve_filter(company_id)
    if company_id is not None:
        query = query.where(model.company_id == company_id)
    for field, value in (filters or {}).items():
        if value:
            query = query.where(name_equals(getattr(model, field), value))
    if not scope.show_inactive(include_inactive):
        query = query.where(model.is_active.is_(True))
    if search:
        query = apply_search(query, model, search, search_columns)
    result = await db.execute(query.order_by(Company.name, model.name))
    return list(result.scalars().all())


async def _get_company_owned(
    db: AsyncSession,
    model: Any,
    entity_type: str,
    row_id: int,
    scope: Optional[CompanyScope],
) -> Any:
    result = await db.execute(
        select(model)
        .where(model.id == row_id)
        .options(selectinload(model.company))
        .execution_options(populate_existing=True)
    )
    obj = result.scalars().first()
    if obj is None:
        raise NotFoundException(entity_type, row_id)
    if scope is not None:
        scope.ensure(obj.company_id)
        if not scope.is_admin and not obj.is_active:
            raise NotFoundException(entity_type, row_id)
    return obj


class DegreeService:

    @staticmethod
    def to_response(degree: Degree) -> DegreeResponse:
        out = DegreeResponse.model_validate(degree)
        out.company_name = degree.company.name if degree.company else None
        return out

    @staticmethod
    def common_degrees() -> list[CommonDegree]:
        return [
            CommonDegree(
                name=name,
                name_bangla=name_bn,
                level=level,
                level_bangla=level_bn,
                institution_type=inst,
                institution_type_bangla=inst_bn,
            )
            for name, name_bn, level, level_bn, inst, inst_bn in COMMON_DEGREES
        ]

    @staticmethod
    async def list_degrees(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        company_id: Optional[int] = None,
        level: Optional[str] = None,
        institution_type: Optional[str] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> list[Degree]:
        return await _list_company_owned(
            db,
            Degree,
            scope,
            company_id=company_id,
            include_inactive=include_inactive,
            search=search,
            search_columns=["name", "name_bangla", "level"],
            filters={"level": level, "institution_type": institution_type},
        )

    @staticmethod
    async def get_degree(
        db: AsyncSession,
        degree_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Degree:
        return await _get_company_owned(db, Degree, "Degree", degree_id, scope)

    @staticmethod
    async def create_degree(
        db: AsyncSession,
        data: DegreeCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Degree:
        scope.ensure(data.company_id)
        await _active_company(db, data.company_id)
        await _ensure_unique_name(db, Degree, data.name, Degree.company_id, data.company_id)

        degree = Degree(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(degree)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="degree",
            entity_id=degree.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await DegreeService.get_degree(db, degree.id)

    @staticmethod
    async def update_degree(
        db: AsyncSession,
        degree_id: int,
        data: DegreeUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Degree:
        degree = await DegreeService.get_degree(db, degree_id, scope)
        changes = data.model_dump(exclude_unset=True)

        if _moves(degree, changes, "company_id"):
            scope.ensure(changes["company_id"])
            await _active_company(db, changes["company_id"])
            await _ensure_not_referenced(
                db, "degree", _DEGREE_DEPENDANTS, degree.id, action="move",
            )
        if "name" in changes or "company_id" in changes:
            await _ensure_unique_name(
                db,
                Degree,
                changes.get("name") or degree.name,
                Degree.company_id,
                changes.get("company_id") or degree.company_id,
                exclude_id=degree.id,
            )

        old_values = _apply_changes(degree, changes, actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="degree",
            entity_id=degree.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await DegreeService.get_degree(db, degree.id)

    @staticmethod
    async def delete_degree(
        db: AsyncSession,
        degree_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        degree = await DegreeService.get_degree(db, degree_id, scope)
        await _ensure_not_referenced(db, "degree", _DEGREE_DEPENDANTS, degree.id)
        degree.is_active = False
        degree.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="degree",
            entity_id=degree.id,
            actor_id=actor_id,
            old_values={"name": degree.name},
        )

    @staticmethod
    async def statistics(db: AsyncSession, scope: CompanyScope) -> dict[str, Any]:
        query = scope.restrict(select(Degree), Degree.company_id)
        by_level = await db.execute(
            select(Degree.level, func.count(Degree.id))
            .where(Degree.id.in_(query.with_only_columns(Degree.id)), Degree.is_active.is_(True))
            .group_by(Degree.level)
            .order_by(func.count(Degree.id).desc(), Degree.level)
        )
        return {
            "overview": await _overview(db, query, "degrees"),
            "degrees_by_level": [{"level": lvl, "count": count} for lvl, count in by_level.all()],
            "recent_degrees": await _recent(db, Degree, query),
        }


class LineService:

    @staticmethod
    def to_response(line: Line) -> LineResponse:
        out = LineResponse.model_validate(line)
        out.company_name = line.company.name if line.company else None
        return out

    @staticmethod
    async def list_lines(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        company_id: Optional[int] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> list[Line]:
        return await _list_company_owned(
            db,
            Line,
            scope,
            company_id=company_id,
            include_inactive=include_inactive,
            search=search,
            search_columns=["name", "name_bangla"],
        )

    @staticmethod
    async def get_line(
        db: AsyncSession,
        line_id: int,
        scope: Optional[CompanyScope] = None,
    ) -> Line:
        return await _get_company_owned(db, Line, "Line", line_id, scope)

    @staticmethod
    async def create_line(
        db: AsyncSession,
        data: LineCreate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Line:
        scope.ensure(data.company_id)
        await _active_company(db, data.company_id)
        await _ensure_unique_name(db, Line, data.name, Line.company_id, data.company_id)

        line = Line(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(line)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="line",
            entity_id=line.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await LineService.get_line(db, line.id)

    @staticmethod
    async def update_line(
        db: AsyncSession,
        line_id: int,
        data: LineUpdate,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Line:
        line = await LineService.get_line(db, line_id, scope)
        changes = data.model_dump(exclude_unset=True)

        if _moves(line, changes, "company_id"):
            scope.ensure(changes["company_id"])
            await _active_company(db, changes["company_id"])
            await _ensure_not_referenced(
                db, "line", _LINE_DEPENDANTS, line.id, action="move",
            )
        if "name" in changes or "company_id" in changes:
            await _ensure_unique_name(
                db,
                Line,
                changes.get("name") or line.name,
                Line.company_id,
                changes.get("company_id") or line.company_id,
                exclude_id=line.id,
            )

        old_values = _apply_changes(line, changes, actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="line",
            entity_id=line.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return await LineService.get_line(db, line.id)

    @staticmethod
    async def delete_line(
        db: AsyncSession,
        line_id: int,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        line = await LineService.get_line(db, line_id, scope)
        await _ensure_not_referenced(db, "line", _LINE_DEPENDANTS, line.id)
        line.is_active = False
        line.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="line",
            entity_id=line.id,
            actor_id=actor_id,
            old_values={"name": line.name},
        )
