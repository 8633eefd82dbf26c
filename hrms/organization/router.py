"""Organisation router — departments, sections, designations, degrees and lines.

Routes:
    /departments                        — List, create
    /departments/statistics             — Overview + employee counts
    /departments/by-company/{id}        — Active departments of a company
    /departments/{id}                   — Get, update, delete
    /sections                           — List, create
    /sections/statistics
    /sections/by-department/{id}
    /sections/{id}                      — Get, update, delete
    /designations                       — List, create
    /designations/statistics            — Grade distribution
    /designations/by-section/{id}
    /designations/{id}                  — Get, update, delete
    /degrees                            — List, create
    /degrees/common                     — Built-in Bangladesh degree templates (public)
    /degrees/statistics
    /degrees/{id}                       — Get, update, delete
    /lines                              — List, create
    /lines/{id}                         — Get, update, delete
"""


from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope, get_company_scope, require_role
from hrms.auth.models import User
from hrms.common.constants import (
    HR_WRITE_ROLES,
    ORG_DELETE_ROLES,
    ORG_READ_ROLES,
    ORG_WRITE_ROLES,
    UserRole,
)
from hrms.database import get_db
from hrms.organization.schemas import (
    DegreeCreate,
    DegreeUpdate,
    DepartmentCreate,
    DepartmentUpdate,
    DesignationCreate,
    DesignationUpdate,
    LineCreate,
    LineUpdate,
    SectionCreate,
    SectionUpdate,
)
from hrms.organization.service import (
    DegreeService,
    DepartmentService,
    DesignationService,
    LineService,
    SectionService,
)


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

departments_router = APIRouter(prefix="", tags=["departments"])
sections_router = APIRouter(prefix="", tags=["sections"])
designations_router = APIRouter(prefix="", tags=["designations"])
degrees_router = APIRouter(prefix="", tags=["degrees"])
lines_router = APIRouter(prefix="", tags=["lines"])


def _found(items: list) -> str:
    return f"Found {len(items)} record(s)."


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
    company_id: Optional[int] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
    search: Optional[str] = Query(None),
):
    items = await DepartmentService.list_departments(
        db, scope, company_id=company_id, include_inactive=include_inactive, search=search,
    )
    return {
        "data": [DepartmentService.to_response(d).model_dump(mode="json") for d in items],
        "message": _found(items),
    }


# NOTE: static paths are declared before /{department_id}

@departments_router.get("/statistics")
async def department_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await DepartmentService.statistics(db, scope)
    return {"data": stats, "message": "Department statistics retrieved successfully."}


@departments_router.get("/by-company/{company_id}")
async def departments_by_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    items = await DepartmentService.by_company(db, company_id, scope)
    return {
        "data": [DepartmentService.to_response(d).model_dump(mode="json") for d in items],
        "message": _found(items),
    }


@departments_router.get("/{department_id}")
async def get_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    department = await DepartmentService.get_department(db, department_id, scope)
    return {
        "data": DepartmentService.to_response(department).model_dump(mode="json"),
        "message": "Department retrieved successfully.",
    }


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    department = await DepartmentService.create_department(
        db, body, scope, actor_id=current_user.id,
    )
    return {
        "data": DepartmentService.to_response(department).model_dump(mode="json"),
        "message": "Department created successfully.",
    }


@departments_router.put("/{department_id}")
async def update_department(
    department_id: int,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    department = await DepartmentService.update_department(
        db, department_id, body, scope, actor_id=current_user.id,
    )
    return {
        "data": DepartmentService.to_response(department).model_dump(mode="json"),
        "message": "Department updated successfully.",
    }


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_DELETE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await DepartmentService.delete_department(db, department_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Department deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# Section Endpoints
# ═════════════════════════════════════════════════════════════════════


@sections_router.get("")
async def list_sections(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
    department_id: Optional[int] = Query(None),
    company_id: Optional[int] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
    search: Optional[str] = Query(None),
):
    items = await SectionService.list_sections(
        db,
        scope,
        department_id=department_id,
        company_id=company_id,
        include_inactive=include_inactive,
        search=search,
    )
    return {
        "data": [SectionService.to_response(s).model_dump(mode="json") for s in items],
        "message": _found(items),
    }


@sections_router.get("/statistics")
async def section_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await SectionService.statistics(db, scope)
    return {"data": stats, "message": "Section statistics retrieved successfully."}


@sections_router.get("/by-department/{department_id}")
async def sections_by_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    items = await SectionService.by_department(db, department_id, scope)
    return {
        "data": [SectionService.to_response(s).model_dump(mode="json") for s in items],
        "message": _found(items),
    }


@sections_router.get("/{section_id}")
async def get_section(
    section_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    section = await SectionService.get_section(db, section_id, scope)
    return {
        "data": SectionService.to_response(section).model_dump(mode="json"),
        "message": "Section retrieved successfully.",
    }


@sections_router.post("", status_code=201)
async def create_section(
    body: SectionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    section = await SectionService.create_section(db, body, scope, actor_id=current_user.id)
    return {
        "data": SectionService.to_response(section).model_dump(mode="json"),
        "message": "Section created successfully.",
    }


@sections_router.put("/{section_id}")
async def update_section(
    section_id: int,
    body: SectionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    section = await SectionService.update_section(
        db, section_id, body, scope, actor_id=current_user.id,
    )
    return {
        "data": SectionService.to_response(section).model_dump(mode="json"),
        "message": "Section updated successfully.",
    }


@sections_router.delete("/{section_id}")
async def delete_section(
    section_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_DELETE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await SectionService.delete_section(db, section_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Section deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# Designation Endpoints
# ═════════════════════════════════════════════════════════════════════


@designations_router.get("")
async def list_designations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
    section_id: Optional[int] = Query(None),
    department_id: Optional[int] = Query(None),
    company_id: Optional[int] = Query(None),
    grade: Optional[str] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
    search: Optional[str] = Query(None),
):
    items = await DesignationService.list_designations(
        db,
        scope,
        section_id=section_id,
        department_id=department_id,
        company_id=company_id,
        grade=grade,
        include_inactive=include_inactive,
        search=search,
    )
    return {
        "data": [DesignationService.to_response(d).model_dump(mode="json") for d in items],
        "message": _found(items),
    }


@designations_router.get("/statistics")
async def designation_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await DesignationService.statistics(db, scope)
    return {"data": stats, "message": "Designation statistics retrieved successfully."}


@designations_router.get("/by-section/{section_id}")
async def designations_by_section(
    section_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    items = await DesignationService.by_section(db, section_id, scope)
    return {
        "data": [DesignationService.to_response(d).model_dump(mode="json") for d in items],
        "message": _found(items),
    }


@designations_router.get("/{designation_id}")
async def get_designation(
    designation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    designation = await DesignationService.get_designation(db, designation_id, scope)
    return {
        "data": DesignationService.to_response(designation).model_dump(mode="json"),
        "message": "Designation retrieved successfully.",
    }


@designations_router.post("", status_code=201)
async def create_designation(
    body: DesignationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    designation = await DesignationService.create_designation(
        db, body, scope, actor_id=current_user.id,
    )
    return {
        "data": DesignationService.to_response(designation).model_dump(mode="json"),
        "message": "Designation created successfully.",
    }


@designations_router.put("/{designation_id}")
async def update_designation(
    designation_id: int,
    body: DesignationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    designation = await DesignationService.update_designation(
        db, designation_id, body, scope, actor_id=current_user.id,
    )
    return {
        "data": DesignationService.to_response(designation).model_dump(mode="json"),
        "message": "Designation updated successfully.",
    }


@designations_router.delete("/{designation_id}")
async def delete_designation(
    designation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_DELETE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await DesignationService.delete_designation(
        db, designation_id, scope, actor_id=current_user.id,
    )
    return {"data": None, "message": "Designation deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# Degree Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /degrees/common — public template list ──────────────────────

@degrees_router.get("/common")
async def common_degrees():
    degrees = DegreeService.common_degrees()
    return {
        "data": [d.model_dump() for d in degrees],
        "message": f"Found {len(degrees)} common degree(s).",
    }


@degrees_router.get("")
async def list_degrees(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
    company_id: Optional[int] = Query(None),
    level: Optional[str] = Query(None),
    institution_type: Optional[str] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
    search: Optional[str] = Query(None),
):
    items = await DegreeService.list_degrees(
        db,
        scope,
        company_id=company_id,
        level=level,
        institution_type=institution_type,
        include_inactive=include_inactive,
        search=search,
    )
    return {
        "data": [DegreeService.to_response(d).model_dump(mode="json") for d in items],
        "message": _found(items),
    }


@degrees_router.get("/statistics")
async def degree_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await DegreeService.statistics(db, scope)
    return {"data": stats, "message": "Degree statistics retrieved successfully."}


@degrees_router.get("/{degree_id}")
async def get_degree(
    degree_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    degree = await DegreeService.get_degree(db, degree_id, scope)
    return {
        "data": DegreeService.to_response(degree).model_dump(mode="json"),
        "message": "Degree retrieved successfully.",
    }


@degrees_router.post("", status_code=201)
async def create_degree(
    body: DegreeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    degree = await DegreeService.create_degree(db, body, scope, actor_id=current_user.id)
    return {
        "data": DegreeService.to_response(degree).model_dump(mode="json"),
        "message": "Degree created successfully.",
    }


@degrees_router.put("/{degree_id}")
async def update_degree(
    degree_id: int,
    body: DegreeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*HR_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    degree = await DegreeService.update_degree(db, degree_id, body, scope, actor_id=current_user.id)
    return {
        "data": DegreeService.to_response(degree).model_dump(mode="json"),
        "message": "Degree updated successfully.",
    }


@degrees_router.delete("/{degree_id}")
async def delete_degree(
    degree_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await DegreeService.delete_degree(db, degree_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Degree deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# Line Endpoints
# ═════════════════════════════════════════════════════════════════════


@lines_router.get("")
async def list_lines(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
    company_id: Optional[int] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
    search: Optional[str] = Query(None),
):
    items = await LineService.list_lines(
        db, scope, company_id=company_id, include_inactive=include_inactive, search=search,
    )
    return {
        "data": [LineService.to_response(line).model_dump(mode="json") for line in items],
        "message": _found(items),
    }


@lines_router.get("/{line_id}")
async def get_line(
    line_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_READ_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    line = await LineService.get_line(db, line_id, scope)
    return {
        "data": LineService.to_response(line).model_dump(mode="json"),
        "message": "Line retrieved successfully.",
    }


@lines_router.post("", status_code=201)
async def create_line(
    body: LineCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    line = await LineService.create_line(db, body, scope, actor_id=current_user.id)
    return {
        "data": LineService.to_response(line).model_dump(mode="json"),
        "message": "Line created successfully.",
    }


@lines_router.put("/{line_id}")
async def update_line(
    line_id: int,
    body: LineUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_WRITE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    line = await LineService.update_line(db, line_id, body, scope, actor_id=current_user.id)
    return {
        "data": LineService.to_response(line).model_dump(mode="json"),
        "message": "Line updated successfully.",
    }


@lines_router.delete("/{line_id}")
async def delete_line(
    line_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(*ORG_DELETE_ROLES)),
    scope: CompanyScope = Depends(get_company_scope),
):
    await LineService.delete_line(db, line_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Line deleted successfully."}
