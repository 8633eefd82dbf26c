"""Companies router.

Routes:
    GET    /companies              — List (scoped)
    GET    /companies/my           — Caller's accessible companies
    GET    /companies/statistics   — Overview, countries, recent
    GET    /companies/{id}         — Detail (scoped)
    POST   /companies              — Create (Admin)
    PUT    /companies/{id}         — Update (Admin)
    DELETE /companies/{id}         — Soft delete (Admin)
"""


from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope, get_company_scope, require_role
from hrms.auth.models import User
from hrms.common.constants import UserRole
from hrms.companies.schemas import CompanyCreate, CompanyResponse, CompanyUpdate
from hrms.companies.service import CompanyService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["companies"])


# ── GET /companies — List companies ─────────────────────────────────

@router.get("")
async def list_companies(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
    search: Optional[str] = Query(None, description="Search by name, code or city"),
    include_inactive: bool = Query(False, description="Admin only"),
):
    companies = await CompanyService.list_companies(
        db, scope, search=search, include_inactive=include_inactive,
    )
    return {
        "data": [CompanyResponse.model_validate(c).model_dump(mode="json") for c in companies],
        "message": f"Found {len(companies)} company(ies).",
    }


# NOTE: static paths before /{company_id}

@router.get("/my")
async def my_companies(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
):
    companies = await CompanyService.my_companies(db, scope)
    return {
        "data": [CompanyResponse.model_validate(c).model_dump(mode="json") for c in companies],
        "message": f"Found {len(companies)} company(ies).",
    }


@router.get("/statistics")
async def company_statistics(
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
):
    stats = await CompanyService.statistics(db, scope)
    return {"data": stats, "message": "Company statistics retrieved successfully."}


# ── GET /companies/{id} ─────────────────────────────────────────────

@router.get("/{company_id}")
async def get_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
    scope: CompanyScope = Depends(get_company_scope),
):
    company = await CompanyService.get_company(db, company_id, scope)
    return {
        "data": CompanyResponse.model_validate(company).model_dump(mode="json"),
        "message": "Company retrieved successfully.",
    }


# ── POST /companies — Create ────────────────────────────────────────

@router.post("", status_code=201)
async def create_company(
    body: CompanyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    company = await CompanyService.create_company(db, body, actor_id=current_user.id)
    return {
        "data": CompanyResponse.model_validate(company).model_dump(mode="json"),
        "message": "Company created successfully.",
    }


# ── PUT /companies/{id} — Update ────────────────────────────────────

@router.put("/{company_id}")
async def update_company(
    company_id: int,
    body: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    company = await CompanyService.update_company(db, company_id, body, actor_id=current_user.id)
    return {
        "data": CompanyResponse.model_validate(company).model_dump(mode="json"),
        "message": "Company updated successfully.",
    }


# ── DELETE /companies/{id} — Soft delete ────────────────────────────

@router.delete("/{company_id}")
async def delete_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    await CompanyService.delete_company(db, company_id, actor_id=current_user.id)
    return {"data": None, "message": "Company deleted successfully."}
