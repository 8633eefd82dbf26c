"""Auth router — login, token refresh/revoke/validate, profile, roles, company
assignment, and user administration.

Routes (auth_router, mounted at /auth):
    POST /login                               — Password login, returns JWT pair
    POST /register                            — Create user (Admin)
    POST /refresh-token                       — Rotate refresh token
    POST /revoke-token                        — Revoke all own sessions
    POST /logout                              — Revoke current session
    POST /validate-token                      — Inspect an access token
    GET  /profile, PUT /profile               — Own profile
    POST /change-password                     — Own password
    POST /assign-role                         — Grant role (Admin)
    POST /assign-company                      — Link user to company (Admin)
    POST /assign-multiple-users-to-company    — (Admin)
    POST /assign-multiple-companies-to-user   — (Admin)
    GET  /user/{id}/companies                 — Admin or self
    DELETE /user/{id}/companies/{company_id}  — (Admin)

Routes (users_router, mounted at /users, Admin only):
    GET /, GET /statistics, GET /roles, GET/PUT/DELETE /{id},
    PUT /{id}/status, DELETE /{id}/permanent, GET/PUT /{id}/roles
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth import service as auth_service
from hrms.auth.dependencies import get_current_user, is_admin, require_role
from hrms.auth.models import User
from hrms.auth.schemas import (
    AssignCompaniesToUserRequest,
    AssignCompanyRequest,
    AssignRoleRequest,
    AssignUsersToCompanyRequest,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    TokenResponse,
    UserRolesUpdate,
    UserStatusUpdate,
    UserUpdate,
    ValidateTokenRequest,
)
from hrms.auth.service import UserService
from hrms.common.audit import create_audit_entry
from hrms.common.constants import UserRole
from hrms.common.exceptions import ForbiddenException
from hrms.common.pagination import PaginationParams
from hrms.common.rate_limit import LOGIN_RATE_LIMIT, limiter
from hrms.database import get_db

router = APIRouter(prefix="", tags=["auth"])
users_router = APIRouter(prefix="", tags=["users"])


def _client(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def _expires_in(expires_at: datetime) -> int:
    return max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))


# ═════════════════════════════════════════════════════════════════════
# Tokens
# ═════════════════════════════════════════════════════════════════════


# ── POST /login — Email + password login ────────────────────────────

@router.post("/login")
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    ip, user_agent = _client(request)
    user, access_token, refresh_token, expires_at = await auth_service.login(
        db, body.email, body.password, ip, user_agent,
    )
    token = TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=_expires_in(expires_at),
        expires_at=expires_at,
        user=await auth_service.build_user_info(db, user),
    )
    return {"data": token.model_dump(mode="json"), "message": "Login successful."}


# ── POST /register — Create a user (Admin) ─────────────────────────

@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    user = await auth_service.register_user(db, body, actor_id=current_user.id)
    info = await auth_service.build_user_info(db, user)
    return {"data": info.model_dump(mode="json"), "message": "User registered successfully."}


# ── POST /refresh-token — Rotate the refresh token ─────────────────

@router.post("/refresh-token")
async def refresh_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    access_token, new_refresh, expires_at = await auth_service.refresh_session(
        db, body.refresh_token, body.access_token,
    )
    token = RefreshResponse(
        access_token=access_token,
        refresh_token=new_refresh,
        expires_in=_expires_in(expires_at),
        expires_at=expires_at,
    )
    return {"data": token.model_dump(mode="json"), "message": "Token refreshed successfully."}


# ── POST /revoke-token — Revoke every session of the caller ─────────

@router.post("/revoke-token")
async def revoke_token(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = await auth_service.revoke_all_user_sessions(db, current_user.id)
    return {"data": {"revoked_sessions": count}, "message": "Tokens revoked successfully."}


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await auth_service.revoke_session(db, request.state.token_hash)
    ip, user_agent = _client(request)
    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=current_user.id,
        actor_id=current_user.id,
        ip_address=ip,
        user_agent=user_agent,
    )
    return {"data": None, "message": "Logged out successfully."}


# ── POST /validate-token — Inspect an access token ─────────────────

@router.post("/validate-token")
async def validate_token(
    body: ValidateTokenRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await auth_service.validate_token(db, body.token)
    message = "Token is valid." if result.is_valid else "Token is invalid."
    return {"data": result.model_dump(mode="json"), "message": message}


# ═════════════════════════════════════════════════════════════════════
# Profile
# ═════════════════════════════════════════════════════════════════════


@router.get("/profile")
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    info = await auth_service.build_user_info(db, current_user)
    return {"data": info.model_dump(mode="json"), "message": "Profile retrieved successfully."}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await auth_service.update_profile(db, current_user, body)
    info = await auth_service.build_user_info(db, user)
    return {"data": info.model_dump(mode="json"), "message": "Profile updated successfully."}


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await auth_service.change_password(db, current_user, body.current_password, body.new_password)
    return {"data": None, "message": "Password changed successfully."}


# ═════════════════════════════════════════════════════════════════════
# Roles & company assignment (Admin)
# ═════════════════════════════════════════════════════════════════════


@router.post("/assign-role")
async def assign_role(
    body: AssignRoleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    roles = await auth_service.assign_role(db, body.email, body.role, actor_id=current_user.id)
    return {
        "data": {"email": body.email, "roles": roles},
        "message": f"Role '{body.role}' assigned successfully.",
    }


@router.post("/assign-company")
async def assign_company(
    body: AssignCompanyRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    await auth_service.assign_company(db, body.user_id, body.company_id, actor_id=current_user.id)
    companies = await auth_service.list_user_companies(db, body.user_id)
    return {
        "data": [c.model_dump(mode="json") for c in companies],
        "message": "Company assigned successfully.",
    }


@router.post("/assign-multiple-users-to-company")
async def assign_users_to_company(
    body: AssignUsersToCompanyRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    for user_id in dict.fromkeys(body.user_ids):
        await auth_service.assign_company(db, user_id, body.company_id, actor_id=current_user.id)
    return {
        "data": {"company_id": body.company_id, "assigned_users": len(set(body.user_ids))},
        "message": "Users assigned to company successfully.",
    }


@router.post("/assign-multiple-companies-to-user")
async def assign_companies_to_user(
    body: AssignCompaniesToUserRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    for company_id in dict.fromkeys(body.company_ids):
        await auth_service.assign_company(db, body.user_id, company_id, actor_id=current_user.id)
    companies = await auth_service.list_user_companies(db, body.user_id)
    return {
        "data": [c.model_dump(mode="json") for c in companies],
        "message": "Companies assigned to user successfully.",
    }


@router.get("/user/{user_id}/companies")
async def get_user_companies(
    user_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not is_admin(request) and current_user.id != user_id:
        raise ForbiddenException(detail="You can only view your own companies.")
    companies = await auth_service.list_user_companies(db, user_id)
    return {
        "data": [c.model_dump(mode="json") for c in companies],
        "message": f"Found {len(companies)} company(ies).",
    }


@router.delete("/user/{user_id}/companies/{company_id}")
async def remove_user_company(
    user_id: uuid.UUID,
    company_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    await auth_service.remove_company(db, user_id, company_id, actor_id=current_user.id)
    return {"data": None, "message": "Company removed from user successfully."}


# ═════════════════════════════════════════════════════════════════════
# User administration (Admin)
# ═════════════════════════════════════════════════════════════════════


# ── GET /users — List users ─────────────────────────────────────────

@users_router.get("")
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name or email"),
    role: Optional[str] = Query(None, description="Filter by role name"),
    department: Optional[str] = Query(None),
    company_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    result = await UserService.list_users(
        db,
        pagination,
        search=search,
        role=role,
        department=department,
        company_id=company_id,
        is_active=is_active,
    )
    items = [await auth_service.build_user_info(db, u) for u in result.data]
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": result.meta.model_dump(),
    }


# NOTE: static paths are declared before /{user_id}

@users_router.get("/statistics")
async def user_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    stats = await UserService.statistics(db)
    return {"data": stats, "message": "User statistics retrieved successfully."}


@users_router.get("/roles")
async def list_roles(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    roles = await UserService.list_roles(db)
    return {"data": roles, "message": f"Found {len(roles)} role(s)."}


@users_router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    user = await auth_service.get_user(db, user_id)
    info = await auth_service.build_user_info(db, user)
    return {"data": info.model_dump(mode="json"), "message": "User retrieved successfully."}


@users_router.put("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    user = await UserService.update_user(db, user_id, body, actor_id=current_user.id)
    info = await auth_service.build_user_info(db, user)
    return {"data": info.model_dump(mode="json"), "message": "User updated successfully."}


@users_router.put("/{user_id}/status")
async def set_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    user = await UserService.set_status(db, user_id, body.is_active, actor_id=current_user.id)
    state = "activated" if user.is_active else "deactivated"
    return {"data": {"id": str(user.id), "is_active": user.is_active}, "message": f"User {state}."}


@users_router.delete("/{user_id}")
async def deactivate_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    await UserService.set_status(db, user_id, False, actor_id=current_user.id)
    return {"data": None, "message": "User deactivated successfully."}


@users_router.delete("/{user_id}/permanent")
async def delete_user_permanently(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    await UserService.delete_permanently(db, user_id, actor_id=current_user.id)
    return {"data": None, "message": "User permanently deleted."}


@users_router.get("/{user_id}/roles")
async def get_user_roles(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    user = await auth_service.get_user(db, user_id)
    roles = await auth_service.get_user_role_names(db, user.id)
    return {"data": {"user_id": str(user.id), "roles": roles}, "message": "User roles retrieved."}


@users_router.put("/{user_id}/roles")
async def set_user_roles(
    user_id: uuid.UUID,
    body: UserRolesUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    roles = await auth_service.set_user_roles(db, user_id, body.roles, actor_id=current_user.id)
    return {"data": {"user_id": str(user_id), "roles": roles}, "message": "User roles updated."}
