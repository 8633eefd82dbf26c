"""Permission routers.

Three routers are exported and mounted separately:

    router                    → /api/v1/permissions
    role_permissions_router   → /api/v1/role-permissions
    user_permissions_router   → /api/v1/user-permissions

Admin and IT manage permissions; Admin, IT and HR Manager may read them.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, is_admin, require_role
from hrms.auth.models import User
from hrms.common.constants import PERMISSION_READ_ROLES, PERMISSION_WRITE_ROLES, PermissionAction
from hrms.common.exceptions import ForbiddenException
from hrms.database import get_db
from hrms.permissions.schemas import (
    PermissionCheckRequest,
    PermissionCheckResult,
    PermissionCreate,
    PermissionIdList,
    PermissionResponse,
    PermissionUpdate,
    RolePermissionAssign,
    RolePermissionBulk,
    UserPermissionAssign,
    UserPermissionBulk,
    UserRoleChange,
)
from hrms.permissions.service import (
    PermissionService,
    RolePermissionService,
    UserPermissionService,
)

router = APIRouter(prefix="", tags=["permissions"])
role_permissions_router = APIRouter(prefix="", tags=["role-permissions"])
user_permissions_router = APIRouter(prefix="", tags=["user-permissions"])

_read_dep = require_role(*PERMISSION_READ_ROLES)
_write_dep = require_role(*PERMISSION_WRITE_ROLES)


def _one(permission) -> dict:
    return PermissionResponse.model_validate(permission).model_dump(mode="json")


def _many(permissions) -> list[dict]:
    return [_one(p) for p in permissions]


async def _check_for(
    db: AsyncSession,
    current_user: User,
    user_id: Optional[uuid.UUID],
    code: str,
) -> PermissionCheckResult:
    target = user_id or current_user.id
    granted, source = await PermissionService.check(db, target, code)
    return PermissionCheckResult(
        user_id=target, permission_code=code, has_permission=granted, source=source,
    )


# ═════════════════════════════════════════════════════════════════════
# PERMISSION CATALOGUE
# ═════════════════════════════════════════════════════════════════════

@router.get("")
async def list_permissions(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
    module: Optional[str] = Query(None),
    action: Optional[PermissionAction] = Query(None),
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
):
    permissions = await PermissionService.list_permissions(
        db,
        module=module,
        action=action.value if action else None,
        search=search,
        include_inactive=include_inactive,
    )
    return {"data": _many(permissions), "message": f"Found {len(permissions)} permission(s)."}


@router.get("/modules")
async def list_modules(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    modules = await PermissionService.modules(db)
    return {"data": modules, "message": f"Found {len(modules)} module(s)."}


@router.get("/my-permissions")
async def my_permissions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    effective = await PermissionService.effective_permissions(db, current_user.id)
    return {
        "data": [{"code": code, "source": source} for code, source in effective.items()],
        "message": f"You hold {len(effective)} permission(s).",
    }


@router.post("/check")
async def check_permission(
    body: PermissionCheckRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if body.user_id not in (None, current_user.id) and not is_admin(request):
        raise ForbiddenException(detail="You may only check your own permissions.")
    result = await _check_for(db, current_user, body.user_id, body.permission_code)
    return {"data": result.model_dump(mode="json"), "message": "Permission checked."}


@router.post("/seed", status_code=201)
async def seed_permissions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    created = await PermissionService.seed_defaults(db, actor_id=current_user.id)
    return {"data": {"created": created}, "message": f"Seeded {created} permission(s)."}


@router.get("/code/{code}")
async def get_permission_by_code(
    code: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    permission = await PermissionService.get_by_code(db, code)
    return {"data": _one(permission), "message": "Permission retrieved successfully."}


@router.get("/module/{module}")
async def list_by_module(
    module: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    permissions = await PermissionService.list_permissions(db, module=module)
    return {"data": _many(permissions), "message": f"Found {len(permissions)} permission(s)."}


@router.get("/action/{action}")
async def list_by_action(
    action: PermissionAction,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    permissions = await PermissionService.list_permissions(db, action=action.value)
    return {"data": _many(permissions), "message": f"Found {len(permissions)} permission(s)."}


@router.get("/{permission_id}")
async def get_permission(
    permission_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    permission = await PermissionService.get_permission(db, permission_id)
    return {"data": _one(permission), "message": "Permission retrieved successfully."}


@router.post("", status_code=201)
async def create_permission(
    body: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    permission = await PermissionService.create_permission(db, body, actor_id=current_user.id)
    return {"data": _one(permission), "message": "Permission created successfully."}


@router.put("/{permission_id}")
async def update_permission(
    permission_id: uuid.UUID,
    body: PermissionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    permission = await PermissionService.update_permission(
        db, permission_id, body, actor_id=current_user.id,
    )
    return {"data": _one(permission), "message": "Permission updated successfully."}


@router.delete("/{permission_id}")
async def delete_permission(
    permission_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    await PermissionService.delete_permission(db, permission_id, actor_id=current_user.id)
    return {"data": None, "message": "Permission deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# ROLE PERMISSIONS
# ═════════════════════════════════════════════════════════════════════

@role_permissions_router.post("/assign")
async def assign_role_permission(
    body: RolePermissionAssign,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    await RolePermissionService.assign(
        db, body.role, [body.permission_id],
        is_granted=body.is_granted, expires_at=body.expires_at, actor_id=current_user.id,
    )
    grants = await RolePermissionService.list_for_role(db, body.role)
    return {
        "data": [g.model_dump(mode="json") for g in grants],
        "message": f"Permission assigned to role {body.role}.",
    }


@role_permissions_router.post("/bulk-assign")
async def bulk_assign_role_permissions(
    body: RolePermissionBulk,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    count = await RolePermissionService.assign(
        db, body.role, body.permission_ids,
        is_granted=body.is_granted, expires_at=body.expires_at, actor_id=current_user.id,
    )
    return {"data": {"assigned": count}, "message": f"Assigned {count} permission(s)."}


@role_permissions_router.post("/copy/{source_role}/{target_role}")
async def copy_role_permissions(
    source_role: str,
    target_role: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    copied = await RolePermissionService.copy(
        db, source_role, target_role, actor_id=current_user.id,
    )
    return {"data": {"copied": copied}, "message": f"Copied {copied} permission(s)."}


@role_permissions_router.post("/user-role/assign")
async def assign_user_role(
    body: UserRoleChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    roles = await RolePermissionService.assign_user_role(
        db, body.user_id, body.role, actor_id=current_user.id,
    )
    return {"data": {"user_id": str(body.user_id), "roles": roles}, "message": "Role assigned."}


@role_permissions_router.delete("/user-role/{user_id}/{role}")
async def remove_user_role(
    user_id: uuid.UUID,
    role: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    roles = await RolePermissionService.remove_user_role(
        db, user_id, role, actor_id=current_user.id,
    )
    return {"data": {"user_id": str(user_id), "roles": roles}, "message": "Role removed."}


@role_permissions_router.get("/{role}")
async def list_role_permissions(
    role: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    grants = await RolePermissionService.list_for_role(db, role)
    return {
        "data": [g.model_dump(mode="json") for g in grants],
        "message": f"Found {len(grants)} permission(s) for role {role}.",
    }


@role_permissions_router.get("/{role}/users")
async def list_role_users(
    role: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    users = await RolePermissionService.users_in_role(db, role)
    return {"data": users, "message": f"Found {len(users)} user(s) in role {role}."}


@role_permissions_router.delete("/{role}/permission/{permission_id}")
async def remove_role_permission(
    role: str,
    permission_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    removed = await RolePermissionService.remove(
        db, role, [permission_id], actor_id=current_user.id,
    )
    return {"data": {"removed": removed}, "message": "Permission removed from role."}


@role_permissions_router.post("/{role}/bulk-remove")
async def bulk_remove_role_permissions(
    role: str,
    body: PermissionIdList,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    removed = await RolePermissionService.remove(
        db, role, body.permission_ids, actor_id=current_user.id,
    )
    return {"data": {"removed": removed}, "message": f"Removed {removed} permission(s)."}


@role_permissions_router.post("/{role}/sync")
async def sync_role_permissions(
    role: str,
    body: PermissionIdList,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    result = await RolePermissionService.sync(
        db, role, body.permission_ids, actor_id=current_user.id,
    )
    return {"data": result, "message": f"Role {role} permissions synchronised."}


# ═════════════════════════════════════════════════════════════════════
# USER PERMISSIONS
# ═════════════════════════════════════════════════════════════════════

@user_permissions_router.post("/assign")
async def assign_user_permission(
    body: UserPermissionAssign,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    await UserPermissionService.assign(
        db, body.user_id, [body.permission_id],
        is_granted=body.is_granted,
        reason=body.reason,
        expires_at=body.expires_at,
        actor_id=current_user.id,
    )
    grants = await UserPermissionService.list_for_user(db, body.user_id)
    return {
        "data": [g.model_dump(mode="json") for g in grants],
        "message": "Permission granted." if body.is_granted else "Permission denied.",
    }


@user_permissions_router.post("/bulk-assign")
async def bulk_assign_user_permissions(
    body: UserPermissionBulk,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    count = await UserPermissionService.assign(
        db, body.user_id, body.permission_ids,
        is_granted=body.is_granted,
        reason=body.reason,
        expires_at=body.expires_at,
        actor_id=current_user.id,
    )
    return {"data": {"assigned": count}, "message": f"Assigned {count} permission(s)."}


@user_permissions_router.post("/copy/{source_user_id}/{target_user_id}")
async def copy_user_permissions(
    source_user_id: uuid.UUID,
    target_user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    copied = await UserPermissionService.copy(
        db, source_user_id, target_user_id, actor_id=current_user.id,
    )
    return {"data": {"copied": copied}, "message": f"Copied {copied} permission(s)."}


@user_permissions_router.get("/my-permissions/check/{code}")
async def check_my_permission(
    code: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await _check_for(db, current_user, None, code)
    return {"data": result.model_dump(mode="json"), "message": "Permission checked."}


@user_permissions_router.get("/{user_id}")
async def list_user_permissions(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    grants = await UserPermissionService.list_for_user(db, user_id)
    return {
        "data": [g.model_dump(mode="json") for g in grants],
        "message": f"Found {len(grants)} direct permission(s).",
    }


@user_permissions_router.get("/{user_id}/summary")
async def user_permission_summary(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    summary = await UserPermissionService.summary(db, user_id)
    return {"data": summary.model_dump(mode="json"), "message": "Permission summary retrieved."}


@user_permissions_router.get("/{user_id}/effective")
async def user_effective_permissions(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    effective = await PermissionService.effective_permissions(db, user_id)
    return {
        "data": [{"code": code, "source": source} for code, source in effective.items()],
        "message": f"User holds {len(effective)} permission(s).",
    }


@user_permissions_router.get("/{user_id}/check/{code}")
async def check_user_permission(
    user_id: uuid.UUID,
    code: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_read_dep),
):
    result = await _check_for(db, current_user, user_id, code)
    return {"data": result.model_dump(mode="json"), "message": "Permission checked."}


@user_permissions_router.delete("/{user_id}/permission/{permission_id}")
async def remove_user_permission(
    user_id: uuid.UUID,
    permission_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    removed = await UserPermissionService.remove(
        db, user_id, [permission_id], actor_id=current_user.id,
    )
    return {"data": {"removed": removed}, "message": "Permission removed from user."}


@user_permissions_router.post("/{user_id}/bulk-remove")
async def bulk_remove_user_permissions(
    user_id: uuid.UUID,
    body: PermissionIdList,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    removed = await UserPermissionService.remove(
        db, user_id, body.permission_ids, actor_id=current_user.id,
    )
    return {"data": {"removed": removed}, "message": f"Removed {removed} permission(s)."}


@user_permissions_router.post("/{user_id}/sync")
async def sync_user_permissions(
    user_id: uuid.UUID,
    body: PermissionIdList,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_write_dep),
):
    result = await UserPermissionService.sync(
        db, user_id, body.permission_ids, actor_id=current_user.id,
    )
    return {"data": result, "message": "User permissions synchronised."}
