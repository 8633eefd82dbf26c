"""Permission service layer — catalogue CRUD, role / user grants and
effective-permission resolution.

Resolution order for a (user, code) pair:

1. Admins hold every permission.
2. An unexpired ``UserPermission`` row decides outright (grant or denial).
3. Otherwise any unexpired granted ``RolePermission`` on one of the user's
   active roles grants it.
4. Otherwise the permission is denied.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth import service as auth_service
from hrms.auth.models import Role, User, UserRoleAssignment
from hrms.common.audit import create_audit_entry
from hrms.common.constants import PERMISSION_MODULES, PermissionAction, UserRole
from hrms.common.exceptions import ConflictError, NotFoundException
from hrms.common.filters import apply_search
from hrms.permissions.models import Permission, RolePermission, UserPermission
from hrms.permissions.schemas import (
    PermissionCreate,
    PermissionUpdate,
    RolePermissionResponse,
    UserPermissionResponse,
    UserPermissionSummary,
)

logger = logging.getLogger(__name__)

SOURCE_ADMIN = "Admin"
SOURCE_USER = "User"
SOURCE_ROLE = "Role"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unexpired(column: Any):
    return or_(column.is_(None), column > _now())


# ═════════════════════════════════════════════════════════════════════
# Catalogue
# ═════════════════════════════════════════════════════════════════════


class PermissionService:

    @staticmethod
    async def list_permissions(
        db: AsyncSession,
        *,
        module: Optional[str] = None,
        action: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> Sequence[Permission]:
        query = select(Permission)
        if module:
            query = query.where(Permission.module == module)
        if action:
            query = query.where(Permission.action == action)
        if not include_inactive:
            query = query.where(Permission.is_active.is_(True))
        query = apply_search(query, Permission, search, ["name", "code", "description"])
        result = await db.execute(query.order_by(Permission.module, Permission.action, Permission.code))
        return result.scalars().all()

    @staticmethod
    async def modules(db: AsyncSession) -> list[str]:
        result = await db.execute(
            select(Permission.module)
            .where(Permission.is_active.is_(True))
            .distinct()
            .order_by(Permission.module)
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def get_permission(db: AsyncSession, permission_id: uuid.UUID) -> Permission:
        permission = await db.get(Permission, permission_id)
        if permission is None:
            raise NotFoundException("Permission", permission_id)
        return permission

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str) -> Permission:
        result = await db.execute(select(Permission).where(Permission.code == code))
        permission = result.scalars().first()
        if permission is None:
            raise NotFoundException("Permission", code)
        return permission

    @staticmethod
    async def create_permission(
        db: AsyncSession,
        data: PermissionCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Permission:
        existing = await db.execute(select(Permission.id).where(Permission.code == data.code))
        if existing.first() is not None:
            raise ConflictError("code", data.code)

        permission = Permission(**data.model_dump(exclude={"action"}), action=data.action.value)
        db.add(permission)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="permission",
            entity_id=permission.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Permission %s created", permission.code)
        return permission

    @staticmethod
    async def update_permission(
        db: AsyncSession,
        permission_id: uuid.UUID,
        data: PermissionUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Permission:
        permission = await PermissionService.get_permission(db, permission_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("action") is not None:
            changes["action"] = PermissionAction(changes["action"]).value

        old_values = {field: getattr(permission, field) for field in changes}
        for field, value in changes.items():
            setattr(permission, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="permission",
            entity_id=permission.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return permission

    @staticmethod
    async def delete_permission(
        db: AsyncSession,
        permission_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        permission = await PermissionService.get_permission(db, permission_id)
        permission.is_active = False
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="permission",
            entity_id=permission.id,
            actor_id=actor_id,
            old_values={"code": permission.code},
        )

    @staticmethod
    async def seed_defaults(db: AsyncSession, *, actor_id: Optional[uuid.UUID] = None) -> int:
        """Install ``<module>.<action>`` for every module and CRUD action. Idempotent."""
        existing = set((await db.execute(select(Permission.code))).scalars().all())
        created = 0
        for module in PERMISSION_MODULES:
            label = module.replace("_", " ").title()
            for action in PermissionAction:
                code = f"{module}.{action.value}"
                if code in existing:
                    continue
                db.add(
                    Permission(
                        name=f"{action.value.title()} {label}",
                        code=code,
                        description=f"Allows {action.value} on {label.lower()} records",
                        module=module,
                        action=action.value,
                    )
                )
                created += 1
        await db.flush()
        if created:
            await create_audit_entry(
                db,
                action="seed",
                entity_type="permission",
                entity_id="catalogue",
                actor_id=actor_id,
                new_values={"created": created},
            )
        logger.info("Seeded %d permission(s)", created)
        return created

    # ── Resolution ──────────────────────────────────────────────────

    @staticmethod
    async def role_granted_codes(db: AsyncSession, role_names: Iterable[str]) -> set[str]:
        names = list(role_names)
        if not names:
            return set()
        result = await db.execute(
            select(Permission.code)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .where(
                Role.name.in_(names),
                RolePermission.is_granted.is_(True),
                _unexpired(RolePermission.expires_at),
                Permission.is_active.is_(True),
            )
        )
        return set(result.scalars().all())

    @staticmethod
    async def user_overrides(db: AsyncSession, user_id: uuid.UUID) -> dict[str, bool]:
        """Unexpired direct rows: ``code -> is_granted``."""
        result = await db.execute(
            select(Permission.code, UserPermission.is_granted)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .where(
                UserPermission.user_id == user_id,
                _unexpired(UserPermission.expires_at),
                Permission.is_active.is_(True),
            )
        )
        return {code: granted for code, granted in result.all()}

    @staticmethod
    async def effective_permissions(db: AsyncSession, user_id: uuid.UUID) -> dict[str, str]:
        """Every permission the user holds, mapped to where it came from."""
        roles = await auth_service.get_user_role_names(db, user_id)
        if UserRole.admin.value in roles:
            codes = (
                await db.execute(select(Permission.code).where(Permission.is_active.is_(True)))
            ).scalars().all()
            return {code: SOURCE_ADMIN for code in sorted(codes)}

        effective = {code: SOURCE_ROLE for code in await PermissionService.role_granted_codes(db, roles)}
        for code, granted in (await PermissionService.user_overrides(db, user_id)).items():
            if granted:
                effective[code] = SOURCE_USER
            else:
                effective.pop(code, None)
        return dict(sorted(effective.items()))

    @staticmethod
    async def check(
        db: AsyncSession,
        user_id: uuid.UUID,
        code: str,
    ) -> tuple[bool, Optional[str]]:
        """Resolve a single code; returns ``(granted, source)``."""
        roles = await auth_service.get_user_role_names(db, user_id)
        if UserRole.admin.value in roles:
            return True, SOURCE_ADMIN

        direct = await db.execute(
            select(UserPermission.is_granted)
            .join(Permission, Permission.id == UserPermission.permission_id)
            .where(
                UserPermission.user_id == user_id,
                Permission.code == code,
                Permission.is_active.is_(True),
                _unexpired(UserPermission.expires_at),
            )
        )
        row = direct.first()
        if row is not None:
            return (True, SOURCE_USER) if row[0] else (False, None)

        if code in await PermissionService.role_granted_codes(db, roles):
            return True, SOURCE_ROLE
        return False, None


# ═════════════════════════════════════════════════════════════════════
# Role grants
# ═════════════════════════════════════════════════════════════════════


def _role_grant_response(grant: RolePermission) -> RolePermissionResponse:
    return RolePermissionResponse(
        id=grant.id,
        role_id=grant.role_id,
        role_name=grant.role.name,
        permission_id=grant.permission_id,
        permission_code=grant.permission.code,
        permission_name=grant.permission.name,
        module=grant.permission.module,
        action=grant.permission.action,
        is_granted=grant.is_granted,
        assigned_at=grant.assigned_at,
        assigned_by=grant.assigned_by,
        expires_at=grant.expires_at,
    )


class RolePermissionService:

    @staticmethod
    async def list_for_role(db: AsyncSession, role_name: str) -> list[RolePermissionResponse]:
        role = await auth_service.get_role_by_name(db, role_name)
        result = await db.execute(
            select(RolePermission)
            .where(RolePermission.role_id == role.id)
            .options(selectinload(RolePermission.role), selectinload(RolePermission.permission))
            .execution_options(populate_existing=True)
        )
        grants = sorted(result.scalars().all(), key=lambda g: g.permission.code)
        return [_role_grant_response(g) for g in grants]

    @staticmethod
    async def _upsert(
        db: AsyncSession,
        role: Role,
        permission_id: uuid.UUID,
        *,
        is_granted: bool,
        expires_at: Optional[datetime],
        actor_id: Optional[uuid.UUID],
    ) -> RolePermission:
        await PermissionService.get_permission(db, permission_id)
        result = await db.execute(
            select(RolePermission).where(
                RolePermission.role_id == role.id,
                RolePermission.permission_id == permission_id,
            )
        )
        grant = result.scalars().first()
        if grant is None:
            grant = RolePermission(role_id=role.id, permission_id=permission_id)
            db.add(grant)
        grant.is_granted = is_granted
        grant.expires_at = expires_at
        grant.assigned_by = actor_id
        grant.assigned_at = _now()
        return grant

    @staticmethod
    async def assign(
        db: AsyncSession,
        role_name: str,
        permission_ids: Sequence[uuid.UUID],
        *,
        is_granted: bool = True,
        expires_at: Optional[datetime] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        role = await auth_service.get_role_by_name(db, role_name)
        for permission_id in dict.fromkeys(permission_ids):
            await RolePermissionService._upsert(
                db, role, permission_id,
                is_granted=is_granted, expires_at=expires_at, actor_id=actor_id,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="assign_permissions",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            new_values={
                "permissions": ", ".join(str(p) for p in permission_ids),
                "is_granted": is_granted,
            },
        )
        return len(set(permission_ids))

    @staticmethod
    async def remove(
        db: AsyncSession,
        role_name: str,
        permission_ids: Sequence[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        role = await auth_service.get_role_by_name(db, role_name)
        result = await db.execute(
            delete(RolePermission).where(
                RolePermission.role_id == role.id,
                RolePermission.permission_id.in_(list(permission_ids)),
            )
        )
        await create_audit_entry(
            db,
            action="remove_permissions",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            old_values={"permissions": ", ".join(str(p) for p in permission_ids)},
        )
        return result.rowcount or 0

    @staticmethod
    async def sync(
        db: AsyncSession,
        role_name: str,
        permission_ids: Sequence[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, int]:
        """Make the role's grants exactly *permission_ids*."""
        role = await auth_service.get_role_by_name(db, role_name)
        wanted = set(permission_ids)
        current = set(
            (
                await db.execute(
                    select(RolePermission.permission_id).where(RolePermission.role_id == role.id)
                )
            ).scalars().all()
        )
        removed = current - wanted
        if removed:
            await db.execute(
                delete(RolePermission).where(
                    RolePermission.role_id == role.id,
                    RolePermission.permission_id.in_(list(removed)),
                )
            )
        for permission_id in wanted:
            await RolePermissionService._upsert(
                db, role, permission_id, is_granted=True, expires_at=None, actor_id=actor_id,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="sync_permissions",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            new_values={"granted": len(wanted), "removed": len(removed)},
        )
        return {"granted": len(wanted), "added": len(wanted - current), "removed": len(removed)}

    @staticmethod
    async def copy(
        db: AsyncSession,
        source_role: str,
        target_role: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        source = await auth_service.get_role_by_name(db, source_role)
        target = await auth_service.get_role_by_name(db, target_role)
        grants = (
            await db.execute(select(RolePermission).where(RolePermission.role_id == source.id))
        ).scalars().all()
        for grant in grants:
            await RolePermissionService._upsert(
                db, target, grant.permission_id,
                is_granted=grant.is_granted, expires_at=grant.expires_at, actor_id=actor_id,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="copy_permissions",
            entity_type="role",
            entity_id=target.id,
            actor_id=actor_id,
            new_values={"source_role": source.name, "copied": len(grants)},
        )
        return len(grants)

    @staticmethod
    async def users_in_role(db: AsyncSession, role_name: str) -> list[dict[str, Any]]:
        role = await auth_service.get_role_by_name(db, role_name)
        result = await db.execute(
            select(User)
            .join(UserRoleAssignment, UserRoleAssignment.user_id == User.id)
            .where(
                UserRoleAssignment.role_id == role.id,
                UserRoleAssignment.is_active.is_(True),
                _unexpired(UserRoleAssignment.expires_at),
            )
            .order_by(User.email)
        )
        return [
            {
                "id": str(u.id),
                "email": u.email,
                "full_name": f"{u.first_name} {u.last_name}",
                "is_active": u.is_active,
            }
            for u in result.scalars().all()
        ]

    @staticmethod
    async def assign_user_role(
        db: AsyncSession,
        user_id: uuid.UUID,
        role_name: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[str]:
        user = await auth_service.get_user(db, user_id)
        role = await auth_service.get_role_by_name(db, role_name)
        await auth_service.add_role_to_user(db, user.id, role, actor_id=actor_id)
        await create_audit_entry(
            db,
            action="assign_role",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor_id,
            new_values={"role": role.name},
        )
        return await auth_service.get_user_role_names(db, user.id)

    @staticmethod
    async def remove_user_role(
        db: AsyncSession,
        user_id: uuid.UUID,
        role_name: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[str]:
        user = await auth_service.get_user(db, user_id)
        role = await auth_service.get_role_by_name(db, role_name)
        if not await auth_service.remove_role_from_user(db, user.id, role):
            raise NotFoundException("UserRole", f"{user.email}/{role.name}")
        await create_audit_entry(
            db,
            action="remove_role",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor_id,
            old_values={"role": role.name},
        )
        return await auth_service.get_user_role_names(db, user.id)


# ═════════════════════════════════════════════════════════════════════
# User grants
# ═════════════════════════════════════════════════════════════════════


def _user_grant_response(grant: UserPermission) -> UserPermissionResponse:
    return UserPermissionResponse(
        id=grant.id,
        user_id=grant.user_id,
        permission_id=grant.permission_id,
        permission_code=grant.permission.code,
        permission_name=grant.permission.name,
        module=grant.permission.module,
        action=grant.permission.action,
        is_granted=grant.is_granted,
        reason=grant.reason,
        assigned_at=grant.assigned_at,
        assigned_by=grant.assigned_by,
        expires_at=grant.expires_at,
    )


class UserPermissionService:

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: uuid.UUID) -> list[UserPermissionResponse]:
        await auth_service.get_user(db, user_id)
        result = await db.execute(
            select(UserPermission)
            .where(UserPermission.user_id == user_id)
            .options(selectinload(UserPermission.permission))
            .execution_options(populate_existing=True)
        )
        grants = sorted(result.scalars().all(), key=lambda g: g.permission.code)
        return [_user_grant_response(g) for g in grants]

    @staticmethod
    async def _upsert(
        db: AsyncSession,
        user_id: uuid.UUID,
        permission_id: uuid.UUID,
        *,
        is_granted: bool,
        reason: Optional[str],
        expires_at: Optional[datetime],
        actor_id: Optional[uuid.UUID],
    ) -> UserPermission:
        await PermissionService.get_permission(db, permission_id)
        result = await db.execute(
            select(UserPermission).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission_id,
            )
        )
        grant = result.scalars().first()
        if grant is None:
            grant = UserPermission(user_id=user_id, permission_id=permission_id)
            db.add(grant)
        grant.is_granted = is_granted
        grant.reason = reason
        grant.expires_at = expires_at
        grant.assigned_by = actor_id
        grant.assigned_at = _now()
        return grant

    @staticmethod
    async def assign(
        db: AsyncSession,
        user_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
        *,
        is_granted: bool = True,
        reason: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        user = await auth_service.get_user(db, user_id)
        for permission_id in dict.fromkeys(permission_ids):
            await UserPermissionService._upsert(
                db, user.id, permission_id,
                is_granted=is_granted, reason=reason, expires_at=expires_at, actor_id=actor_id,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="grant_permissions" if is_granted else "deny_permissions",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor_id,
            new_values={"permissions": ", ".join(str(p) for p in permission_ids), "reason": reason},
        )
        return len(set(permission_ids))

    @staticmethod
    async def remove(
        db: AsyncSession,
        user_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        result = await db.execute(
            delete(UserPermission).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id.in_(list(permission_ids)),
            )
        )
        await create_audit_entry(
            db,
            action="remove_permissions",
            entity_type="user",
            entity_id=user_id,
            actor_id=actor_id,
            old_values={"permissions": ", ".join(str(p) for p in permission_ids)},
        )
        return result.rowcount or 0

    @staticmethod
    async def sync(
        db: AsyncSession,
        user_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, int]:
        """Replace the user's direct grants with exactly *permission_ids*."""
        user = await auth_service.get_user(db, user_id)
        wanted = set(permission_ids)
        current = set(
            (
                await db.execute(
                    select(UserPermission.permission_id).where(UserPermission.user_id == user.id)
                )
            ).scalars().all()
        )
        removed = current - wanted
        if removed:
            await db.execute(
                delete(UserPermission).where(
                    UserPermission.user_id == user.id,
                    UserPermission.permission_id.in_(list(removed)),
                )
            )
        for permission_id in wanted:
            await UserPermissionService._upsert(
                db, user.id, permission_id,
                is_granted=True, reason=None, expires_at=None, actor_id=actor_id,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="sync_permissions",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor_id,
            new_values={"granted": len(wanted), "removed": len(removed)},
        )
        return {"granted": len(wanted), "added": len(wanted - current), "removed": len(removed)}

    @staticmethod
    async def copy(
        db: AsyncSession,
        source_user_id: uuid.UUID,
        target_user_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        await auth_service.get_user(db, source_user_id)
        target = await auth_service.get_user(db, target_user_id)
        grants = (
            await db.execute(select(UserPermission).where(UserPermission.user_id == source_user_id))
        ).scalars().all()
        for grant in grants:
            await UserPermissionService._upsert(
                db, target.id, grant.permission_id,
                is_granted=grant.is_granted,
                reason=grant.reason,
                expires_at=grant.expires_at,
                actor_id=actor_id,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="copy_permissions",
            entity_type="user",
            entity_id=target.id,
            actor_id=actor_id,
            new_values={"source_user_id": source_user_id, "copied": len(grants)},
        )
        return len(grants)

    @staticmethod
    async def summary(db: AsyncSession, user_id: uuid.UUID) -> UserPermissionSummary:
        await auth_service.get_user(db, user_id)
        roles = await auth_service.get_user_role_names(db, user_id)
        direct = await UserPermissionService.list_for_user(db, user_id)
        role_codes = await PermissionService.role_granted_codes(db, roles)
        effective = await PermissionService.effective_permissions(db, user_id)

        by_module: dict[str, list[str]] = defaultdict(list)
        for code in effective:
            by_module[code.split(".", 1)[0]].append(code)

        return UserPermissionSummary(
            user_id=user_id,
            roles=roles,
            direct_permissions=direct,
            role_permissions=sorted(role_codes),
            all_permissions=list(effective),
            by_module=dict(by_module),
        )
