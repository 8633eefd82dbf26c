"""Auth service — password login, JWT session lifecycle, roles, company assignment,
and user administration."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from jose import ExpiredSignatureError, JWTError
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import Role, User, UserCompany, UserRoleAssignment, UserSession
from hrms.auth.schemas import (
    ProfileUpdate,
    RegisterRequest,
    TokenValidationResponse,
    UserCompanyResponse,
    UserInfo,
    UserUpdate,
)
from hrms.auth.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    hash_token,
    verify_password,
)
from hrms.common.audit import create_audit_entry
from hrms.common.constants import DEFAULT_ROLE, ROLE_DESCRIPTIONS, UserRole
from hrms.common.exceptions import (
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from hrms.common.filters import apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.companies.models import Company

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Roles ───────────────────────────────────────────────────────────

async def ensure_roles_seeded(db: AsyncSession) -> list[Role]:
    """Insert any missing built-in role. Idempotent."""
    existing = {
        r.name: r for r in (await db.execute(select(Role))).scalars().all()
    }
    for role in UserRole:
        if role.value not in existing:
            obj = Role(name=role.value, description=ROLE_DESCRIPTIONS.get(role))
            db.add(obj)
            existing[role.value] = obj
            logger.info("Seeded role %s", role.value)
    await db.flush()
    return list(existing.values())


async def get_role_by_name(db: AsyncSession, name: str) -> Role:
    """Resolve a role by (case-insensitive) name; built-in roles are created on demand."""
    result = await db.execute(
        select(Role).where(func.lower(Role.name) == name.strip().lower()),
    )
    role = result.scalars().first()
    if role is not None:
        return role

    builtin = next((r for r in UserRole if r.value.lower() == name.strip().lower()), None)
    if builtin is None:
        raise BadRequestException(f"Role '{name}' does not exist.")
    role = Role(name=builtin.value, description=ROLE_DESCRIPTIONS.get(builtin))
    db.add(role)
    await db.flush()
    return role


async def get_user_role_names(db: AsyncSession, user_id: uuid.UUID) -> list[str]:
    """Active, unexpired role names for a user."""
    result = await db.execute(
        select(Role.name)
        .join(UserRoleAssignment, UserRoleAssignment.role_id == Role.id)
        .where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.is_active.is_(True),
            or_(
                UserRoleAssignment.expires_at.is_(None),
                UserRoleAssignment.expires_at > _now(),
            ),
        )
        .order_by(Role.name)
    )
    return [row[0] for row in result.all()]


async def add_role_to_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    role: Role,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> UserRoleAssignment:
    """Assign *role* (reactivating a previous assignment if one exists)."""
    result = await db.execute(
        select(UserRoleAssignment).where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.role_id == role.id,
        ),
    )
    assignment = result.scalars().first()
    if assignment is None:
        assignment = UserRoleAssignment(user_id=user_id, role_id=role.id, assigned_by=actor_id)
        db.add(assignment)
    else:
        assignment.is_active = True
        assignment.expires_at = None
        assignment.assigned_by = actor_id
        assignment.assigned_at = _now()
    await db.flush()
    return assignment


async def remove_role_from_user(db: AsyncSession, user_id: uuid.UUID, role: Role) -> bool:
    result = await db.execute(
        select(UserRoleAssignment).where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.role_id == role.id,
            UserRoleAssignment.is_active.is_(True),
        ),
    )
    assignment = result.scalars().first()
    if assignment is None:
        return False
    assignment.is_active = False
    await db.flush()
    return True


async def assign_role(
    db: AsyncSession,
    email: str,
    role_name: str,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> list[str]:
    """Grant a role to the user with *email*; returns the user's roles afterwards."""
    user = await get_user_by_email(db, email)
    if user is None:
        raise NotFoundException("User", email)
    role = await get_role_by_name(db, role_name)
    await add_role_to_user(db, user.id, role, actor_id=actor_id)
    await create_audit_entry(
        db,
        action="assign_role",
        entity_type="user",
        entity_id=user.id,
        actor_id=actor_id,
        new_values={"role": role.name},
    )
    logger.info("Role %s assigned to %s", role.name, user.email)
    return await get_user_role_names(db, user.id)


async def set_user_roles(
    db: AsyncSession,
    user_id: uuid.UUID,
    role_names: Iterable[str],
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> list[str]:
    """Replace the user's role set with exactly *role_names*."""
    user = await get_user(db, user_id)
    wanted = [await get_role_by_name(db, name) for name in role_names]
    wanted_ids = {r.id for r in wanted}

    result = await db.execute(
        select(UserRoleAssignment).where(UserRoleAssignment.user_id == user.id),
    )
    for assignment in result.scalars().all():
        if assignment.role_id not in wanted_ids:
            assignment.is_active = False
    for role in wanted:
        await add_role_to_user(db, user.id, role, actor_id=actor_id)

    roles = await get_user_role_names(db, user.id)
    await create_audit_entry(
        db,
        action="set_roles",
        entity_type="user",
        entity_id=user.id,
        actor_id=actor_id,
        new_values={"roles": ", ".join(roles)},
    )
    return roles


# ── Company scope ───────────────────────────────────────────────────

async def get_accessible_company_ids(db: AsyncSession, user: User) -> list[int]:
    """Primary company plus every active UserCompany link, de-duplicated."""
    ids: set[int] = set()
    if user.company_id is not None:
        ids.add(user.company_id)
    result = await db.execute(
        select(UserCompany.company_id).where(
            UserCompany.user_id == user.id,
            UserCompany.is_active.is_(True),
        ),
    )
    ids.update(row[0] for row in result.all())
    return sorted(ids)


async def _get_company(db: AsyncSession, company_id: int) -> Company:
    company = await db.get(Company, company_id)
    if company is None:
        raise NotFoundException("Company", company_id)
    return company


async def assign_company(
    db: AsyncSession,
    user_id: uuid.UUID,
    company_id: int,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> UserCompany:
    """Link a user to a company, reactivating an existing link."""
    await get_user(db, user_id)
    await _get_company(db, company_id)

    result = await db.execute(
        select(UserCompany).where(
            UserCompany.user_id == user_id,
            UserCompany.company_id == company_id,
        ),
    )
    link = result.scalars().first()
    if link is None:
        link = UserCompany(user_id=user_id, company_id=company_id, assigned_by=actor_id)
        db.add(link)
    else:
        link.is_active = True
        link.assigned_by = actor_id
        link.assigned_at = _now()
    await db.flush()

    await create_audit_entry(
        db,
        action="assign_company",
        entity_type="user",
        entity_id=user_id,
        actor_id=actor_id,
        new_values={"company_id": company_id},
    )
    return link


async def remove_company(
    db: AsyncSession,
    user_id: uuid.UUID,
    company_id: int,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> None:
    result = await db.execute(
        select(UserCompany).where(
            UserCompany.user_id == user_id,
            UserCompany.company_id == company_id,
            UserCompany.is_active.is_(True),
        ),
    )
    link = result.scalars().first()
    if link is None:
        raise NotFoundException("UserCompany", f"{user_id}/{company_id}")
    link.is_active = False
    await db.flush()
    await create_audit_entry(
        db,
        action="remove_company",
        entity_type="user",
        entity_id=user_id,
        actor_id=actor_id,
        old_values={"company_id": company_id},
    )


async def list_user_companies(db: AsyncSession, user_id: uuid.UUID) -> list[UserCompanyResponse]:
    user = await get_user(db, user_id)
    result = await db.execute(
        select(UserCompany, Company)
        .join(Company, Company.id == UserCompany.company_id)
        .where(UserCompany.user_id == user.id, UserCompany.is_active.is_(True))
        .order_by(Company.name)
    )
    items: dict[int, UserCompanyResponse] = {}
    for link, company in result.all():
        items[company.id] = UserCompanyResponse(
            company_id=company.id,
            company_name=company.name,
            company_code=company.company_code,
            is_primary=company.id == user.company_id,
            assigned_at=link.assigned_at,
            assigned_by=link.assigned_by,
            is_active=link.is_active,
        )
    if user.company_id is not None and user.company_id not in items:
        primary = await db.get(Company, user.company_id)
        if primary is not None:
            items[primary.id] = UserCompanyResponse(
                company_id=primary.id,
                company_name=primary.name,
                company_code=primary.company_code,
                is_primary=True,
            )
    return sorted(items.values(), key=lambda c: (not c.is_primary, c.company_name))


# ── Users ───────────────────────────────────────────────────────────

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower()),
    )
    return result.scalars().first()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundException("User", str(user_id))
    return user


async def build_user_info(db: AsyncSession, user: User) -> UserInfo:
    info = UserInfo.model_validate(user)
    info.roles = await get_user_role_names(db, user.id)
    info.company_ids = await get_accessible_company_ids(db, user)
    return info


async def register_user(
    db: AsyncSession,
    data: RegisterRequest,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> User:
    """Create a login account with the requested (or default) role."""
    if await get_user_by_email(db, data.email) is not None:
        raise ConflictError("email", data.email)
    if data.company_id is not None and await db.get(Company, data.company_id) is None:
        raise BadRequestException(f"Company with id '{data.company_id}' does not exist.")

    role = await get_role_by_name(db, data.role or DEFAULT_ROLE.value)

    user = User(
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        department=data.department,
        position=data.position,
        company_id=data.company_id,
    )
    db.add(user)
    await db.flush()

    await add_role_to_user(db, user.id, role, actor_id=actor_id)
    if data.company_id is not None:
        db.add(UserCompany(user_id=user.id, company_id=data.company_id, assigned_by=actor_id))
        await db.flush()

    await create_audit_entry(
        db,
        action="create",
        entity_type="user",
        entity_id=user.id,
        actor_id=actor_id,
        new_values=data.model_dump(mode="json", exclude={"password"}),
    )
    logger.info("Registered user %s with role %s", user.email, role.name)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Return the active user matching the credentials, or raise 401."""
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise UnauthorizedException(INVALID_CREDENTIALS)
    return user


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
    changes = data.model_dump(exclude_unset=True)
    old_values = {field: getattr(user, field) for field in changes}
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    if changes:
        await create_audit_entry(
            db,
            action="update_profile",
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
            old_values=old_values,
            new_values=changes,
        )
    return user


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise BadRequestException("Current password is incorrect.")
    user.password_hash = hash_password(new_password)
    await db.flush()
    await create_audit_entry(
        db, action="change_password", entity_type="user", entity_id=user.id, actor_id=user.id,
    )
    logger.info("Password changed for %s", user.email)


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    user: User,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[str, str, datetime]:
    """Issue a JWT pair and persist its session.

    Returns (access_token, refresh_token, access_expires_at).
    """
    roles = await get_user_role_names(db, user.id)
    access_token, access_expires = create_access_token(user.id, user.email, roles)
    refresh_token, refresh_expires = create_refresh_token(user.id)

    db.add(UserSession(
        user_id=user.id,
        token_hash=hash_token(access_token),
        refresh_token_hash=hash_token(refresh_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=access_expires,
        refresh_expires_at=refresh_expires,
    ))
    await db.flush()
    return access_token, refresh_token, access_expires


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[User, str, str, datetime]:
    user = await authenticate(db, email, password)
    user.last_login_at = _now()
    access_token, refresh_token, expires_at = await create_session(db, user, ip, user_agent)
    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )
    logger.info("User %s logged in", user.email)
    return user, access_token, refresh_token, expires_at


# ── Refresh (with token rotation + reuse detection) ─────────────────

async def refresh_session(
    db: AsyncSession,
    refresh_token: str,
    access_token: Optional[str] = None,
) -> tuple[str, str, datetime]:
    """Validate a refresh token, rotate it, and issue a new token pair.

    Returns (new_access_token, new_refresh_token, access_expires_at).

    Each refresh token can be used once. Presenting an already-rotated
    token revokes ALL sessions of its owner.
    """
    try:
        payload = decode_token(refresh_token)
    except ExpiredSignatureError:
        raise UnauthorizedException("Refresh token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid refresh token.")

    if payload.get("type") != "refresh":
        raise UnauthorizedException("Invalid token type.")

    if access_token is not None:
        try:
            access_payload = decode_token(access_token, verify_exp=False)
        except JWTError:
            raise UnauthorizedException("Invalid access token.")
        if access_payload.get("sub") != payload.get("sub"):
            raise UnauthorizedException("Access and refresh tokens do not belong to the same user.")

    result = await db.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == hash_token(refresh_token),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise UnauthorizedException("Invalid refresh token.")

    if session.is_revoked:
        logger.warning("Refresh token reuse detected for user %s", session.user_id)
        await revoke_all_user_sessions(db, session.user_id)
        await db.commit()  # Persist revocations BEFORE raising (avoid rollback)
        raise ForbiddenException(
            detail="Refresh token reuse detected. All sessions revoked for security.",
        )

    session.is_revoked = True
    await db.flush()

    user = await db.get(User, session.user_id)
    if user is None or not user.is_active:
        raise UnauthorizedException("User account is inactive or not found.")

    new_access, new_refresh, expires_at = await create_session(
        db, user, session.ip_address, session.user_agent,
    )
    logger.info("Rotated refresh token for user %s", user.email)
    return new_access, new_refresh, expires_at


# ── Revoke ──────────────────────────────────────────────────────────

async def revoke_all_user_sessions(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Revoke every active session for a user; returns how many were revoked."""
    result = await db.execute(
        select(UserSession).where(
            UserSession.user_id == user_id,
            UserSession.is_revoked.is_(False),
        ),
    )
    sessions = result.scalars().all()
    for session in sessions:
        session.is_revoked = True
    await db.flush()
    if sessions:
        logger.info("Revoked %d session(s) for user %s", len(sessions), user_id)
    return len(sessions)


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its access-token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


# ── Token validation ────────────────────────────────────────────────

async def validate_token(db: AsyncSession, token: str) -> TokenValidationResponse:
    """Inspect an access token without raising."""
    try:
        payload = decode_token(token)
    except ExpiredSignatureError:
        return TokenValidationResponse(is_valid=False, error_message="Token has expired.")
    except JWTError:
        return TokenValidationResponse(is_valid=False, error_message="Invalid token.")

    if payload.get("type") != "access":
        return TokenValidationResponse(is_valid=False, error_message="Invalid token type.")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        return TokenValidationResponse(is_valid=False, error_message="Invalid token subject.")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        return TokenValidationResponse(
            is_valid=False, user_id=user_id, error_message="User not found or inactive.",
        )

    result = await db.execute(
        select(UserSession.id).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
        ),
    )
    if result.first() is None:
        return TokenValidationResponse(
            is_valid=False, user_id=user_id, error_message="Session revoked.",
        )

    return TokenValidationResponse(
        is_valid=True,
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=await get_user_role_names(db, user.id),
        expiration_date=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


# ═════════════════════════════════════════════════════════════════════
# UserService — administration of login accounts
# ═════════════════════════════════════════════════════════════════════


class UserService:
    """Admin-only operations on users."""

    @staticmethod
    async def list_users(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        role: Optional[str] = None,
        department: Optional[str] = None,
        company_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        query = select(User)
        if search:
            query = apply_search(query, User, search, ["email", "first_name", "last_name"])
        if role:
            query = query.where(
                User.id.in_(
                    select(UserRoleAssignment.user_id)
                    .join(Role, Role.id == UserRoleAssignment.role_id)
                    .where(
                        func.lower(Role.name) == role.lower(),
                        UserRoleAssignment.is_active.is_(True),
                    )
                ),
            )
        if department:
            query = query.where(func.lower(User.department) == department.lower())
        if company_id is not None:
            query = query.where(
                or_(
                    User.company_id == company_id,
                    User.id.in_(
                        select(UserCompany.user_id).where(
                            UserCompany.company_id == company_id,
                            UserCompany.is_active.is_(True),
                        )
                    ),
                ),
            )
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))

        return await paginate(
            db, query, pagination, model=User, default_order=(User.first_name, User.last_name),
        )

    @staticmethod
    async def update_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        data: UserUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> User:
        user = await get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True)
        if "company_id" in changes and changes["company_id"] is not None:
            await _get_company(db, changes["company_id"])

        old_values = {field: getattr(user, field) for field in changes}
        for field, value in changes.items():
            setattr(user, field, value)
        if changes.get("is_active") is False:
            await revoke_all_user_sessions(db, user.id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        logger.info("User %s updated by %s", user.email, actor_id)
        return user

    @staticmethod
    async def set_status(
        db: AsyncSession,
        user_id: uuid.UUID,
        is_active: bool,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> User:
        return await UserService.update_user(
            db, user_id, UserUpdate(is_active=is_active), actor_id=actor_id,
        )

    @staticmethod
    async def delete_permanently(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
    ) -> None:
        if user_id == actor_id:
            raise BadRequestException("You cannot permanently delete your own account.")
        user = await get_user(db, user_id)
        email = user.email
        await db.delete(user)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete_permanent",
            entity_type="user",
            entity_id=user_id,
            actor_id=actor_id,
            old_values={"email": email},
        )
        logger.info("User %s permanently deleted by %s", email, actor_id)

    @staticmethod
    async def list_roles(db: AsyncSession) -> list[dict[str, Any]]:
        await ensure_roles_seeded(db)
        result = await db.execute(
            select(Role, func.count(UserRoleAssignment.id))
            .outerjoin(
                UserRoleAssignment,
                (UserRoleAssignment.role_id == Role.id) & UserRoleAssignment.is_active.is_(True),
            )
            .group_by(Role.id)
            .order_by(Role.name)
        )
        return [
            {"id": role.id, "name": role.name, "description": role.description, "user_count": count}
            for role, count in result.all()
        ]

    @staticmethod
    async def statistics(db: AsyncSession) -> dict[str, Any]:
        total = (await db.execute(select(func.count(User.id)))).scalar_one()
        active = (
            await db.execute(select(func.count(User.id)).where(User.is_active.is_(True)))
        ).scalar_one()
        roles = await UserService.list_roles(db)
        recent: Sequence[User] = (
            await db.execute(select(User).order_by(User.created_at.desc()).limit(5))
        ).scalars().all()
        return {
            "overview": {
                "total_users": total,
                "active_users": active,
                "inactive_users": total - active,
            },
            "users_by_role": {r["name"]: r["user_count"] for r in roles},
            "recent_users": [
                {
                    "id": str(u.id),
                    "email": u.email,
                    "full_name": u.full_name,
                    "created_at": u.created_at.isoformat() if u.created_at else None,
                }
                for u in recent
            ],
        }

