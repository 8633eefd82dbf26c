"""Auth dependencies — JWT validation, role checks, company scope."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import User, UserSession
from hrms.auth.security import decode_token, hash_token
from hrms.auth.service import get_accessible_company_ids, get_user_role_names
from hrms.common.constants import UserRole
from hrms.common.exceptions import ForbiddenException, UnauthorizedException
from hrms.database import get_db

# Roles that implicitly satisfy other role requirements
_ROLE_IMPLIES: dict[str, set[str]] = {
    UserRole.admin.value: {r.value for r in UserRole},
    UserRole.hr_manager.value: {UserRole.hr_manager.value, UserRole.hr.value},
}


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return auth_header[7:]


def effective_roles(role_names: Iterable[str]) -> set[str]:
    expanded: set[str] = set()
    for name in role_names:
        expanded |= _ROLE_IMPLIES.get(name, {name})
    return expanded


def has_role(request: Request, *roles: UserRole) -> bool:
    """True if the authenticated user holds (or implies) any of *roles*."""
    user_roles = getattr(request.state, "user_roles", [])
    return bool(effective_roles(user_roles) & {r.value for r in roles})


def is_admin(request: Request) -> bool:
    return UserRole.admin.value in getattr(request.state, "user_roles", [])


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT, verify session, return the authenticated User."""
    token = _extract_bearer(request)

    try:
        payload = decode_token(token)
    except ExpiredSignatureError:
        raise UnauthorizedException("Token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type.")

    # Verify session exists, not revoked, not expired
    token_hash = hash_token(token)
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == token_hash,
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    if result.scalars().first() is None:
        raise UnauthorizedException("Session invalid or expired.")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthorizedException("Invalid token subject.")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedException("User account is inactive or not found.")

    # Roles come from the database so changes apply without re-login
    request.state.user_roles = await get_user_role_names(db, user.id)
    request.state.token_hash = token_hash
    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    ``Admin`` passes every check; ``HR Manager`` also satisfies ``HR``.
    """

    async def _check(
        request: Request,
        user: User = Depends(get_current_user),
    ) -> User:
        if not has_role(request, *allowed_roles):
            raise ForbiddenException(
                detail=(
                    f"Roles {request.state.user_roles} are not permitted. "
                    f"Required one of: {[r.value for r in allowed_roles]}."
                ),
            )
        return user

    return _check


# ── Company scope ───────────────────────────────────────────────────

@dataclass
class CompanyScope:
    """The set of companies the caller may see. Admins are unrestricted."""

    user: User
    is_admin: bool
    company_ids: list[int] = field(default_factory=list)

    def can_access(self, company_id: Optional[int]) -> bool:
        return self.is_admin or (company_id is not None and company_id in self.company_ids)

    def ensure(self, company_id: Optional[int]) -> None:
        if not self.can_access(company_id):
            raise ForbiddenException(detail="You do not have access to this company.")

    def restrict(self, query: Select, column: Any) -> Select:
        """Filter *query* so *column* (a company id) stays within scope."""
        if self.is_admin:
            return query
        return query.where(column.in_(self.company_ids))

    def resolve_filter(self, company_id: Optional[int]) -> Optional[int]:
        """Validate an explicit ``company_id`` filter against the scope."""
        if company_id is not None:
            self.ensure(company_id)
        return company_id

    def show_inactive(self, include_inactive: bool) -> bool:
        """Only admins may list soft-deleted rows."""
        return self.is_admin and include_inactive


async def get_company_scope(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CompanyScope:
    admin = is_admin(request)
    company_ids = [] if admin else await get_accessible_company_ids(db, user)
    return CompanyScope(user=user, is_admin=admin, company_ids=company_ids)
