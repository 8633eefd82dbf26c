"""Permission-based FastAPI dependency."""

from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, is_admin
from hrms.auth.models import User
from hrms.common.exceptions import ForbiddenException
from hrms.database import get_db
from hrms.permissions.service import PermissionService


def require_permission(code: str) -> Callable:
    """Return a dependency that enforces the caller's effective permission *code*.

    Admins always pass.
    """

    async def _check(
        request: Request,
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if is_admin(request):
            return user
        granted, _source = await PermissionService.check(db, user.id, code)
        if not granted:
            raise ForbiddenException(detail=f"Missing permission '{code}'.")
        return user

    return _check
