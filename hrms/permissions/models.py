"""Permission ORM models: Permission catalogue, RolePermission, UserPermission."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.audit import utcnow
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.auth.models import Role, User


class Permission(Base):
    __tablename__ = "permissions"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(500))
    module: Mapped[str] = mapped_column(sa.String(50), nullable=False, index=True)
    action: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    resource: Mapped[Optional[str]] = mapped_column(sa.String(100))
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.true(),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, server_default=sa.func.now(),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Permission {self.code!r}>"


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_perm"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False,
    )
    permission_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False,
    )
    is_granted: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    assigned_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, server_default=sa.func.now(),
    )
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid)
    expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    role: Mapped[Role] = relationship()
    permission: Mapped[Permission] = relationship()


class UserPermission(Base):
    """Direct grant or denial; a denial overrides any role grant."""

    __tablename__ = "user_permissions"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "permission_id", name="uq_user_permissions_user_perm"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    permission_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False,
    )
    is_granted: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    reason: Mapped[Optional[str]] = mapped_column(sa.String(500))
    assigned_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, server_default=sa.func.now(),
    )
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid)
    expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    user: Mapped[User] = relationship()
    permission: Mapped[Permission] = relationship()
