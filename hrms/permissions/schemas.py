"""Permission catalogue, role grant and user grant schemas."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.constants import PermissionAction
from hrms.common.schemas import PartialUpdate


# ═════════════════════════════════════════════════════════════════════
# Catalogue
# ═════════════════════════════════════════════════════════════════════


class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=3, max_length=100, pattern=r"^[a-z0-9_]+\.[a-z0-9_.]+$")
    description: Optional[str] = Field(None, max_length=500)
    module: str = Field(..., min_length=1, max_length=50)
    action: PermissionAction
    resource: Optional[str] = Field(None, max_length=100)


class PermissionUpdate(PartialUpdate):
    not_null = ("name", "module", "action")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    module: Optional[str] = Field(None, min_length=1, max_length=50)
    action: Optional[PermissionAction] = None
    resource: Optional[str] = Field(None, max_length=100)


class PermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    description: Optional[str] = None
    module: str
    action: str
    resource: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class PermissionCheckRequest(BaseModel):
    """Omit ``user_id`` to check the caller."""

    user_id: Optional[uuid.UUID] = None
    permission_code: str = Field(..., min_length=1, max_length=100)
    resource: Optional[str] = Field(None, max_length=100)


class PermissionCheckResult(BaseModel):
    user_id: uuid.UUID
    permission_code: str
    has_permission: bool
    # "Admin", "User", "Role" or None when denied
    source: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Role grants
# ═════════════════════════════════════════════════════════════════════


class RolePermissionAssign(BaseModel):
    role: str = Field(..., min_length=1, max_length=50)
    permission_id: uuid.UUID
    is_granted: bool = True
    expires_at: Optional[datetime] = None


class RolePermissionBulk(BaseModel):
    role: str = Field(..., min_length=1, max_length=50)
    permission_ids: list[uuid.UUID] = Field(..., min_length=1)
    is_granted: bool = True
    expires_at: Optional[datetime] = None


class PermissionIdList(BaseModel):
    permission_ids: list[uuid.UUID] = Field(default_factory=list)


class UserRoleChange(BaseModel):
    user_id: uuid.UUID
    role: str = Field(..., min_length=1, max_length=50)


class RolePermissionResponse(BaseModel):
    id: int
    role_id: int
    role_name: str
    permission_id: uuid.UUID
    permission_code: str
    permission_name: str
    module: str
    action: str
    is_granted: bool
    assigned_at: datetime
    assigned_by: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# User grants
# ═════════════════════════════════════════════════════════════════════


class UserPermissionAssign(BaseModel):
    user_id: uuid.UUID
    permission_id: uuid.UUID
    is_granted: bool = True
    reason: Optional[str] = Field(None, max_length=500)
    expires_at: Optional[datetime] = None


class UserPermissionBulk(BaseModel):
    user_id: uuid.UUID
    permission_ids: list[uuid.UUID] = Field(..., min_length=1)
    is_granted: bool = True
    reason: Optional[str] = Field(None, max_length=500)
    expires_at: Optional[datetime] = None


class UserPermissionResponse(BaseModel):
    id: int
    user_id: uuid.UUID
    permission_id: uuid.UUID
    permission_code: str
    permission_name: str
    module: str
    action: str
    is_granted: bool
    reason: Optional[str] = None
    assigned_at: datetime
    assigned_by: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None


class UserPermissionSummary(BaseModel):
    user_id: uuid.UUID
    roles: list[str] = []
    direct_permissions: list[UserPermissionResponse] = []
    role_permissions: list[str] = []
    all_permissions: list[str] = []
    by_module: dict[str, list[str]] = {}
