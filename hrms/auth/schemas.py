"""Auth Pydantic schemas for request / response validation."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from hrms.common.schemas import PartialUpdate


# ── Requests ────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    company_id: Optional[int] = None
    role: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str
    # The (possibly expired) access token issued alongside the refresh token
    access_token: Optional[str] = None


class ValidateTokenRequest(BaseModel):
    token: str


class AssignRoleRequest(BaseModel):
    email: EmailStr
    role: str


class AssignCompanyRequest(BaseModel):
    user_id: uuid.UUID
    company_id: int


class AssignUsersToCompanyRequest(BaseModel):
    company_id: int
    user_ids: list[uuid.UUID] = Field(..., min_length=1)


class AssignCompaniesToUserRequest(BaseModel):
    user_id: uuid.UUID
    company_ids: list[int] = Field(..., min_length=1)


class ProfileUpdate(PartialUpdate):
    not_null = ("first_name", "last_name")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


# ── User administration ─────────────────────────────────────────────

class UserUpdate(ProfileUpdate):
    not_null = ProfileUpdate.not_null + ("is_active",)

    company_id: Optional[int] = None
    is_active: Optional[bool] = None


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserRolesUpdate(BaseModel):
    roles: list[str]


# ── Responses ───────────────────────────────────────────────────────

class UserInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    company_id: Optional[int] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    # Enriched by the service layer
    roles: list[str] = []
    company_ids: list[int] = []


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: datetime
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: datetime


class TokenValidationResponse(BaseModel):
    is_valid: bool
    user_id: Optional[uuid.UUID] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: list[str] = []
    expiration_date: Optional[datetime] = None
    error_message: Optional[str] = None


class UserCompanyResponse(BaseModel):
    company_id: int
    company_name: str
    company_code: Optional[str] = None
    is_primary: bool = False
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[uuid.UUID] = None
    is_active: bool = True
