"""Company Pydantic schemas."""


from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.schemas import PartialUpdate


class CompanyBase(BaseModel):
    company_code: Optional[str] = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    address_bangla: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)
    authorized_signature: Optional[str] = Field(None, max_length=500)


class CompanyCreate(CompanyBase):
    pass


class CompanyUpdate(PartialUpdate):
    """All fields optional; only supplied fields are changed."""

    not_null = ("name",)

    company_code: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    address_bangla: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)
    authorized_signature: Optional[str] = Field(None, max_length=500)


class CompanyResponse(CompanyBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None
