"""Bangladesh address schemas."""


from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AddressCreate(BaseModel):
    division: str = Field(..., min_length=1, max_length=100)
    division_bangla: Optional[str] = Field(None, max_length=100)
    district: str = Field(..., min_length=1, max_length=100)
    district_bangla: Optional[str] = Field(None, max_length=100)
    upazila: Optional[str] = Field(None, max_length=100)
    upazila_bangla: Optional[str] = Field(None, max_length=100)
    union: Optional[str] = Field(None, max_length=100)
    union_bangla: Optional[str] = Field(None, max_length=100)
    area: Optional[str] = Field(None, max_length=200)
    area_bangla: Optional[str] = Field(None, max_length=200)
    postal_code: str = Field(..., min_length=1, max_length=10)
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)


class AddressResponse(AddressCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_address: str
    full_address_bangla: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None


class NamedPlace(BaseModel):
    """A distinct division / district / upazila with its Bangla name."""

    name: str
    name_bangla: Optional[str] = None
    parent: Optional[str] = None
    child_count: int = 0
    address_count: int = 0
