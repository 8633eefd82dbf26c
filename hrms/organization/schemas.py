"""Organisation Pydantic v2 schemas — departments, sections, designations,
degrees and lines.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response          → response bodies (read), enriched with parent names
"""


from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.schemas import PartialUpdate


class _OrgResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    name_bangla: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    company_id: int


class DepartmentUpdate(PartialUpdate):
    not_null = ("name", "company_id")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    company_id: Optional[int] = None


class DepartmentResponse(_OrgResponse):
    company_id: int
    # Enriched fields (set by service layer)
    company_name: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Section
# ═════════════════════════════════════════════════════════════════════


class SectionCreate(BaseModel):
    department_id: int
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)


class SectionUpdate(PartialUpdate):
    not_null = ("department_id", "name")

    department_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)


class SectionResponse(_OrgResponse):
    department_id: int
    department_name: Optional[str] = None
    company_id: Optional[int] = None
    company_name: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Designation
# ═════════════════════════════════════════════════════════════════════


class DesignationCreate(BaseModel):
    section_id: int
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    grade: str = Field(..., min_length=1, max_length=50)
    attendance_bonus: Decimal = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2)


class DesignationUpdate(PartialUpdate):
    not_null = ("section_id", "name", "grade", "attendance_bonus")

    section_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    grade: Optional[str] = Field(None, min_length=1, max_length=50)
    attendance_bonus: Optional[Decimal] = Field(None, ge=0, max_digits=18, decimal_places=2)


class DesignationResponse(_OrgResponse):
    section_id: int
    grade: str
    attendance_bonus: Decimal = Decimal("0")
    section_name: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    company_id: Optional[int] = None
    company_name: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Degree
# ═════════════════════════════════════════════════════════════════════


class DegreeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    level: str = Field(..., min_length=1, max_length=100)
    level_bangla: Optional[str] = Field(None, max_length=100)
    institution_type: Optional[str] = Field(None, max_length=100)
    institution_type_bangla: Optional[str] = Field(None, max_length=100)
    company_id: int


class DegreeUpdate(PartialUpdate):
    not_null = ("name", "level", "company_id")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    level: Optional[str] = Field(None, min_length=1, max_length=100)
    level_bangla: Optional[str] = Field(None, max_length=100)
    institution_type: Optional[str] = Field(None, max_length=100)
    institution_type_bangla: Optional[str] = Field(None, max_length=100)
    company_id: Optional[int] = None


class DegreeResponse(_OrgResponse):
    level: str
    level_bangla: Optional[str] = None
    institution_type: Optional[str] = None
    institution_type_bangla: Optional[str] = None
    company_id: int
    company_name: Optional[str] = None


class CommonDegree(BaseModel):
    """Template entry from the built-in Bangladesh degree list."""

    name: str
    name_bangla: str
    level: str
    level_bangla: str
    institution_type: str
    institution_type_bangla: str


# ═════════════════════════════════════════════════════════════════════
# Line
# ═════════════════════════════════════════════════════════════════════


class LineCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    company_id: int


class LineUpdate(PartialUpdate):
    not_null = ("name", "company_id")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    company_id: Optional[int] = None


class LineResponse(_OrgResponse):
    company_id: int
    company_name: Optional[str] = None
