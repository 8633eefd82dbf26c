"""Employee Pydantic v2 schemas — request / response validation.

Naming conventions:
  - EmployeeCreate / EmployeeUpdate  → request bodies (write)
  - EmployeeDetail                   → full read representation
  - EmployeeListItem                 → compact row for list endpoints
"""


from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.schemas import PartialUpdate

Money = Optional[Decimal]


# ═════════════════════════════════════════════════════════════════════
# Write schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeFields(BaseModel):
    """Optional attributes shared by create and update payloads."""

    name_bangla: Optional[str] = Field(None, max_length=200)
    nid_no: Optional[str] = Field(None, max_length=50)
    father_name: Optional[str] = Field(None, max_length=200)
    father_name_bangla: Optional[str] = Field(None, max_length=200)
    mother_name: Optional[str] = Field(None, max_length=200)
    mother_name_bangla: Optional[str] = Field(None, max_length=200)
    date_of_birth: Optional[date] = None
    joining_date: Optional[date] = None

    permanent_address: Optional[str] = Field(None, max_length=500)
    permanent_division: Optional[str] = Field(None, max_length=100)
    permanent_district: Optional[str] = Field(None, max_length=100)
    permanent_upazila: Optional[str] = Field(None, max_length=100)
    permanent_postal_code: Optional[str] = Field(None, max_length=10)
    present_address: Optional[str] = Field(None, max_length=500)
    present_division: Optional[str] = Field(None, max_length=100)
    present_district: Optional[str] = Field(None, max_length=100)
    present_upazila: Optional[str] = Field(None, max_length=100)
    present_postal_code: Optional[str] = Field(None, max_length=10)

    blood_group: Optional[str] = Field(None, max_length=10)
    gender: Optional[str] = Field(None, max_length=20)
    religion: Optional[str] = Field(None, max_length=50)
    marital_status: Optional[str] = Field(None, max_length=20)
    education: Optional[str] = Field(None, max_length=200)

    line_id: Optional[int] = None
    shift_id: Optional[int] = None
    degree_id: Optional[int] = None
    floor: Optional[str] = Field(None, max_length=50)
    emp_type: Optional[str] = Field(None, max_length=50)
    group: Optional[str] = Field(None, max_length=50)

    house: Money = Field(None, ge=0)
    rent_medical: Money = Field(None, ge=0)
    food: Money = Field(None, ge=0)
    conveyance: Money = Field(None, ge=0)
    transport: Money = Field(None, ge=0)
    night_bill: Money = Field(None, ge=0)
    mobile_bill: Money = Field(None, ge=0)
    other_allowance: Money = Field(None, ge=0)

    salary_type: Optional[str] = Field(None, max_length=50)
    bank: Optional[str] = Field(None, max_length=100)


class EmployeeCreate(EmployeeFields):
    emp_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    company_id: int
    department_id: int
    section_id: int
    designation_id: int
    gross_salary: Decimal = Field(Decimal("0"), ge=0)
    basic_salary: Decimal = Field(Decimal("0"), ge=0)
    bank_account_no: str = Field(..., min_length=1, max_length=50)


class EmployeeUpdate(EmployeeFields, PartialUpdate):
    """All fields optional; only supplied fields are changed."""

    not_null = (
        "emp_id", "name", "company_id", "department_id", "section_id",
        "designation_id", "gross_salary", "basic_salary", "bank_account_no",
    )

    emp_id: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    company_id: Optional[int] = None
    department_id: Optional[int] = None
    section_id: Optional[int] = None
    designation_id: Optional[int] = None
    gross_salary: Optional[Decimal] = Field(None, ge=0)
    basic_salary: Optional[Decimal] = Field(None, ge=0)
    bank_account_no: Optional[str] = Field(None, min_length=1, max_length=50)


# ═════════════════════════════════════════════════════════════════════
# Read schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    emp_id: str
    name: str
    name_bangla: Optional[str] = None
    nid_no: Optional[str] = None
    company_id: int
    department_id: int
    section_id: int
    designation_id: int
    line_id: Optional[int] = None
    shift_id: Optional[int] = None
    joining_date: Optional[date] = None
    gender: Optional[str] = None
    gross_salary: Decimal = Decimal("0")
    is_active: bool = True
    # Enriched fields (set by service layer)
    company_name: Optional[str] = None
    department_name: Optional[str] = None
    section_name: Optional[str] = None
    designation_name: Optional[str] = None
    grade: Optional[str] = None


class EmployeeDetail(EmployeeFields, EmployeeListItem):
    basic_salary: Decimal = Decimal("0")
    bank_account_no: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    line_name: Optional[str] = None
    shift_name: Optional[str] = None
    degree_name: Optional[str] = None
