"""Employee ORM model — the HR record of a worker.

Login accounts live in ``hrms.auth.models.User``; an Employee never logs in.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.audit import AuditMixin
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.companies.models import Company
    from hrms.organization.models import Degree, Department, Designation, Line, Section
    from hrms.shifts.models import Shift


def _money() -> Mapped[Optional[Decimal]]:
    return mapped_column(sa.Numeric(18, 2))


class Employee(Base, AuditMixin):
    __tablename__ = "employees"
    __table_args__ = (
        sa.UniqueConstraint("company_id", "emp_id", name="uq_employees_company_emp_id"),
        sa.Index("ix_employees_department_id", "department_id"),
        sa.Index("ix_employees_shift_id", "shift_id"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    emp_id: Mapped[str] = mapped_column(sa.String(50), nullable=False)

    # ── Identity ────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    nid_no: Mapped[Optional[str]] = mapped_column(sa.String(50))
    father_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    father_name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    mother_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    mother_name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    joining_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # ── Addresses ───────────────────────────────────────────────────
    permanent_address: Mapped[Optional[str]] = mapped_column(sa.String(500))
    permanent_division: Mapped[Optional[str]] = mapped_column(sa.String(100))
    permanent_district: Mapped[Optional[str]] = mapped_column(sa.String(100))
    permanent_upazila: Mapped[Optional[str]] = mapped_column(sa.String(100))
    permanent_postal_code: Mapped[Optional[str]] = mapped_column(sa.String(10))
    present_address: Mapped[Optional[str]] = mapped_column(sa.String(500))
    present_division: Mapped[Optional[str]] = mapped_column(sa.String(100))
    present_district: Mapped[Optional[str]] = mapped_column(sa.String(100))
    present_upazila: Mapped[Optional[str]] = mapped_column(sa.String(100))
    present_postal_code: Mapped[Optional[str]] = mapped_column(sa.String(10))

    # ── Personal ────────────────────────────────────────────────────
    blood_group: Mapped[Optional[str]] = mapped_column(sa.String(10))
    gender: Mapped[Optional[str]] = mapped_column(sa.String(20))
    religion: Mapped[Optional[str]] = mapped_column(sa.String(50))
    marital_status: Mapped[Optional[str]] = mapped_column(sa.String(20))
    education: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # ── Organisation ────────────────────────────────────────────────
    company_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False,
    )
    department_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False,
    )
    section_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("sections.id", ondelete="RESTRICT"), nullable=False,
    )
    designation_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("designations.id", ondelete="RESTRICT"), nullable=False,
    )
    line_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("lines.id", ondelete="SET NULL"),
    )
    shift_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("shifts.id", ondelete="SET NULL"),
    )
    degree_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("degrees.id", ondelete="SET NULL"),
    )
    floor: Mapped[Optional[str]] = mapped_column(sa.String(50))
    emp_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    group: Mapped[Optional[str]] = mapped_column(sa.String(50))

    # ── Allowances ──────────────────────────────────────────────────
    house: Mapped[Optional[Decimal]] = _money()
    rent_medical: Mapped[Optional[Decimal]] = _money()
    food: Mapped[Optional[Decimal]] = _money()
    conveyance: Mapped[Optional[Decimal]] = _money()
    transport: Mapped[Optional[Decimal]] = _money()
    night_bill: Mapped[Optional[Decimal]] = _money()
    mobile_bill: Mapped[Optional[Decimal]] = _money()
    other_allowance: Mapped[Optional[Decimal]] = _money()

    # ── Pay ─────────────────────────────────────────────────────────
    gross_salary: Mapped[Decimal] = mapped_column(
        sa.Numeric(18, 2), nullable=False, default=Decimal("0"),
    )
    basic_salary: Mapped[Decimal] = mapped_column(
        sa.Numeric(18, 2), nullable=False, default=Decimal("0"),
    )
    salary_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    bank_account_no: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    bank: Mapped[Optional[str]] = mapped_column(sa.String(100))

    # ── Relationships ───────────────────────────────────────────────
    company: Mapped[Company] = relationship()
    department: Mapped[Department] = relationship()
    section: Mapped[Section] = relationship()
    designation: Mapped[Designation] = relationship()
    line: Mapped[Optional[Line]] = relationship()
    shift: Mapped[Optional[Shift]] = relationship()
    degree: Mapped[Optional[Degree]] = relationship()

    def __repr__(self) -> str:
        return f"<Employee {self.emp_id} {self.name!r}>"
