"""Organisation structure ORM models: Department, Section, Designation, Degree, Line.

Hierarchy: Company → Department → Section → Designation.
Degrees and lines hang directly off a company.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.audit import AuditMixin
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.companies.models import Company


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base, AuditMixin):
    __tablename__ = "departments"
    __table_args__ = (
        sa.Index("ix_departments_company_id", "company_id"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    company_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False,
    )

    company: Mapped[Company] = relationship(back_populates="departments")
    sections: Mapped[list[Section]] = relationship(back_populates="department")

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Section
# ═════════════════════════════════════════════════════════════════════


class Section(Base, AuditMixin):
    __tablename__ = "sections"
    __table_args__ = (
        sa.Index("ix_sections_department_id", "department_id"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    department_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))

    department: Mapped[Department] = relationship(back_populates="sections")
    designations: Mapped[list[Designation]] = relationship(back_populates="section")

    def __repr__(self) -> str:
        return f"<Section {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Designation
# ═════════════════════════════════════════════════════════════════════


class Designation(Base, AuditMixin):
    __tablename__ = "designations"
    __table_args__ = (
        sa.Index("ix_designations_section_id", "section_id"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("sections.id", ondelete="RESTRICT"), nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    grade: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    attendance_bonus: Mapped[Decimal] = mapped_column(
        sa.Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0",
    )

    section: Mapped[Section] = relationship(back_populates="designations")

    def __repr__(self) -> str:
        return f"<Designation {self.name!r} ({self.grade})>"


# ═════════════════════════════════════════════════════════════════════
# Degree
# ═════════════════════════════════════════════════════════════════════


class Degree(Base, AuditMixin):
    __tablename__ = "degrees"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    level: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    level_bangla: Mapped[Optional[str]] = mapped_column(sa.String(100))
    institution_type: Mapped[Optional[str]] = mapped_column(sa.String(100))
    institution_type_bangla: Mapped[Optional[str]] = mapped_column(sa.String(100))
    company_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False,
    )

    company: Mapped[Company] = relationship(back_populates="degrees")

    def __repr__(self) -> str:
        return f"<Degree {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Line
# ═════════════════════════════════════════════════════════════════════


class Line(Base, AuditMixin):
    """Production line within a company."""

    __tablename__ = "lines"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    company_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False,
    )

    company: Mapped[Company] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<Line {self.name!r}>"
