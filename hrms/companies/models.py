"""Company ORM model — the tenant every other organisation entity belongs to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.audit import AuditMixin
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.organization.models import Degree, Department, Line
    from hrms.shifts.models import Shift


class Company(Base, AuditMixin):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_code: Mapped[Optional[str]] = mapped_column(sa.String(50), unique=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    description: Mapped[Optional[str]] = mapped_column(sa.String(500))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))
    email: Mapped[Optional[str]] = mapped_column(sa.String(100))
    address: Mapped[Optional[str]] = mapped_column(sa.String(500))
    address_bangla: Mapped[Optional[str]] = mapped_column(sa.String(500))
    city: Mapped[Optional[str]] = mapped_column(sa.String(100))
    state: Mapped[Optional[str]] = mapped_column(sa.String(100))
    postal_code: Mapped[Optional[str]] = mapped_column(sa.String(20))
    country: Mapped[Optional[str]] = mapped_column(sa.String(100))
    logo_url: Mapped[Optional[str]] = mapped_column(sa.String(500))
    authorized_signature: Mapped[Optional[str]] = mapped_column(sa.String(500))

    # ── Relationships ───────────────────────────────────────────────
    departments: Mapped[list[Department]] = relationship(back_populates="company")
    lines: Mapped[list[Line]] = relationship(back_populates="company")
    degrees: Mapped[list[Degree]] = relationship(back_populates="company")
    shifts: Mapped[list[Shift]] = relationship(back_populates="company")

    def __repr__(self) -> str:
        return f"<Company {self.name!r}>"
