"""BangladeshAddress ORM model — division / district / upazila / union reference data."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.audit import AuditMixin
from hrms.database import Base


class BangladeshAddress(Base, AuditMixin):
    __tablename__ = "bangladesh_addresses"
    __table_args__ = (
        sa.Index("ix_bd_addresses_division_district", "division", "district"),
        sa.Index("ix_bd_addresses_postal_code", "postal_code"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    division: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    division_bangla: Mapped[Optional[str]] = mapped_column(sa.String(100))
    district: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    district_bangla: Mapped[Optional[str]] = mapped_column(sa.String(100))
    upazila: Mapped[Optional[str]] = mapped_column(sa.String(100))
    upazila_bangla: Mapped[Optional[str]] = mapped_column(sa.String(100))
    union: Mapped[Optional[str]] = mapped_column(sa.String(100))
    union_bangla: Mapped[Optional[str]] = mapped_column(sa.String(100))
    area: Mapped[Optional[str]] = mapped_column(sa.String(200))
    area_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    postal_code: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    latitude: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(10, 7))
    longitude: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(10, 7))

    @property
    def full_address(self) -> str:
        parts = [self.area, self.union, self.upazila, self.district, self.division]
        text = ", ".join(p for p in parts if p)
        return f"{text} - {self.postal_code}" if self.postal_code else text

    @property
    def full_address_bangla(self) -> str:
        parts = [
            self.area_bangla,
            self.union_bangla,
            self.upazila_bangla,
            self.district_bangla,
            self.division_bangla,
        ]
        return ", ".join(p for p in parts if p)

    def __repr__(self) -> str:
        return f"<BangladeshAddress {self.full_address!r}>"
