"""Shift ORM model."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.audit import AuditMixin
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.companies.models import Company


def _hours_between(start: Optional[time], end: Optional[time]) -> float:
    if start is None or end is None:
        return 0.0
    anchor = date(2000, 1, 1)
    delta = datetime.combine(anchor, end) - datetime.combine(anchor, start)
    return round(delta.total_seconds() / 3600, 2)


class Shift(Base, AuditMixin):
    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_bangla: Mapped[Optional[str]] = mapped_column(sa.String(200))
    start_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    break_start_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    break_end_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    company_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False,
    )

    company: Mapped[Company] = relationship(back_populates="shifts")

    # ── Computed durations (hours) ──────────────────────────────────

    @property
    def duration_hours(self) -> float:
        return _hours_between(self.start_time, self.end_time)

    @property
    def break_duration_hours(self) -> float:
        return _hours_between(self.break_start_time, self.break_end_time)

    @property
    def working_hours(self) -> float:
        return round(self.duration_hours - self.break_duration_hours, 2)

    def __repr__(self) -> str:
        return f"<Shift {self.name!r} {self.start_time}-{self.end_time}>"
