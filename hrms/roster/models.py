"""RosterSchedule ORM model — one employee on one shift on one date."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.audit import AuditMixin
from hrms.common.constants import RosterStatus
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.companies.models import Company
    from hrms.employees.models import Employee
    from hrms.shifts.models import Shift


class RosterSchedule(Base, AuditMixin):
    __tablename__ = "roster_schedules"
    __table_args__ = (
        sa.Index("ix_roster_schedules_employee_date", "employee_id", "schedule_date"),
        sa.Index("ix_roster_schedules_company_date", "company_id", "schedule_date"),
        # One active schedule per employee and day
        sa.Index(
            "uq_roster_active_employee_date",
            "employee_id",
            "schedule_date",
            unique=True,
            postgresql_where=sa.text("is_active"),
            sqlite_where=sa.text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False,
    )
    shift_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("shifts.id", ondelete="RESTRICT"), nullable=False,
    )
    company_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False,
    )
    schedule_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(50), nullable=False, default=RosterStatus.scheduled.value,
    )
    status_bangla: Mapped[Optional[str]] = mapped_column(sa.String(50))
    notes: Mapped[Optional[str]] = mapped_column(sa.String(500))
    notes_bangla: Mapped[Optional[str]] = mapped_column(sa.String(500))
    # Wall-clock times at the workplace (no timezone)
    check_in_time: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=False))
    check_out_time: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=False))
    overtime_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(6, 2))

    employee: Mapped[Employee] = relationship()
    shift: Mapped[Shift] = relationship()
    company: Mapped[Company] = relationship()

    # ── Computed attendance figures ─────────────────────────────────

    @property
    def worked_hours(self) -> Optional[float]:
        if self.check_in_time is None or self.check_out_time is None:
            return None
        seconds = (self.check_out_time - self.check_in_time).total_seconds()
        return round(seconds / 3600, 2)

    @property
    def late_arrival_minutes(self) -> Optional[int]:
        """Minutes between shift start and check-in; 0 when on time."""
        if self.check_in_time is None or self.shift is None:
            return None
        shift_start = datetime.combine(self.schedule_date, self.shift.start_time)
        late = (self.check_in_time - shift_start).total_seconds() / 60
        return max(0, int(late))

    @property
    def is_late(self) -> bool:
        return bool(self.late_arrival_minutes)

    @property
    def is_overtime(self) -> bool:
        return self.overtime_hours is not None and self.overtime_hours > 0

    def shift_end_at(self) -> datetime:
        return datetime.combine(self.schedule_date, self.shift.end_time)

    def compute_overtime(self) -> Decimal:
        """Hours worked past the scheduled shift end, never negative."""
        if self.check_out_time is None:
            return Decimal("0")
        extra = self.check_out_time - self.shift_end_at()
        if extra <= timedelta(0):
            return Decimal("0")
        return Decimal(str(round(extra.total_seconds() / 3600, 2)))

    def __repr__(self) -> str:
        return f"<RosterSchedule emp={self.employee_id} {self.schedule_date} {self.status}>"
