"""Roster schedule Pydantic schemas."""


from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hrms.common.constants import DEFAULT_WORK_DAYS, RosterStatus
from hrms.common.schemas import PartialUpdate


# ── Requests ────────────────────────────────────────────────────────

class RosterCreate(BaseModel):
    employee_id: int
    shift_id: int
    schedule_date: date
    company_id: int
    status: RosterStatus = RosterStatus.scheduled
    status_bangla: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=500)
    notes_bangla: Optional[str] = Field(None, max_length=500)


class RosterUpdate(PartialUpdate):
    not_null = ("shift_id", "schedule_date", "status")

    shift_id: Optional[int] = None
    schedule_date: Optional[date] = None
    status: Optional[RosterStatus] = None
    status_bangla: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=500)
    notes_bangla: Optional[str] = Field(None, max_length=500)


class BulkRosterCreate(BaseModel):
    employee_ids: list[int] = Field(..., min_length=1)
    shift_id: int
    start_date: date
    end_date: date
    company_id: int
    status: RosterStatus = RosterStatus.scheduled
    notes: Optional[str] = Field(None, max_length=500)
    notes_bangla: Optional[str] = Field(None, max_length=500)
    # Sunday=0 … Saturday=6
    days_of_week: list[int] = Field(default_factory=lambda: list(DEFAULT_WORK_DAYS))

    @field_validator("days_of_week")
    @classmethod
    def _valid_days(cls, value: list[int]) -> list[int]:
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(value))


class CheckInOutRequest(BaseModel):
    roster_schedule_id: int
    # Wall-clock time at the workplace; defaults to now
    date_time: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)
    notes_bangla: Optional[str] = Field(None, max_length=500)


# ── Responses ───────────────────────────────────────────────────────

class RosterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    shift_id: int
    company_id: int
    schedule_date: date
    status: str
    status_bangla: Optional[str] = None
    notes: Optional[str] = None
    notes_bangla: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    overtime_hours: Optional[Decimal] = None
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None
    # Computed on the model
    worked_hours: Optional[float] = None
    late_arrival_minutes: Optional[int] = None
    is_late: bool = False
    is_overtime: bool = False
    # Enriched fields (set by service layer)
    employee_name: Optional[str] = None
    employee_name_bangla: Optional[str] = None
    emp_id: Optional[str] = None
    shift_name: Optional[str] = None
    shift_start_time: Optional[time] = None
    shift_end_time: Optional[time] = None
    company_name: Optional[str] = None


class BulkRosterResult(BaseModel):
    created_count: int
    skipped_count: int
    created_ids: list[int] = []
    skipped: list[dict] = []


class RosterSummary(BaseModel):
    total_schedules: int = 0
    scheduled: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    absent: int = 0
    late_arrivals: int = 0
    overtime_schedules: int = 0
    total_worked_hours: float = 0.0
    total_overtime_hours: float = 0.0
    attendance_rate: float = 0.0
    punctuality_rate: float = 0.0
