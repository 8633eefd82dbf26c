"""Shift Pydantic schemas."""


from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.schemas import PartialUpdate


class ShiftCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    start_time: time
    end_time: time
    break_start_time: Optional[time] = None
    break_end_time: Optional[time] = None
    company_id: int


class ShiftUpdate(PartialUpdate):
    not_null = ("name", "start_time", "end_time", "company_id")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_bangla: Optional[str] = Field(None, max_length=200)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    break_start_time: Optional[time] = None
    break_end_time: Optional[time] = None
    company_id: Optional[int] = None


class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    name_bangla: Optional[str] = None
    start_time: time
    end_time: time
    break_start_time: Optional[time] = None
    break_end_time: Optional[time] = None
    company_id: int
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None
    # Computed on the model
    duration_hours: float = 0.0
    break_duration_hours: float = 0.0
    working_hours: float = 0.0
    # Enriched fields (set by service layer)
    company_name: Optional[str] = None
