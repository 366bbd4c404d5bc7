from __future__ import annotations
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import SeriesStatus
from schedulingconfig.schema import ConflictPolicyPatch


def window_minutes(start: time, end: time) -> int:
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


# ---------- DB → API (read) ----------
class SeriesSchema(BaseModel):
    id: int
    branch_id: Optional[int] = None
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    booth_id: Optional[int] = None
    start_date: date
    end_date: Optional[date] = None
    start_time: time
    end_time: time
    duration: int
    days_of_week: List[int]
    status: SeriesStatus
    timezone: str
    last_generated_through: Optional[date] = None
    conflict_policy: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Client → API (create) ----------
class SeriesCreatePayload(BaseModel):
    branch_id: Optional[int] = None
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    booth_id: Optional[int] = None
    start_date: date
    end_date: Optional[date] = None
    start_time: time
    end_time: time
    duration: Optional[int] = Field(None, ge=1, description="minutes; defaults to end - start")
    days_of_week: List[int] = Field(..., min_length=1, description="0=Mon .. 6=Sun")
    status: SeriesStatus = SeriesStatus.active
    timezone: Optional[str] = Field(None, description="IANA zone, e.g. America/New_York")
    conflict_policy: Optional[ConflictPolicyPatch] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("days_of_week")
    @classmethod
    def weekday_range(cls, v: List[int]) -> List[int]:
        if any(not (0 <= d <= 6) for d in v):
            raise ValueError("days_of_week entries must be between 0 (Mon) and 6 (Sun)")
        return sorted(set(v))

    @field_validator("timezone")
    @classmethod
    def known_zone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {v}")
        return v

    @model_validator(mode="after")
    def validate_window_and_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start time must be before end time")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on/after start_date")
        if self.duration is not None and self.duration > window_minutes(self.start_time, self.end_time):
            raise ValueError("duration cannot exceed the daily window")
        return self


# ---------- Client → API (patch) ----------
class SeriesUpdate(BaseModel):
    end_date: Optional[date] = None
    status: Optional[SeriesStatus] = None
    conflict_policy: Optional[ConflictPolicyPatch] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
