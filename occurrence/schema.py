from __future__ import annotations
from datetime import date as date_type, datetime, time
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import OccurrenceStatus


class OccurrenceSchema(BaseModel):
    id: int
    series_id: Optional[int] = None
    branch_id: Optional[int] = None
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    booth_id: Optional[int] = None
    date: date_type
    start_time: time
    end_time: time
    timezone: str
    start_at: datetime
    end_at: datetime
    duration: int
    status: OccurrenceStatus
    conflict_reasons: List[str] = []
    is_cancelled: bool = False
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# INTERNAL DTO for the service
class OccurrenceCreate(BaseModel):
    series_id: Optional[int] = None
    branch_id: Optional[int] = None
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    booth_id: Optional[int] = None
    date: date_type
    start_time: time
    end_time: time
    timezone: str
    start_at: datetime
    end_at: datetime
    duration: int = Field(..., ge=1)
    status: OccurrenceStatus = OccurrenceStatus.confirmed
    conflict_reasons: List[str] = []
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_window(self):
        if self.start_at >= self.end_at:
            raise ValueError("start_at must be before end_at")
        return self
