from __future__ import annotations
from datetime import date as date_type, time
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import AvailabilityKind, ApprovalStatus
from .slots import TimeSlot


# ---------- DB → API (read) ----------
class AvailabilityRecordSchema(BaseModel):
    id: int
    owner_id: int
    kind: AvailabilityKind
    status: ApprovalStatus
    weekday: Optional[int] = None
    date: Optional[date_type] = None
    full_day: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Client → API ----------
class AvailabilityCreatePayload(BaseModel):
    owner_id: int
    kind: AvailabilityKind
    status: ApprovalStatus = ApprovalStatus.pending
    weekday: Optional[int] = Field(None, ge=0, le=6, description="0=Mon .. 6=Sun, regular only")
    date: Optional[date_type] = Field(None, description="exception / absence only")
    full_day: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_scope_and_window(self):
        if self.kind == AvailabilityKind.regular:
            if self.weekday is None or self.date is not None:
                raise ValueError("regular availability needs a weekday and no date")
        elif self.date is None or self.weekday is not None:
            raise ValueError(f"{self.kind.value} availability needs a date and no weekday")

        if self.full_day:
            if self.start_time is not None or self.end_time is not None:
                raise ValueError("full day availability cannot carry start and end times")
        else:
            if self.start_time is None or self.end_time is None:
                raise ValueError("start time and end time must be provided together")
            if self.start_time >= self.end_time:
                raise ValueError("start time must be before end time")
        return self


class AvailabilityStatusUpdate(BaseModel):
    status: ApprovalStatus
    model_config = ConfigDict(extra="forbid")


# ---------- Resolution results ----------
class AvailabilityConflictKind(str, Enum):
    unavailable = "unavailable"   # nothing in force that day
    wrong_time = "wrong_time"     # something in force, but not covering the window


class SharedStrategy(str, Enum):
    exception = "exception"
    regular = "regular"
    mixed = "mixed"
    none = "none"


class AvailabilityDetails(BaseModel):
    available: bool
    has_exceptions: bool = False
    has_regular: bool = False
    exception_slots: List[TimeSlot] = []
    regular_slots: List[TimeSlot] = []
    effective_slots: List[TimeSlot] = []
    conflict_kind: Optional[AvailabilityConflictKind] = None


class SharedAvailabilityResult(BaseModel):
    a: AvailabilityDetails
    b: AvailabilityDetails
    shared_slots: List[TimeSlot] = []
    available: bool
    strategy: SharedStrategy
    message: Optional[str] = None
