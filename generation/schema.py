from __future__ import annotations
from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from availability.schema import SharedStrategy
from availability.slots import TimeSlot
from .conflicts import ConflictKind


# ---------- Client → API ----------
class GenerateOptions(BaseModel):
    lead_days: Optional[int] = Field(None, ge=1, description="defaults to the effective policy")
    # pinned "today" for backfills and tests; defaults to today in the series timezone
    today: Optional[date] = None
    model_config = ConfigDict(extra="forbid")


class AdvancePayload(BaseModel):
    branch_id: Optional[int] = None
    series_id: Optional[int] = None
    limit: Optional[int] = Field(None, ge=1)
    lead_days: Optional[int] = Field(None, ge=1)
    today: Optional[date] = None
    model_config = ConfigDict(extra="forbid")


# ---------- Results ----------
class GenerationResult(BaseModel):
    series_id: int
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    attempted: int = 0
    created_confirmed: int = 0
    created_conflicted: int = 0
    skipped: int = 0
    deleted: bool = False


class AdvanceFailure(BaseModel):
    series_id: int
    error: str


class AdvanceSummary(BaseModel):
    processed: int = 0
    up_to_date: int = 0
    created_confirmed: int = 0
    created_conflicted: int = 0
    skipped: int = 0
    details: List[GenerationResult] = []
    failures: List[AdvanceFailure] = []


class ConflictInfo(BaseModel):
    date: str
    weekday: int
    kind: ConflictKind
    details: str
    blocking: bool = False
    participant_role: Optional[str] = None
    participant_id: Optional[int] = None
    teacher_slots: List[TimeSlot] = []
    student_slots: List[TimeSlot] = []
    shared_slots: List[TimeSlot] = []
    strategy: Optional[SharedStrategy] = None


class PreviewSummary(BaseModel):
    total_sessions: int = 0
    sessions_with_conflicts: int = 0
    valid_sessions: int = 0


class PreviewResult(BaseModel):
    series_id: int
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    conflicts: List[ConflictInfo] = []
    conflicts_by_date: Dict[str, List[ConflictInfo]] = {}
    summary: PreviewSummary = PreviewSummary()
    message: str = ""
    requires_confirmation: bool = False
