"""Conflict evaluation of one candidate date, shared by generation and preview."""
from __future__ import annotations
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from availability import service as availability_service
from availability.schema import AvailabilityDetails, SharedAvailabilityResult
from availability.slots import TimeSlot
from blackout import service as blackout_service
from blackout.models import BlackoutPeriod
from occurrence.models import Occurrence
from series.models import ClassSeries
from .conflicts import ConflictKind, availability_conflict, detect_hard_conflicts
from .window import local_instants


class DateEvaluation(BaseModel):
    on_date: date
    start_at: datetime
    end_at: datetime
    hard: List[ConflictKind] = []
    blackout: Optional[BlackoutPeriod] = None
    teacher: Optional[AvailabilityDetails] = None
    student: Optional[AvailabilityDetails] = None
    shared: Optional[SharedAvailabilityResult] = None
    soft: List[ConflictKind] = []

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def kinds(self) -> List[ConflictKind]:
        out = list(self.hard)
        if self.blackout is not None:
            out.append(ConflictKind.blackout)
        return out + self.soft


def group_by_date(occurrences: Iterable[Occurrence]) -> Dict[date, List[Occurrence]]:
    grouped: Dict[date, List[Occurrence]] = defaultdict(list)
    for occ in occurrences:
        grouped[occ.date].append(occ)
    return grouped


def _is_own_slot(series: ClassSeries, occ: Occurrence) -> bool:
    # an earlier run of this same series is not a double booking
    return (
        occ.series_id == series.id
        and occ.start_time == series.start_time
        and occ.end_time == series.end_time
    )


def evaluate_date(
    db: Session,
    series: ClassSeries,
    on_date: date,
    *,
    same_day: Sequence[Occurrence],
    blackouts: Sequence[BlackoutPeriod],
) -> DateEvaluation:
    start_at, end_at = local_instants(on_date, series.start_time, series.end_time, series.timezone)
    window = TimeSlot.from_times(series.start_time, series.end_time)

    hard = detect_hard_conflicts(
        start_at=start_at,
        end_at=end_at,
        teacher_id=series.teacher_id,
        student_id=series.student_id,
        booth_id=series.booth_id,
        same_day=[o for o in same_day if not _is_own_slot(series, o)],
    )
    period = next((p for p in blackouts if blackout_service.covers(p, on_date)), None)

    soft: List[ConflictKind] = []
    teacher = student = None
    shared = None
    if series.teacher_id is not None:
        teacher = availability_service.resolve_availability(db, series.teacher_id, on_date, window)
        if not teacher.available:
            soft.append(availability_conflict("teacher", teacher.conflict_kind))
    if series.student_id is not None:
        student = availability_service.resolve_availability(db, series.student_id, on_date, window)
        if not student.available:
            soft.append(availability_conflict("student", student.conflict_kind))

    if teacher is not None and student is not None:
        shared = availability_service.combine_shared(teacher, student, window)
        # both have hours that day, at least one fits the lesson, but never together
        if (
            not shared.available
            and teacher.effective_slots
            and student.effective_slots
            and (teacher.available or student.available)
        ):
            soft.append(ConflictKind.no_shared_availability)

    return DateEvaluation(
        on_date=on_date,
        start_at=start_at,
        end_at=end_at,
        hard=hard,
        blackout=period,
        teacher=teacher,
        student=student,
        shared=shared,
        soft=soft,
    )
