"""Conflict kinds raised while materializing or previewing a series."""
from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from availability.schema import AvailabilityConflictKind


class ConflictKind(str, Enum):
    # hard: double-booked against another occurrence
    booth_conflict = "booth_conflict"
    teacher_conflict = "teacher_conflict"
    student_conflict = "student_conflict"
    # soft: participant availability does not cover the window
    teacher_unavailable = "teacher_unavailable"
    student_unavailable = "student_unavailable"
    teacher_wrong_time = "teacher_wrong_time"
    student_wrong_time = "student_wrong_time"
    # informational
    no_shared_availability = "no_shared_availability"
    # date falls in a blackout period
    blackout = "blackout"


HARD_CONFLICT_KINDS = frozenset({
    ConflictKind.booth_conflict,
    ConflictKind.teacher_conflict,
    ConflictKind.student_conflict,
})

AVAILABILITY_KINDS = frozenset({
    ConflictKind.teacher_unavailable,
    ConflictKind.student_unavailable,
    ConflictKind.teacher_wrong_time,
    ConflictKind.student_wrong_time,
    ConflictKind.no_shared_availability,
})


def is_hard_conflict(kind: ConflictKind) -> bool:
    return kind in HARD_CONFLICT_KINDS


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return (a_start < b_end) and (a_end > b_start)


def detect_hard_conflicts(
    *,
    start_at: datetime,
    end_at: datetime,
    teacher_id: Optional[int],
    student_id: Optional[int],
    booth_id: Optional[int],
    same_day: Iterable,
) -> List[ConflictKind]:
    """At most one entry per hard kind, in booth/teacher/student order."""
    found: set[ConflictKind] = set()
    for occ in same_day:
        if not _overlaps(start_at, end_at, _aware(occ.start_at), _aware(occ.end_at)):
            continue
        if booth_id is not None and occ.booth_id == booth_id:
            found.add(ConflictKind.booth_conflict)
        if teacher_id is not None and occ.teacher_id == teacher_id:
            found.add(ConflictKind.teacher_conflict)
        if student_id is not None and occ.student_id == student_id:
            found.add(ConflictKind.student_conflict)
    order = (ConflictKind.booth_conflict, ConflictKind.teacher_conflict, ConflictKind.student_conflict)
    return [k for k in order if k in found]


def availability_conflict(role: str, kind: AvailabilityConflictKind) -> ConflictKind:
    """Map a resolver verdict for a teacher/student onto the series conflict kind."""
    if role not in ("teacher", "student"):
        raise ValueError(f"unknown participant role: {role!r}")
    if kind == AvailabilityConflictKind.unavailable:
        return ConflictKind(f"{role}_unavailable")
    if kind == AvailabilityConflictKind.wrong_time:
        return ConflictKind(f"{role}_wrong_time")
    raise ValueError(f"unknown availability conflict kind: {kind!r}")
