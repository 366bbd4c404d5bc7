from __future__ import annotations
from datetime import date, time
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import select, or_, exists
from sqlalchemy.orm import Session

from .models import Occurrence
from .schema import OccurrenceCreate


def get_occurrence(db: Session, occurrence_id: int) -> Occurrence | None:
    return db.get(Occurrence, occurrence_id)


def get_occurrences(
    db: Session,
    *,
    series_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    student_id: Optional[int] = None,
    booth_id: Optional[int] = None,
    on_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    include_cancelled: bool = True,
) -> list[Occurrence]:
    stmt = select(Occurrence)
    if series_id is not None:
        stmt = stmt.where(Occurrence.series_id == series_id)
    if branch_id is not None:
        stmt = stmt.where(Occurrence.branch_id == branch_id)
    if teacher_id is not None:
        stmt = stmt.where(Occurrence.teacher_id == teacher_id)
    if student_id is not None:
        stmt = stmt.where(Occurrence.student_id == student_id)
    if booth_id is not None:
        stmt = stmt.where(Occurrence.booth_id == booth_id)
    if on_date is not None:
        stmt = stmt.where(Occurrence.date == on_date)
    if start_date is not None:
        stmt = stmt.where(Occurrence.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Occurrence.date <= end_date)
    if not include_cancelled:
        stmt = stmt.where(Occurrence.is_cancelled.is_(False))
    stmt = stmt.order_by(Occurrence.date, Occurrence.start_time, Occurrence.id)
    return list(db.scalars(stmt))


def find_by_dates_and_participants(
    db: Session,
    dates: Iterable[date],
    *,
    teacher_id: Optional[int] = None,
    student_id: Optional[int] = None,
    booth_id: Optional[int] = None,
) -> list[Occurrence]:
    """Live (not cancelled) occurrences on any of `dates` touching any of the given refs."""
    dates = list(dates)
    refs = []
    if teacher_id is not None:
        refs.append(Occurrence.teacher_id == teacher_id)
    if student_id is not None:
        refs.append(Occurrence.student_id == student_id)
    if booth_id is not None:
        refs.append(Occurrence.booth_id == booth_id)
    if not dates or not refs:
        return []

    stmt = (
        select(Occurrence)
        .where(
            Occurrence.date.in_(dates),
            Occurrence.is_cancelled.is_(False),
            or_(*refs),
        )
        .order_by(Occurrence.date, Occurrence.start_time, Occurrence.id)
    )
    return list(db.scalars(stmt))


def exists_by_identity_key(db: Session, series_id: int, on_date: date, start_time: time, end_time: time) -> bool:
    stmt = select(
        exists().where(
            Occurrence.series_id == series_id,
            Occurrence.date == on_date,
            Occurrence.start_time == start_time,
            Occurrence.end_time == end_time,
        )
    )
    return bool(db.scalar(stmt))


def create_occurrence(db: Session, dto: OccurrenceCreate, *, commit: bool = True) -> Occurrence:
    if dto.start_at >= dto.end_at:
        raise HTTPException(status_code=422, detail="start_at must be before end_at")

    row = Occurrence(**dto.model_dump())
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    else:
        db.flush()
    return row
