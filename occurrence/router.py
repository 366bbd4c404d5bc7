from __future__ import annotations
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from core.database import get_db

from .schema import OccurrenceSchema
from . import service

occurrence_router = APIRouter(prefix="/occurrences", tags=["Occurrences"])


@occurrence_router.get("", response_model=list[OccurrenceSchema])
def list_occurrences(
    series_id: Optional[int] = Query(None),
    branch_id: Optional[int] = Query(None),
    teacher_id: Optional[int] = Query(None),
    student_id: Optional[int] = Query(None),
    booth_id: Optional[int] = Query(None),
    on_date: Optional[date] = Query(None),
    start_date: Optional[date] = Query(None, description="date >= start_date"),
    end_date: Optional[date] = Query(None, description="date <= end_date"),
    include_cancelled: bool = Query(True),
    db: Session = Depends(get_db),
):
    return service.get_occurrences(
        db,
        series_id=series_id,
        branch_id=branch_id,
        teacher_id=teacher_id,
        student_id=student_id,
        booth_id=booth_id,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        include_cancelled=include_cancelled,
    )


@occurrence_router.get("/{occurrence_id}", response_model=OccurrenceSchema)
def get_occurrence(
    occurrence_id: int,
    db: Session = Depends(get_db),
):
    obj = service.get_occurrence(db, occurrence_id)
    if not obj:
        raise HTTPException(status_code=404, detail="occurrence not found")
    return obj
