from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from generation import service as generation_service
from generation.preview import preview as preview_series
from generation.schema import AdvancePayload, AdvanceSummary, GenerateOptions, GenerationResult, PreviewResult

from .models import SeriesStatus
from .schema import SeriesSchema, SeriesCreatePayload, SeriesUpdate
from . import service

series_router = APIRouter(prefix="/series", tags=["Series"])


@series_router.get("", response_model=list[SeriesSchema])
def list_series(
    branch_id: Optional[int] = Query(None),
    status: Optional[SeriesStatus] = Query(None),
    teacher_id: Optional[int] = Query(None),
    student_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return service.list_series(db, branch_id=branch_id, status=status, teacher_id=teacher_id, student_id=student_id)


@series_router.post("", response_model=SeriesSchema, status_code=status.HTTP_201_CREATED)
def create_series(
    payload: SeriesCreatePayload,
    db: Session = Depends(get_db),
):
    try:
        return service.create_series(db, payload)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="series conflicts with existing data")


# Batch run for schedulers; declared before /{series_id} routes
@series_router.post("/advance", response_model=AdvanceSummary)
def advance_series(
    payload: Optional[AdvancePayload] = None,
    db: Session = Depends(get_db),
):
    payload = payload or AdvancePayload()
    return generation_service.advance_due_series(
        db,
        branch_id=payload.branch_id,
        series_id=payload.series_id,
        limit=payload.limit,
        lead_days=payload.lead_days,
        today=payload.today,
    )


@series_router.get("/{series_id}", response_model=SeriesSchema)
def get_series(
    series_id: int,
    db: Session = Depends(get_db),
):
    return service.get_series_or_404(db, series_id)


@series_router.patch("/{series_id}", response_model=SeriesSchema)
def update_series(
    series_id: int,
    payload: SeriesUpdate,
    db: Session = Depends(get_db),
):
    row = service.update_series(db, series_id, payload)
    if not row:
        raise HTTPException(status_code=404, detail="series not found")
    return row


@series_router.delete("/{series_id}")
def delete_series(
    series_id: int,
    db: Session = Depends(get_db),
):
    if not service.delete_series(db, series_id):
        raise HTTPException(status_code=404, detail="series not found")
    return {"message": "series deleted"}


@series_router.post("/{series_id}/generate", response_model=GenerationResult)
def generate_occurrences(
    series_id: int,
    payload: Optional[GenerateOptions] = None,
    db: Session = Depends(get_db),
):
    return generation_service.generate(db, series_id, payload)


@series_router.get("/{series_id}/preview", response_model=PreviewResult)
def preview_conflicts(
    series_id: int,
    horizon_days: Optional[int] = Query(None, ge=1, description="capped at MAX_PREVIEW_HORIZON_DAYS"),
    db: Session = Depends(get_db),
):
    return preview_series(db, series_id, horizon_days)
