from __future__ import annotations
import logging
from datetime import date
from typing import Optional, List

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.config_loader import settings
from occurrence.models import Occurrence
from .models import ClassSeries, SeriesStatus
from schedulingconfig.schema import ConflictPolicyPatch
from .schema import SeriesCreatePayload, SeriesUpdate, window_minutes

logger = logging.getLogger(__name__)


# ---------- Queries ----------

def get_series(db: Session, series_id: int) -> ClassSeries | None:
    return db.get(ClassSeries, series_id)


def get_series_or_404(db: Session, series_id: int) -> ClassSeries:
    row = db.get(ClassSeries, series_id)
    if not row:
        raise HTTPException(status_code=404, detail="series not found")
    return row


def list_series(
    db: Session,
    *,
    branch_id: Optional[int] = None,
    status: Optional[SeriesStatus] = None,
    teacher_id: Optional[int] = None,
    student_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[ClassSeries]:
    stmt = select(ClassSeries)
    if branch_id is not None:
        stmt = stmt.where(ClassSeries.branch_id == branch_id)
    if status is not None:
        stmt = stmt.where(ClassSeries.status == status)
    if teacher_id is not None:
        stmt = stmt.where(ClassSeries.teacher_id == teacher_id)
    if student_id is not None:
        stmt = stmt.where(ClassSeries.student_id == student_id)
    # least recently touched first, so batch runs rotate fairly
    stmt = stmt.order_by(ClassSeries.updated_at.asc(), ClassSeries.id.asc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


# ---------- Mutations ----------

def _policy_json(patch: Optional[ConflictPolicyPatch]) -> Optional[dict]:
    if patch is None:
        return None
    return patch.model_dump(mode="json", exclude_none=True) or None


def create_series(db: Session, payload: SeriesCreatePayload) -> ClassSeries:
    if payload.start_time >= payload.end_time:
        raise HTTPException(status_code=422, detail="start time must be before end time")

    data = payload.model_dump()
    data["timezone"] = payload.timezone or settings.DEFAULT_TIMEZONE
    data["duration"] = payload.duration or window_minutes(payload.start_time, payload.end_time)
    data["conflict_policy"] = _policy_json(payload.conflict_policy)

    row = ClassSeries(**data)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("series_created", extra={"series_id": row.id, "branch_id": row.branch_id})
    return row


def update_series(db: Session, series_id: int, patch: SeriesUpdate) -> ClassSeries | None:
    row = db.get(ClassSeries, series_id)
    if not row:
        return None

    data = patch.model_dump(exclude_unset=True)
    if "conflict_policy" in data:
        data["conflict_policy"] = _policy_json(patch.conflict_policy)
    new_end = data.get("end_date", row.end_date)
    if new_end is not None:
        if new_end < row.start_date:
            raise HTTPException(status_code=422, detail="end_date must be on/after start_date")
        if row.last_generated_through is not None and new_end < row.last_generated_through:
            raise HTTPException(status_code=422, detail="end_date cannot precede dates already generated")

    for k, v in data.items():
        setattr(row, k, v)
    db.commit()
    db.refresh(row)
    return row


def update_watermark(db: Session, series: ClassSeries, through: date) -> None:
    """Stage a forward-only watermark move; the caller owns the commit."""
    if series.last_generated_through is not None and through < series.last_generated_through:
        raise ValueError("watermark cannot move backwards")
    if series.end_date is not None and through > series.end_date:
        raise ValueError("watermark cannot pass the series end date")
    series.last_generated_through = through


def delete_series(db: Session, series_id: int, *, commit: bool = True) -> bool:
    """Occurrences stay; they just lose their link to the series."""
    row = db.get(ClassSeries, series_id)
    if not row:
        return False
    # the FK nulls these too, but not every backend enforces it
    db.execute(update(Occurrence).where(Occurrence.series_id == series_id).values(series_id=None))
    db.delete(row)
    if commit:
        db.commit()
    logger.info("series_deleted", extra={"series_id": series_id})
    return True
