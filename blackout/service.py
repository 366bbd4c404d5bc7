from __future__ import annotations
from datetime import date
from typing import Optional, List

from fastapi import HTTPException
from sqlalchemy import select, and_, or_
from sqlalchemy.orm import Session

from .models import BlackoutPeriod
from .schema import BlackoutCreatePayload


# -------- helpers --------

def _month_day(d: date) -> int:
    return d.month * 100 + d.day


def covers(period: BlackoutPeriod, on_date: date) -> bool:
    if not period.is_recurring:
        return period.start_date <= on_date <= period.end_date
    target = _month_day(on_date)
    start, end = _month_day(period.start_date), _month_day(period.end_date)
    if start <= end:
        return start <= target <= end
    # wraps the new year
    return target >= start or target <= end


def _branch_clause(branch_id: Optional[int]):
    # no branch given: every period counts
    if branch_id is None:
        return None
    return or_(BlackoutPeriod.branch_id.is_(None), BlackoutPeriod.branch_id == branch_id)


# -------- queries --------

def get_blackouts(db: Session, *, branch_id: Optional[int] = None) -> List[BlackoutPeriod]:
    stmt = select(BlackoutPeriod)
    clause = _branch_clause(branch_id)
    if clause is not None:
        stmt = stmt.where(clause)
    stmt = stmt.order_by(BlackoutPeriod.start_date, BlackoutPeriod.id)
    return list(db.scalars(stmt))


def find_covering(db: Session, on_date: date, *, branch_id: Optional[int] = None) -> BlackoutPeriod | None:
    """First blackout period covering `on_date`, recurring periods included."""
    stmt = select(BlackoutPeriod).where(
        or_(
            BlackoutPeriod.is_recurring.is_(True),
            and_(BlackoutPeriod.start_date <= on_date, BlackoutPeriod.end_date >= on_date),
        )
    )
    clause = _branch_clause(branch_id)
    if clause is not None:
        stmt = stmt.where(clause)
    stmt = stmt.order_by(BlackoutPeriod.start_date, BlackoutPeriod.id)
    for period in db.scalars(stmt):
        if covers(period, on_date):
            return period
    return None


# -------- mutations --------

def create_blackout(db: Session, payload: BlackoutCreatePayload) -> BlackoutPeriod:
    if not payload.is_recurring and payload.end_date < payload.start_date:
        raise HTTPException(status_code=422, detail="end_date must be on/after start_date")
    row = BlackoutPeriod(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_blackout(db: Session, blackout_id: int) -> bool:
    row = db.get(BlackoutPeriod, blackout_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True
