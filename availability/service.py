from __future__ import annotations
import logging
from datetime import date
from typing import Optional, List, Iterable

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import AvailabilityRecord, AvailabilityKind, ApprovalStatus
from .schema import (
    AvailabilityCreatePayload,
    AvailabilityDetails,
    AvailabilityConflictKind,
    SharedAvailabilityResult,
    SharedStrategy,
)
from .slots import TimeSlot, FULL_DAY, subtract, intersect, any_contains
from blackout import service as blackout_service

logger = logging.getLogger(__name__)


# -------- queries --------

def get_availability_records(
    db: Session,
    *,
    owner_id: Optional[int] = None,
    kind: Optional[AvailabilityKind] = None,
    status: Optional[ApprovalStatus] = None,
) -> List[AvailabilityRecord]:
    stmt = select(AvailabilityRecord)
    if owner_id is not None:
        stmt = stmt.where(AvailabilityRecord.owner_id == owner_id)
    if kind is not None:
        stmt = stmt.where(AvailabilityRecord.kind == kind)
    if status is not None:
        stmt = stmt.where(AvailabilityRecord.status == status)
    stmt = stmt.order_by(AvailabilityRecord.owner_id, AvailabilityRecord.id)
    return list(db.scalars(stmt))


def find_approved(
    db: Session,
    owner_id: int,
    kind: AvailabilityKind,
    *,
    on_date: Optional[date] = None,
    weekday: Optional[int] = None,
) -> List[AvailabilityRecord]:
    """Approved records of one kind: regular by weekday, exception/absence by exact date."""
    stmt = select(AvailabilityRecord).where(
        AvailabilityRecord.owner_id == owner_id,
        AvailabilityRecord.kind == kind,
        AvailabilityRecord.status == ApprovalStatus.approved,
    )
    if kind == AvailabilityKind.regular:
        if weekday is None:
            raise ValueError("regular availability is looked up by weekday")
        stmt = stmt.where(AvailabilityRecord.weekday == weekday)
    elif kind in (AvailabilityKind.exception, AvailabilityKind.absence):
        if on_date is None:
            raise ValueError(f"{kind.value} availability is looked up by date")
        stmt = stmt.where(AvailabilityRecord.date == on_date)
    else:
        raise ValueError(f"unknown availability kind: {kind!r}")
    stmt = stmt.order_by(AvailabilityRecord.start_time, AvailabilityRecord.id)
    return list(db.scalars(stmt))


# -------- mutations --------

def create_availability(db: Session, payload: AvailabilityCreatePayload) -> AvailabilityRecord:
    if not payload.full_day and payload.start_time >= payload.end_time:
        raise HTTPException(status_code=422, detail="start time must be before end time")
    row = AvailabilityRecord(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def set_availability_status(db: Session, record_id: int, status: ApprovalStatus) -> AvailabilityRecord | None:
    row = db.get(AvailabilityRecord, record_id)
    if not row:
        return None
    row.status = status
    db.commit()
    db.refresh(row)
    return row


def delete_availability(db: Session, record_id: int) -> bool:
    row = db.get(AvailabilityRecord, record_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


# -------- resolution --------

def records_to_slots(records: Iterable[AvailabilityRecord]) -> List[TimeSlot]:
    slots: list[TimeSlot] = []
    for r in records:
        if r.full_day:
            slots.append(FULL_DAY)
        elif r.start_time is not None and r.end_time is not None:
            slots.append(TimeSlot.from_times(r.start_time, r.end_time))
    return slots


def resolve_availability(
    db: Session,
    owner_id: int,
    on_date: date,
    window: Optional[TimeSlot] = None,
) -> AvailabilityDetails:
    """
    Effective availability for one owner on one date.

    Exception records replace the weekly pattern outright for that date;
    approved absences are then cut out of whichever baseline won.
    """
    exception_slots = records_to_slots(find_approved(db, owner_id, AvailabilityKind.exception, on_date=on_date))
    regular_slots = records_to_slots(find_approved(db, owner_id, AvailabilityKind.regular, weekday=on_date.weekday()))
    absence_slots = records_to_slots(find_approved(db, owner_id, AvailabilityKind.absence, on_date=on_date))

    effective = list(exception_slots) if exception_slots else list(regular_slots)
    if absence_slots:
        effective = subtract(effective, absence_slots)

    conflict_kind: Optional[AvailabilityConflictKind] = None
    if window is not None:
        available = any_contains(effective, window)
        if not available:
            conflict_kind = AvailabilityConflictKind.wrong_time if effective else AvailabilityConflictKind.unavailable
    else:
        available = bool(effective)
        if not available:
            conflict_kind = AvailabilityConflictKind.unavailable

    return AvailabilityDetails(
        available=available,
        has_exceptions=bool(exception_slots),
        has_regular=bool(regular_slots),
        exception_slots=exception_slots,
        regular_slots=regular_slots,
        effective_slots=effective,
        conflict_kind=conflict_kind,
    )


def _blacked_out(message: str) -> SharedAvailabilityResult:
    empty = AvailabilityDetails(available=False, conflict_kind=AvailabilityConflictKind.unavailable)
    return SharedAvailabilityResult(
        a=empty,
        b=empty,
        shared_slots=[],
        available=False,
        strategy=SharedStrategy.none,
        message=message,
    )


def resolve_shared(
    db: Session,
    owner_a: int,
    owner_b: int,
    on_date: date,
    window: Optional[TimeSlot] = None,
    *,
    skip_blackout_check: bool = False,
    branch_id: Optional[int] = None,
) -> SharedAvailabilityResult:
    if not skip_blackout_check:
        period = blackout_service.find_covering(db, on_date, branch_id=branch_id)
        if period is not None:
            logger.debug(
                "shared_availability_blackout",
                extra={"on_date": on_date.isoformat(), "blackout_id": period.id},
            )
            return _blacked_out(f"{on_date.isoformat()} falls in blackout period '{period.label}'")

    a = resolve_availability(db, owner_a, on_date, window)
    b = resolve_availability(db, owner_b, on_date, window)
    return combine_shared(a, b, window)


def combine_shared(
    a: AvailabilityDetails,
    b: AvailabilityDetails,
    window: Optional[TimeSlot] = None,
) -> SharedAvailabilityResult:
    """Shared availability of two owners whose details are already resolved."""
    shared = intersect(a.effective_slots, b.effective_slots)

    if not shared:
        strategy = SharedStrategy.none
    elif a.has_exceptions and b.has_exceptions:
        strategy = SharedStrategy.exception
    elif not a.has_exceptions and not b.has_exceptions:
        strategy = SharedStrategy.regular
    else:
        strategy = SharedStrategy.mixed

    message: Optional[str] = None
    if not shared:
        available = False
        message = "no time on this date when both participants are available"
    elif window is not None:
        available = any_contains(shared, window)
        if not available:
            message = f"requested window {window} is outside the shared availability"
    else:
        available = True

    return SharedAvailabilityResult(
        a=a,
        b=b,
        shared_slots=shared,
        available=available,
        strategy=strategy,
        message=message,
    )
