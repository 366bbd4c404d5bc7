from __future__ import annotations
from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db

from .models import AvailabilityKind
from .schema import (
    AvailabilityRecordSchema,
    AvailabilityCreatePayload,
    AvailabilityStatusUpdate,
    AvailabilityDetails,
    SharedAvailabilityResult,
)
from .slots import TimeSlot
from . import service

availability_router = APIRouter(prefix="/availability", tags=["Availability"])


def _window(start_time: Optional[time], end_time: Optional[time]) -> Optional[TimeSlot]:
    if start_time is None and end_time is None:
        return None
    if start_time is None or end_time is None:
        raise HTTPException(status_code=422, detail="start_time and end_time must be provided together")
    if start_time >= end_time:
        raise HTTPException(status_code=422, detail="start_time must be before end_time")
    return TimeSlot.from_times(start_time, end_time)


@availability_router.get("", response_model=list[AvailabilityRecordSchema])
def list_availability(
    owner_id: Optional[int] = Query(None),
    kind: Optional[AvailabilityKind] = Query(None),
    db: Session = Depends(get_db),
):
    return service.get_availability_records(db, owner_id=owner_id, kind=kind)


@availability_router.post("", response_model=AvailabilityRecordSchema, status_code=status.HTTP_201_CREATED)
def create_availability(
    payload: AvailabilityCreatePayload,
    db: Session = Depends(get_db),
):
    try:
        return service.create_availability(db, payload)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="availability record conflicts with an existing one")


@availability_router.patch("/{record_id}/status", response_model=AvailabilityRecordSchema)
def update_availability_status(
    record_id: int,
    payload: AvailabilityStatusUpdate,
    db: Session = Depends(get_db),
):
    row = service.set_availability_status(db, record_id, payload.status)
    if not row:
        raise HTTPException(status_code=404, detail="availability not found")
    return row


@availability_router.delete("/{record_id}")
def delete_availability(
    record_id: int,
    db: Session = Depends(get_db),
):
    if not service.delete_availability(db, record_id):
        raise HTTPException(status_code=404, detail="availability not found")
    return {"message": "availability deleted"}


@availability_router.get("/resolve", response_model=AvailabilityDetails)
def resolve_availability(
    owner_id: int,
    on_date: date,
    start_time: Optional[time] = Query(None),
    end_time: Optional[time] = Query(None),
    db: Session = Depends(get_db),
):
    return service.resolve_availability(db, owner_id, on_date, _window(start_time, end_time))


@availability_router.get("/shared", response_model=SharedAvailabilityResult)
def resolve_shared(
    owner_a: int,
    owner_b: int,
    on_date: date,
    start_time: Optional[time] = Query(None),
    end_time: Optional[time] = Query(None),
    branch_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return service.resolve_shared(
        db, owner_a, owner_b, on_date, _window(start_time, end_time), branch_id=branch_id
    )
