from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from core.database import get_db

from .schema import BlackoutSchema, BlackoutCreatePayload
from . import service

blackout_router = APIRouter(prefix="/blackouts", tags=["Blackouts"])


@blackout_router.get("", response_model=list[BlackoutSchema])
def list_blackouts(
    branch_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return service.get_blackouts(db, branch_id=branch_id)


@blackout_router.post("", response_model=BlackoutSchema, status_code=status.HTTP_201_CREATED)
def create_blackout(
    payload: BlackoutCreatePayload,
    db: Session = Depends(get_db),
):
    return service.create_blackout(db, payload)


@blackout_router.delete("/{blackout_id}")
def delete_blackout(
    blackout_id: int,
    db: Session = Depends(get_db),
):
    if not service.delete_blackout(db, blackout_id):
        raise HTTPException(status_code=404, detail="blackout not found")
    return {"message": "blackout deleted"}
