from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db

from .schema import BranchConfigSchema, ConflictPolicy, ConflictPolicyPatch
from . import service

scheduling_config_router = APIRouter(prefix="/scheduling-config", tags=["Scheduling Config"])


@scheduling_config_router.get("/defaults", response_model=ConflictPolicy)
def get_defaults():
    return service.default_policy()


@scheduling_config_router.get("/branches/{branch_id}", response_model=BranchConfigSchema)
def get_branch_config(
    branch_id: int,
    db: Session = Depends(get_db),
):
    return BranchConfigSchema(
        branch_id=branch_id,
        overrides=service.get_branch_overrides(db, branch_id),
        effective=service.get_effective_policy(db, branch_id),
    )


@scheduling_config_router.put("/branches/{branch_id}", response_model=BranchConfigSchema)
def save_branch_config(
    branch_id: int,
    payload: ConflictPolicyPatch,
    db: Session = Depends(get_db),
):
    service.upsert_branch_config(db, branch_id, payload)
    return BranchConfigSchema(
        branch_id=branch_id,
        overrides=service.get_branch_overrides(db, branch_id),
        effective=service.get_effective_policy(db, branch_id),
    )
