from __future__ import annotations
import logging
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config_loader import settings
from generation.conflicts import ConflictKind, HARD_CONFLICT_KINDS
from .models import BranchSchedulingConfig
from .schema import ConflictPolicy, ConflictPolicyPatch

logger = logging.getLogger(__name__)

_FLAGS = ("allow_outside_availability_teacher", "allow_outside_availability_student", "generation_lead_days")


def default_policy() -> ConflictPolicy:
    # hard overlaps and blackouts block; availability mismatches are advisory
    marks = {k: (k in HARD_CONFLICT_KINDS) for k in ConflictKind}
    marks[ConflictKind.blackout] = True
    return ConflictPolicy(
        mark_as_conflicted=marks,
        generation_lead_days=settings.GENERATION_LEAD_DAYS,
    )


def apply_patch(base: ConflictPolicy, patch: Optional[ConflictPolicyPatch]) -> ConflictPolicy:
    if patch is None:
        return base
    data = base.model_dump()
    if patch.mark_as_conflicted:
        data["mark_as_conflicted"] = {**base.mark_as_conflicted, **patch.mark_as_conflicted}
    for field in _FLAGS:
        value = getattr(patch, field)
        if value is not None:
            data[field] = value
    return ConflictPolicy.model_validate(data)


def _row_to_patch(row: BranchSchedulingConfig) -> ConflictPolicyPatch:
    marks = {}
    for kind in ConflictKind:
        value = getattr(row, f"mark_{kind.value}")
        if value is not None:
            marks[kind] = value
    return ConflictPolicyPatch(
        mark_as_conflicted=marks or None,
        **{f: getattr(row, f) for f in _FLAGS},
    )


def get_branch_config(db: Session, branch_id: int) -> BranchSchedulingConfig | None:
    return db.scalars(
        select(BranchSchedulingConfig).where(BranchSchedulingConfig.branch_id == branch_id)
    ).first()


def get_branch_overrides(db: Session, branch_id: int) -> ConflictPolicyPatch:
    row = get_branch_config(db, branch_id)
    return _row_to_patch(row) if row else ConflictPolicyPatch()


_KIND_VALUES = frozenset(k.value for k in ConflictKind)


def parse_series_override(raw: Any) -> Optional[ConflictPolicyPatch]:
    """Stored series override; entries that are unknown or fail validation are skipped."""
    if not raw or not isinstance(raw, dict):
        return None
    clean: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in ConflictPolicyPatch.model_fields:
            continue
        if key == "mark_as_conflicted" and isinstance(value, dict):
            value = {k: v for k, v in value.items() if k in _KIND_VALUES}
        try:
            ConflictPolicyPatch.model_validate({key: value})
        except ValidationError:
            logger.warning("series_override_entry_skipped", extra={"key": key})
            continue
        clean[key] = value
    return ConflictPolicyPatch.model_validate(clean)


def get_effective_policy(
    db: Session,
    branch_id: Optional[int],
    series_override: Any = None,
) -> ConflictPolicy:
    policy = default_policy()
    if branch_id is not None:
        row = get_branch_config(db, branch_id)
        if row is not None:
            policy = apply_patch(policy, _row_to_patch(row))
    return apply_patch(policy, parse_series_override(series_override))


def upsert_branch_config(db: Session, branch_id: int, patch: ConflictPolicyPatch) -> BranchSchedulingConfig:
    row = get_branch_config(db, branch_id)
    if row is None:
        row = BranchSchedulingConfig(branch_id=branch_id)
        db.add(row)

    for kind, value in (patch.mark_as_conflicted or {}).items():
        setattr(row, f"mark_{kind.value}", value)
    for field in _FLAGS:
        value = getattr(patch, field)
        if value is not None:
            setattr(row, field, value)

    db.commit()
    db.refresh(row)
    logger.info("branch_scheduling_config_saved", extra={"branch_id": branch_id})
    return row
