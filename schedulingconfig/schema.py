from __future__ import annotations
from typing import Dict, Iterable, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from generation.conflicts import AVAILABILITY_KINDS, ConflictKind


class ConflictPolicy(BaseModel):
    """Which detected conflict kinds turn a generated occurrence into `conflicted`."""
    mark_as_conflicted: Dict[ConflictKind, bool]
    allow_outside_availability_teacher: bool = False
    allow_outside_availability_student: bool = False
    generation_lead_days: int = Field(30, ge=1)

    def _allowed(self, kind: ConflictKind) -> bool:
        if kind not in AVAILABILITY_KINDS:
            return False
        teacher = self.allow_outside_availability_teacher
        student = self.allow_outside_availability_student
        if kind == ConflictKind.no_shared_availability:
            return teacher and student
        return teacher if kind.value.startswith("teacher_") else student

    def blocking(self, kinds: Iterable[ConflictKind]) -> List[ConflictKind]:
        return [k for k in kinds if self.mark_as_conflicted.get(k, False) and not self._allowed(k)]

    def marks(self, kinds: Iterable[ConflictKind]) -> bool:
        return bool(self.blocking(kinds))


# ---------- Client → API / series override (all optional) ----------
class ConflictPolicyPatch(BaseModel):
    mark_as_conflicted: Optional[Dict[ConflictKind, bool]] = None
    allow_outside_availability_teacher: Optional[bool] = None
    allow_outside_availability_student: Optional[bool] = None
    generation_lead_days: Optional[int] = Field(None, ge=1)

    model_config = ConfigDict(extra="forbid")


class BranchConfigSchema(BaseModel):
    branch_id: int
    overrides: ConflictPolicyPatch
    effective: ConflictPolicy
