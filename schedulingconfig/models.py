from __future__ import annotations
from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column
from core.database import Base


class BranchSchedulingConfig(Base):
    """Per-branch overrides; NULL means inherit the global default."""
    __tablename__ = "branch_scheduling_configs"

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(Integer, unique=True, index=True, nullable=False)

    mark_booth_conflict:          Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_teacher_conflict:        Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_student_conflict:        Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_teacher_unavailable:     Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_student_unavailable:     Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_teacher_wrong_time:      Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_student_wrong_time:      Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_no_shared_availability:  Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mark_blackout:                Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    allow_outside_availability_teacher: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    allow_outside_availability_student: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    generation_lead_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
