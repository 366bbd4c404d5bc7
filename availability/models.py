from __future__ import annotations
from datetime import date as date_type, time
from enum import Enum
from sqlalchemy import Boolean, CheckConstraint, Date, Enum as SAEnum, Index, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column
from core.database import Base


class AvailabilityKind(str, Enum):
    regular = "regular"        # weekly pattern, keyed by weekday
    exception = "exception"    # replaces the weekly pattern for one date
    absence = "absence"        # subtracted from whichever baseline is active


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AvailabilityRecord(Base):
    __tablename__ = "availability"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)

    kind: Mapped[AvailabilityKind] = mapped_column(
        SAEnum(AvailabilityKind, name="availability_kind"), nullable=False
    )
    status: Mapped[ApprovalStatus] = mapped_column(
        SAEnum(ApprovalStatus, name="approval_status"), nullable=False, default=ApprovalStatus.pending
    )

    # 0=Monday .. 6=Sunday, regular records only
    weekday: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # exception / absence records only
    date: Mapped[date_type | None] = mapped_column(Date(), nullable=True)

    full_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[time | None] = mapped_column(Time(timezone=False), nullable=True)
    end_time:   Mapped[time | None] = mapped_column(Time(timezone=False), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(kind = 'regular' AND weekday IS NOT NULL AND date IS NULL) OR "
            "(kind <> 'regular' AND date IS NOT NULL AND weekday IS NULL)",
            name="ck_availability_scope",
        ),
        CheckConstraint("weekday IS NULL OR weekday BETWEEN 0 AND 6", name="ck_availability_weekday"),
        CheckConstraint(
            "full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_availability_window",
        ),
        Index("ix_availability_owner_kind_date", "owner_id", "kind", "date"),
        Index("ix_availability_owner_kind_weekday", "owner_id", "kind", "weekday"),
    )
