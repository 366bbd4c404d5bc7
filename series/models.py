from __future__ import annotations
from datetime import date, datetime, time
from enum import Enum
from typing import Any
from sqlalchemy import (
    JSON, CheckConstraint, Date, DateTime, Enum as SAEnum, Index, Integer, String, Text, Time, func,
)
from sqlalchemy.orm import Mapped, mapped_column
from core.database import Base


class SeriesStatus(str, Enum):
    active = "active"
    paused = "paused"


class ClassSeries(Base):
    """Weekly recurring lesson pattern that occurrences are generated from."""
    __tablename__ = "class_series"

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    teacher_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    student_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    booth_id:   Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    start_date: Mapped[date] = mapped_column(Date(), nullable=False)
    end_date:   Mapped[date | None] = mapped_column(Date(), nullable=True)

    # local wall clock in `timezone`
    start_time: Mapped[time] = mapped_column(Time(timezone=False), nullable=False)
    end_time:   Mapped[time] = mapped_column(Time(timezone=False), nullable=False)
    duration:   Mapped[int] = mapped_column(Integer, nullable=False)  # minutes

    # 0=Mon .. 6=Sun
    days_of_week: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[SeriesStatus] = mapped_column(
        SAEnum(SeriesStatus, name="series_status"), nullable=False, default=SeriesStatus.active
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)

    # last date fully processed by generation; only moves forward
    last_generated_through: Mapped[date | None] = mapped_column(Date(), nullable=True)

    conflict_policy: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_series_window"),
        CheckConstraint("end_date IS NULL OR start_date <= end_date", name="ck_series_range"),
        CheckConstraint(
            "last_generated_through IS NULL OR end_date IS NULL OR last_generated_through <= end_date",
            name="ck_series_watermark",
        ),
        Index("ix_series_status_updated", "status", "updated_at"),
    )
