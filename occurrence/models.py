from __future__ import annotations
from datetime import date as date_type, datetime, time
from enum import Enum
from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Date, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String,
    Text, Time, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from core.database import Base


class OccurrenceStatus(str, Enum):
    confirmed = "confirmed"
    conflicted = "conflicted"


class Occurrence(Base):
    __tablename__ = "occurrences"

    id: Mapped[int] = mapped_column(primary_key=True)

    # NULL for standalone bookings, and once the series is deleted
    series_id: Mapped[int | None] = mapped_column(
        ForeignKey("class_series.id", ondelete="SET NULL"), index=True, nullable=True
    )
    branch_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    teacher_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    student_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    booth_id:   Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    # civil date + local wall clock in `timezone`
    date: Mapped[date_type] = mapped_column(Date(), nullable=False)
    start_time: Mapped[time] = mapped_column(Time(timezone=False), nullable=False)
    end_time:   Mapped[time] = mapped_column(Time(timezone=False), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)

    # the same window as absolute instants (UTC)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at:   Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OccurrenceStatus] = mapped_column(
        SAEnum(OccurrenceStatus, name="occurrence_status"), nullable=False, default=OccurrenceStatus.confirmed
    )
    # conflict kinds detected at creation time
    conflict_reasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    __table_args__ = (
        UniqueConstraint("series_id", "date", "start_time", "end_time", name="uq_occurrence_identity"),
        CheckConstraint("start_at < end_at", name="ck_occurrence_window"),
        Index("ix_occurrences_date_teacher", "date", "teacher_id"),
        Index("ix_occurrences_date_student", "date", "student_id"),
        Index("ix_occurrences_date_booth", "date", "booth_id"),
    )
