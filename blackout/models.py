from __future__ import annotations
from datetime import date
from sqlalchemy import Boolean, CheckConstraint, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from core.database import Base


class BlackoutPeriod(Base):
    __tablename__ = "blackout_periods"

    id: Mapped[int] = mapped_column(primary_key=True)
    # NULL applies to every branch
    branch_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    label: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date(), nullable=False)
    end_date:   Mapped[date] = mapped_column(Date(), nullable=False)

    # recurring periods match on month/day every year, e.g. Dec 28 - Jan 3
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("is_recurring OR start_date <= end_date", name="ck_blackout_range"),
        Index("ix_blackout_range", "start_date", "end_date"),
    )
