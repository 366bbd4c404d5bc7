"""Create series, occurrences, availability, blackouts, branch scheduling config

Revision ID: 3c7e9a41b2d5
Revises:
Create Date: 2025-11-03 10:12:44.219305
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c7e9a41b2d5"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

AVAILABILITY_KIND_ENUM = "availability_kind"
APPROVAL_STATUS_ENUM = "approval_status"
SERIES_STATUS_ENUM = "series_status"
OCCURRENCE_STATUS_ENUM = "occurrence_status"

MARK_COLUMNS = (
    "mark_booth_conflict",
    "mark_teacher_conflict",
    "mark_student_conflict",
    "mark_teacher_unavailable",
    "mark_student_unavailable",
    "mark_teacher_wrong_time",
    "mark_student_wrong_time",
    "mark_no_shared_availability",
    "mark_blackout",
)


def upgrade() -> None:
    # --- availability ---
    op.create_table(
        "availability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Enum("regular", "exception", "absence", name=AVAILABILITY_KIND_ENUM), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "rejected", name=APPROVAL_STATUS_ENUM),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("weekday", sa.Integer(), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("full_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("start_time", sa.Time(timezone=False), nullable=True),
        sa.Column("end_time", sa.Time(timezone=False), nullable=True),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(kind = 'regular' AND weekday IS NOT NULL AND date IS NULL) OR "
            "(kind <> 'regular' AND date IS NOT NULL AND weekday IS NULL)",
            name="ck_availability_scope",
        ),
        sa.CheckConstraint("weekday IS NULL OR weekday BETWEEN 0 AND 6", name="ck_availability_weekday"),
        sa.CheckConstraint(
            "full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_availability_window",
        ),
    )
    op.create_index(op.f("ix_availability_owner_id"), "availability", ["owner_id"], unique=False)
    op.create_index("ix_availability_owner_kind_date", "availability", ["owner_id", "kind", "date"], unique=False)
    op.create_index(
        "ix_availability_owner_kind_weekday", "availability", ["owner_id", "kind", "weekday"], unique=False
    )

    # --- blackout_periods ---
    op.create_table(
        "blackout_periods",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("is_recurring OR start_date <= end_date", name="ck_blackout_range"),
    )
    op.create_index(op.f("ix_blackout_periods_branch_id"), "blackout_periods", ["branch_id"], unique=False)
    op.create_index("ix_blackout_range", "blackout_periods", ["start_date", "end_date"], unique=False)

    # --- class_series ---
    op.create_table(
        "class_series",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("teacher_id", sa.Integer(), nullable=True),
        sa.Column("student_id", sa.Integer(), nullable=True),
        sa.Column("booth_id", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.Time(timezone=False), nullable=False),
        sa.Column("end_time", sa.Time(timezone=False), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("days_of_week", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "paused", name=SERIES_STATUS_ENUM),
            nullable=False,
            server_default="active",
        ),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("last_generated_through", sa.Date(), nullable=True),
        sa.Column("conflict_policy", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_time < end_time", name="ck_series_window"),
        sa.CheckConstraint("end_date IS NULL OR start_date <= end_date", name="ck_series_range"),
        sa.CheckConstraint(
            "last_generated_through IS NULL OR end_date IS NULL OR last_generated_through <= end_date",
            name="ck_series_watermark",
        ),
    )
    for col in ("branch_id", "teacher_id", "student_id", "booth_id"):
        op.create_index(op.f(f"ix_class_series_{col}"), "class_series", [col], unique=False)
    op.create_index("ix_series_status_updated", "class_series", ["status", "updated_at"], unique=False)

    # --- occurrences (outlive their series) ---
    op.create_table(
        "occurrences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("series_id", sa.Integer(), nullable=True),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("teacher_id", sa.Integer(), nullable=True),
        sa.Column("student_id", sa.Integer(), nullable=True),
        sa.Column("booth_id", sa.Integer(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(timezone=False), nullable=False),
        sa.Column("end_time", sa.Time(timezone=False), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("confirmed", "conflicted", name=OCCURRENCE_STATUS_ENUM),
            nullable=False,
            server_default="confirmed",
        ),
        sa.Column("conflict_reasons", sa.JSON(), nullable=False),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["series_id"], ["class_series.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("series_id", "date", "start_time", "end_time", name="uq_occurrence_identity"),
        sa.CheckConstraint("start_at < end_at", name="ck_occurrence_window"),
    )
    for col in ("series_id", "branch_id", "teacher_id", "student_id", "booth_id"):
        op.create_index(op.f(f"ix_occurrences_{col}"), "occurrences", [col], unique=False)
    op.create_index("ix_occurrences_date_teacher", "occurrences", ["date", "teacher_id"], unique=False)
    op.create_index("ix_occurrences_date_student", "occurrences", ["date", "student_id"], unique=False)
    op.create_index("ix_occurrences_date_booth", "occurrences", ["date", "booth_id"], unique=False)

    # --- branch_scheduling_configs (NULL = inherit default) ---
    op.create_table(
        "branch_scheduling_configs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        *[sa.Column(name, sa.Boolean(), nullable=True) for name in MARK_COLUMNS],
        sa.Column("allow_outside_availability_teacher", sa.Boolean(), nullable=True),
        sa.Column("allow_outside_availability_student", sa.Boolean(), nullable=True),
        sa.Column("generation_lead_days", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_branch_scheduling_configs_branch_id"), "branch_scheduling_configs", ["branch_id"], unique=True
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_branch_scheduling_configs_branch_id"), table_name="branch_scheduling_configs")
    op.drop_table("branch_scheduling_configs")

    for idx in ("ix_occurrences_date_booth", "ix_occurrences_date_student", "ix_occurrences_date_teacher"):
        op.drop_index(idx, table_name="occurrences")
    for col in ("booth_id", "student_id", "teacher_id", "branch_id", "series_id"):
        op.drop_index(op.f(f"ix_occurrences_{col}"), table_name="occurrences")
    op.drop_table("occurrences")

    op.drop_index("ix_series_status_updated", table_name="class_series")
    for col in ("booth_id", "student_id", "teacher_id", "branch_id"):
        op.drop_index(op.f(f"ix_class_series_{col}"), table_name="class_series")
    op.drop_table("class_series")

    op.drop_index("ix_blackout_range", table_name="blackout_periods")
    op.drop_index(op.f("ix_blackout_periods_branch_id"), table_name="blackout_periods")
    op.drop_table("blackout_periods")

    op.drop_index("ix_availability_owner_kind_weekday", table_name="availability")
    op.drop_index("ix_availability_owner_kind_date", table_name="availability")
    op.drop_index(op.f("ix_availability_owner_id"), table_name="availability")
    op.drop_table("availability")

    bind = op.get_bind()
    for name in (OCCURRENCE_STATUS_ENUM, SERIES_STATUS_ENUM, APPROVAL_STATUS_ENUM, AVAILABILITY_KIND_ENUM):
        sa.Enum(name=name).drop(bind, checkfirst=True)
