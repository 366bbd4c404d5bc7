from __future__ import annotations
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from core.locks import LockProvider, get_lock_provider, try_lock
from blackout import service as blackout_service
from occurrence import service as occurrence_service
from occurrence.models import OccurrenceStatus
from occurrence.schema import OccurrenceCreate
from schedulingconfig.service import get_effective_policy
from series import service as series_service
from series.models import ClassSeries, SeriesStatus
from .evaluate import evaluate_date, group_by_date
from .schema import AdvanceFailure, AdvanceSummary, GenerateOptions, GenerationResult
from .window import GenerationWindow, candidate_dates, compute_window, today_in

logger = logging.getLogger(__name__)


def lock_key(series_id: int) -> str:
    return f"class_series:{series_id}"


def _window_for(series: ClassSeries, lead_days: int, today: Optional[date]) -> GenerationWindow:
    return compute_window(
        today=today or today_in(series.timezone),
        watermark=series.last_generated_through,
        start_date=series.start_date,
        end_date=series.end_date,
        lead_days=lead_days,
    )


# ---------- Generate occurrences for one series ----------

def generate(
    db: Session,
    series_id: int,
    options: Optional[GenerateOptions] = None,
    *,
    locks: Optional[LockProvider] = None,
) -> GenerationResult:
    """
    Materialize the occurrences a series owes up to its lead window.

    Safe to call repeatedly and concurrently: a second caller that loses the
    per-series lock gets an empty result, and dates that already have an
    occurrence with the same identity are skipped.
    """
    options = options or GenerateOptions()
    locks = locks or get_lock_provider(db)

    with try_lock(locks, lock_key(series_id)) as acquired:
        if not acquired:
            logger.info("series_generation_locked", extra={"series_id": series_id})
            return GenerationResult(series_id=series_id)
        return _generate_locked(db, series_id, options)


def _generate_locked(db: Session, series_id: int, options: GenerateOptions) -> GenerationResult:
    series = series_service.get_series_or_404(db, series_id)
    if series.status != SeriesStatus.active:
        logger.info("series_generation_paused", extra={"series_id": series_id})
        return GenerationResult(series_id=series_id)

    policy = get_effective_policy(db, series.branch_id, series.conflict_policy)
    window = _window_for(series, options.lead_days or policy.generation_lead_days, options.today)
    result = GenerationResult(series_id=series_id, from_date=window.from_date, to_date=window.to_date)

    if window.is_empty:
        # nothing left to produce, ever
        end_date = series.end_date
        if end_date is not None and window.from_date > end_date:
            series_service.delete_series(db, series_id)
            result.deleted = True
            logger.info("series_retired", extra={"series_id": series_id, "end_date": end_date.isoformat()})
        return result

    candidates = candidate_dates(window, series.days_of_week)
    result.attempted = len(candidates)

    try:
        same_day = group_by_date(
            occurrence_service.find_by_dates_and_participants(
                db,
                candidates,
                teacher_id=series.teacher_id,
                student_id=series.student_id,
                booth_id=series.booth_id,
            )
        )
        blackouts = blackout_service.get_blackouts(db, branch_id=series.branch_id)

        for d in candidates:
            if occurrence_service.exists_by_identity_key(db, series.id, d, series.start_time, series.end_time):
                result.skipped += 1
                continue

            ev = evaluate_date(db, series, d, same_day=same_day.get(d, []), blackouts=blackouts)
            kinds = ev.kinds
            status = OccurrenceStatus.conflicted if policy.marks(kinds) else OccurrenceStatus.confirmed

            occurrence_service.create_occurrence(
                db,
                OccurrenceCreate(
                    series_id=series.id,
                    branch_id=series.branch_id,
                    teacher_id=series.teacher_id,
                    student_id=series.student_id,
                    booth_id=series.booth_id,
                    date=d,
                    start_time=series.start_time,
                    end_time=series.end_time,
                    timezone=series.timezone,
                    start_at=ev.start_at,
                    end_at=ev.end_at,
                    duration=series.duration,
                    status=status,
                    conflict_reasons=[k.value for k in kinds],
                ),
                commit=False,
            )
            if status == OccurrenceStatus.conflicted:
                result.created_conflicted += 1
            else:
                result.created_confirmed += 1

        series_service.update_watermark(db, series, window.to_date)
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("series_generation_failed", extra={"series_id": series_id}, exc_info=True)
        raise

    logger.info(
        "series_generated",
        extra={
            "series_id": series_id,
            "from_date": window.from_date.isoformat(),
            "to_date": window.to_date.isoformat(),
            "created_confirmed": result.created_confirmed,
            "created_conflicted": result.created_conflicted,
            "skipped": result.skipped,
        },
    )
    return result


# ---------- Batch: advance every due series ----------

def _is_up_to_date(series: ClassSeries, lead_days: int, today: Optional[date]) -> bool:
    """Watermark already reaches today + lead days and the series is not due for retirement."""
    wm = series.last_generated_through
    if wm is None:
        return False
    if series.end_date is not None and wm >= series.end_date:
        return False
    horizon = (today or today_in(series.timezone)) + timedelta(days=lead_days)
    return wm >= horizon


def advance_due_series(
    db: Session,
    *,
    branch_id: Optional[int] = None,
    series_id: Optional[int] = None,
    limit: Optional[int] = None,
    lead_days: Optional[int] = None,
    today: Optional[date] = None,
    locks: Optional[LockProvider] = None,
) -> AdvanceSummary:
    if series_id is not None:
        row = series_service.get_series(db, series_id)
        due = [row] if row is not None and row.status == SeriesStatus.active else []
    else:
        due = series_service.list_series(db, branch_id=branch_id, status=SeriesStatus.active, limit=limit)

    locks = locks or get_lock_provider(db)
    summary = AdvanceSummary()

    for series in due:
        sid = series.id
        lead = lead_days or get_effective_policy(db, series.branch_id, series.conflict_policy).generation_lead_days
        if _is_up_to_date(series, lead, today):
            summary.up_to_date += 1
            continue

        try:
            res = generate(db, sid, GenerateOptions(lead_days=lead, today=today), locks=locks)
        except Exception as exc:
            logger.exception("series_advance_failed", extra={"series_id": sid})
            summary.failures.append(AdvanceFailure(series_id=sid, error=str(exc)))
            continue

        summary.processed += 1
        summary.created_confirmed += res.created_confirmed
        summary.created_conflicted += res.created_conflicted
        summary.skipped += res.skipped
        summary.details.append(res)

    logger.info(
        "series_advance_finished",
        extra={
            "processed": summary.processed,
            "up_to_date": summary.up_to_date,
            "created_confirmed": summary.created_confirmed,
            "created_conflicted": summary.created_conflicted,
            "failures": len(summary.failures),
        },
    )
    return summary
