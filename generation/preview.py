from __future__ import annotations
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from core.config_loader import settings
from blackout import service as blackout_service
from occurrence import service as occurrence_service
from schedulingconfig.schema import ConflictPolicy
from schedulingconfig.service import get_effective_policy
from series import service as series_service
from .conflicts import ConflictKind
from .evaluate import DateEvaluation, evaluate_date, group_by_date
from .schema import ConflictInfo, PreviewResult, PreviewSummary
from .window import candidate_dates, compute_window, today_in

logger = logging.getLogger(__name__)

_HARD_DETAILS = {
    ConflictKind.booth_conflict: "booth already booked at this time",
    ConflictKind.teacher_conflict: "teacher already has a class at this time",
    ConflictKind.student_conflict: "student already has a class at this time",
}


def _entries_for(ev: DateEvaluation, policy: ConflictPolicy, teacher_id, student_id) -> List[ConflictInfo]:
    iso = ev.on_date.isoformat()
    weekday = ev.on_date.weekday()
    blocking = set(policy.blocking(ev.kinds))

    def info(kind: ConflictKind, details: str, **extra) -> ConflictInfo:
        return ConflictInfo(date=iso, weekday=weekday, kind=kind, details=details, blocking=kind in blocking, **extra)

    out = [info(k, _HARD_DETAILS[k]) for k in ev.hard]
    if ev.blackout is not None:
        out.append(info(ConflictKind.blackout, f"blackout period '{ev.blackout.label}'"))

    for kind in ev.soft:
        if kind == ConflictKind.no_shared_availability:
            shared = ev.shared
            out.append(info(
                kind,
                shared.message or "teacher and student are never available together for this window",
                teacher_slots=ev.teacher.effective_slots,
                student_slots=ev.student.effective_slots,
                shared_slots=shared.shared_slots,
                strategy=shared.strategy,
            ))
            continue
        role = kind.value.split("_", 1)[0]
        details = ev.teacher if role == "teacher" else ev.student
        what = "has no availability" if kind.value.endswith("unavailable") else "is available, but not for this window"
        out.append(info(
            kind,
            f"{role} {what}",
            participant_role=role,
            participant_id=teacher_id if role == "teacher" else student_id,
            teacher_slots=details.effective_slots if role == "teacher" else [],
            student_slots=details.effective_slots if role == "student" else [],
        ))
    return out


def preview(
    db: Session,
    series_id: int,
    horizon_days: Optional[int] = None,
    *,
    today: Optional[date] = None,
) -> PreviewResult:
    """
    Dry run of the next generation window: which dates would conflict and why.

    Reads only. No lock is taken and nothing is written, so it is safe to call
    while a generation run for the same series is in flight.
    """
    series = series_service.get_series_or_404(db, series_id)
    policy = get_effective_policy(db, series.branch_id, series.conflict_policy)

    horizon = min(horizon_days or settings.PREVIEW_HORIZON_DAYS, settings.MAX_PREVIEW_HORIZON_DAYS)
    window = compute_window(
        today=today or today_in(series.timezone),
        watermark=series.last_generated_through,
        start_date=series.start_date,
        end_date=series.end_date,
        lead_days=horizon,
    )
    result = PreviewResult(series_id=series_id, from_date=window.from_date, to_date=window.to_date)

    if window.is_empty:
        result.message = "series end date has passed; nothing left to generate"
        return result

    candidates = candidate_dates(window, series.days_of_week)
    if not candidates:
        result.message = "no class days fall in the preview window"
        return result

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

    by_date: Dict[str, List[ConflictInfo]] = {}
    for d in candidates:
        ev = evaluate_date(db, series, d, same_day=same_day.get(d, []), blackouts=blackouts)
        entries = _entries_for(ev, policy, series.teacher_id, series.student_id)
        if entries:
            by_date[d.isoformat()] = entries
            result.conflicts.extend(entries)

    total = len(candidates)
    with_conflicts = len(by_date)
    result.conflicts_by_date = by_date
    result.summary = PreviewSummary(
        total_sessions=total,
        sessions_with_conflicts=with_conflicts,
        valid_sessions=total - with_conflicts,
    )
    result.requires_confirmation = with_conflicts > 0
    if with_conflicts:
        result.message = f"{with_conflicts} of {total} sessions have conflicts"
    else:
        result.message = f"all {total} sessions can be scheduled without conflicts"

    logger.debug(
        "series_previewed",
        extra={"series_id": series_id, "total_sessions": total, "sessions_with_conflicts": with_conflicts},
    )
    return result
