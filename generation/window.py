from __future__ import annotations
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel


class GenerationWindow(BaseModel):
    from_date: date
    to_date: date

    @property
    def is_empty(self) -> bool:
        return self.from_date > self.to_date


def compute_window(
    *,
    today: date,
    watermark: Optional[date],
    start_date: date,
    end_date: Optional[date],
    lead_days: int,
) -> GenerationWindow:
    """
    [from, to] still to be processed for a series.

    `from` never re-opens dates at or before the watermark and never reaches
    into the past; `to` is capped by the series end date.
    """
    baseline = watermark + timedelta(days=1) if watermark is not None else start_date
    from_date = max(baseline, start_date, today)
    to_date = from_date + timedelta(days=max(1, lead_days))
    if end_date is not None and to_date > end_date:
        to_date = end_date
    return GenerationWindow(from_date=from_date, to_date=to_date)


def daterange(start: date, end: date) -> Iterator[date]:
    cur = start
    one = timedelta(days=1)
    while cur <= end:
        yield cur
        cur += one


def candidate_dates(window: GenerationWindow, days_of_week: Iterable[int]) -> List[date]:
    wanted = {int(d) for d in days_of_week}
    if window.is_empty or not wanted:
        return []
    return [d for d in daterange(window.from_date, window.to_date) if d.weekday() in wanted]


def local_instants(on_date: date, start: time, end: time, tz_name: str) -> Tuple[datetime, datetime]:
    """
    UTC instants for a local wall-clock window on a civil date.

    The zone's offset is looked up for that very date, so 10:00 stays 10:00
    local on both sides of a DST change.
    """
    zone = ZoneInfo(tz_name)
    start_local = datetime.combine(on_date, start, tzinfo=zone)
    end_local = datetime.combine(on_date, end, tzinfo=zone)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def today_in(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()
