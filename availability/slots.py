"""
Interval algebra over time-of-day windows.

Slots are minute-of-day pairs on the local wall clock of whoever owns them.
Overlap is half-open: [09:00, 10:00) and [10:00, 11:00) do not overlap, but
`merge` still coalesces them because they touch.
"""
from __future__ import annotations
from datetime import time
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, computed_field


class TimeSlot(BaseModel):
    start: int
    end: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_times(cls, start: time, end: time) -> "TimeSlot":
        return cls(start=to_minutes(start), end=to_minutes(end))

    @computed_field
    @property
    def start_time(self) -> str:
        return minutes_to_hhmm(self.start)

    @computed_field
    @property
    def end_time(self) -> str:
        return minutes_to_hhmm(self.end)

    def contains(self, other: "TimeSlot") -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "TimeSlot") -> bool:
        return other.start < self.end and other.end > self.start

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def minutes_to_hhmm(m: int) -> str:
    return f"{m // 60:02d}:{m % 60:02d}"


FULL_DAY = TimeSlot(start=0, end=23 * 60 + 59)


def merge(slots: Iterable[TimeSlot]) -> List[TimeSlot]:
    ordered = sorted(slots, key=lambda s: (s.start, s.end))
    if not ordered:
        return []
    merged = [ordered[0]]
    for cur in ordered[1:]:
        last = merged[-1]
        if cur.start <= last.end:
            merged[-1] = TimeSlot(start=last.start, end=max(last.end, cur.end))
        else:
            merged.append(cur)
    return merged


def intersect(a: Iterable[TimeSlot], b: Iterable[TimeSlot]) -> List[TimeSlot]:
    b = list(b)
    out: list[TimeSlot] = []
    for x in a:
        for y in b:
            st, en = max(x.start, y.start), min(x.end, y.end)
            if st < en:
                out.append(TimeSlot(start=st, end=en))
    return merge(out)


def subtract(base: Iterable[TimeSlot], remove: Iterable[TimeSlot]) -> List[TimeSlot]:
    remaining = merge(base)
    for sub in merge(remove):
        if not remaining:
            break
        nxt: list[TimeSlot] = []
        for b in remaining:
            # no overlap
            if sub.end <= b.start or sub.start >= b.end:
                nxt.append(b)
            # fully covered
            elif sub.start <= b.start and sub.end >= b.end:
                continue
            # trims the head
            elif sub.start <= b.start:
                nxt.append(TimeSlot(start=sub.end, end=b.end))
            # trims the tail
            elif sub.end >= b.end:
                nxt.append(TimeSlot(start=b.start, end=sub.start))
            else:
                nxt.append(TimeSlot(start=b.start, end=sub.start))
                nxt.append(TimeSlot(start=sub.end, end=b.end))
        remaining = merge(nxt)
    return remaining


def any_contains(slots: Iterable[TimeSlot], window: TimeSlot) -> bool:
    return any(s.contains(window) for s in slots)
