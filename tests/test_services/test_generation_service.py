# tests/test_services/test_generation_service.py
import unittest
from datetime import date, time, datetime, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from fastapi import HTTPException

from core.database import Base
from core.locks import InProcessLockProvider
from availability.models import AvailabilityRecord, AvailabilityKind, ApprovalStatus
from blackout.models import BlackoutPeriod
from occurrence.models import Occurrence, OccurrenceStatus
from series.models import ClassSeries, SeriesStatus
from generation.conflicts import ConflictKind
from generation.schema import GenerateOptions
from generation import service
from occurrence import service as occurrence_service
import models_bootstrap

TOKYO = "Asia/Tokyo"


class BusyLocks:
    """Lock provider whose every key is already held elsewhere."""
    def __init__(self):
        self.released = []

    def try_acquire(self, key):
        return False

    def release(self, key):
        self.released.append(key)


class GenerationServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        TestingSession = sessionmaker(bind=self.engine, future=True)
        self.db = TestingSession()
        self.locks = InProcessLockProvider()

        # Wed/Fri, one week
        self.series_id = self._series(
            start_date=date(2025, 9, 24),
            end_date=date(2025, 9, 30),
            days_of_week=[2, 4],
        )
        self.opts = GenerateOptions(today=date(2025, 9, 20), lead_days=30)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    # ---------- helpers ----------
    def _series(self, **kw) -> int:
        data = dict(
            branch_id=1,
            teacher_id=1,
            student_id=2,
            booth_id=3,
            start_time=time(10, 0),
            end_time=time(11, 0),
            duration=60,
            timezone=TOKYO,
            status=SeriesStatus.active,
        )
        data.update(kw)
        row = ClassSeries(**data)
        self.db.add(row)
        self.db.commit()
        return row.id

    def _occurrences(self, **filters) -> list[Occurrence]:
        stmt = select(Occurrence).order_by(Occurrence.date)
        for k, v in filters.items():
            stmt = stmt.where(getattr(Occurrence, k) == v)
        return list(self.db.scalars(stmt))

    def _generate(self, series_id=None, opts=None):
        return service.generate(self.db, series_id or self.series_id, opts or self.opts, locks=self.locks)

    # ---------- basic run ----------
    def test_wed_fri_week_creates_two_occurrences(self):
        res = self._generate()
        self.assertEqual(res.attempted, 2)
        self.assertEqual(res.created_confirmed + res.created_conflicted, 2)
        self.assertEqual(res.from_date, date(2025, 9, 24))
        self.assertEqual(res.to_date, date(2025, 9, 30))
        self.assertFalse(res.deleted)

        occs = self._occurrences(series_id=self.series_id)
        self.assertEqual([o.date for o in occs], [date(2025, 9, 24), date(2025, 9, 26)])
        self.assertEqual(occs[0].start_time, time(10, 0))
        self.assertEqual(occs[0].timezone, TOKYO)

        series = self.db.get(ClassSeries, self.series_id)
        self.assertEqual(series.last_generated_through, date(2025, 9, 30))

    def test_second_call_creates_nothing_and_retires_finished_series(self):
        self._generate()
        res = self._generate()
        self.assertEqual(res.created_confirmed + res.created_conflicted, 0)
        self.assertEqual(res.attempted, 0)
        self.assertTrue(res.deleted)

        self.assertIsNone(self.db.get(ClassSeries, self.series_id))
        # occurrences outlive the series
        occs = self._occurrences(teacher_id=1)
        self.assertEqual(len(occs), 2)
        self.assertTrue(all(o.series_id is None for o in occs))

    def test_missing_availability_is_recorded_but_not_blocking_by_default(self):
        self._generate()
        for occ in self._occurrences(series_id=self.series_id):
            self.assertEqual(occ.status, OccurrenceStatus.confirmed)
            self.assertIn(ConflictKind.teacher_unavailable.value, occ.conflict_reasons)
            self.assertIn(ConflictKind.student_unavailable.value, occ.conflict_reasons)

    def test_existing_identity_is_skipped_even_without_watermark(self):
        self.db.add(Occurrence(
            series_id=self.series_id,
            teacher_id=1, student_id=2, booth_id=3,
            date=date(2025, 9, 24),
            start_time=time(10, 0),
            end_time=time(11, 0),
            timezone=TOKYO,
            start_at=datetime(2025, 9, 24, 1, 0, tzinfo=timezone.utc),
            end_at=datetime(2025, 9, 24, 2, 0, tzinfo=timezone.utc),
            duration=60,
        ))
        self.db.commit()

        res = self._generate()
        self.assertEqual(res.skipped, 1)
        self.assertEqual(res.created_confirmed + res.created_conflicted, 1)
        self.assertEqual(len(self._occurrences(series_id=self.series_id)), 2)

    # ---------- conflicts ----------
    def test_booth_double_booking_marks_conflicted(self):
        # standalone booking in booth 3, 10:30-11:30 Tokyo on Wednesday
        self.db.add(Occurrence(
            series_id=None,
            booth_id=3, teacher_id=99, student_id=98,
            date=date(2025, 9, 24),
            start_time=time(10, 30),
            end_time=time(11, 30),
            timezone=TOKYO,
            start_at=datetime(2025, 9, 24, 1, 30, tzinfo=timezone.utc),
            end_at=datetime(2025, 9, 24, 2, 30, tzinfo=timezone.utc),
            duration=60,
        ))
        self.db.commit()

        res = self._generate()
        self.assertEqual(res.created_conflicted, 1)
        self.assertEqual(res.created_confirmed, 1)

        wed, fri = self._occurrences(series_id=self.series_id)
        self.assertEqual(wed.status, OccurrenceStatus.conflicted)
        self.assertEqual(wed.conflict_reasons[0], ConflictKind.booth_conflict.value)
        self.assertNotIn(ConflictKind.teacher_conflict.value, wed.conflict_reasons)
        self.assertEqual(fri.status, OccurrenceStatus.confirmed)

    def test_adjacent_booking_is_not_a_conflict(self):
        self.db.add(Occurrence(
            booth_id=3,
            date=date(2025, 9, 24),
            start_time=time(11, 0),
            end_time=time(12, 0),
            timezone=TOKYO,
            start_at=datetime(2025, 9, 24, 2, 0, tzinfo=timezone.utc),
            end_at=datetime(2025, 9, 24, 3, 0, tzinfo=timezone.utc),
            duration=60,
        ))
        self.db.commit()
        res = self._generate()
        self.assertEqual(res.created_conflicted, 0)

    def test_cancelled_booking_does_not_conflict(self):
        self.db.add(Occurrence(
            teacher_id=1,
            date=date(2025, 9, 26),
            start_time=time(10, 0),
            end_time=time(11, 0),
            timezone=TOKYO,
            start_at=datetime(2025, 9, 26, 1, 0, tzinfo=timezone.utc),
            end_at=datetime(2025, 9, 26, 2, 0, tzinfo=timezone.utc),
            duration=60,
            is_cancelled=True,
        ))
        self.db.commit()
        res = self._generate()
        self.assertEqual(res.created_conflicted, 0)

    def test_blackout_day_is_conflicted(self):
        self.db.add(BlackoutPeriod(label="Sports day", start_date=date(2025, 9, 26), end_date=date(2025, 9, 26)))
        self.db.commit()
        self._generate()
        wed, fri = self._occurrences(series_id=self.series_id)
        self.assertEqual(wed.status, OccurrenceStatus.confirmed)
        self.assertEqual(fri.status, OccurrenceStatus.conflicted)
        self.assertIn(ConflictKind.blackout.value, fri.conflict_reasons)

    def test_series_policy_can_make_availability_blocking(self):
        sid = self._series(
            start_date=date(2025, 9, 24),
            end_date=date(2025, 9, 30),
            days_of_week=[2],
            booth_id=None,
            conflict_policy={"mark_as_conflicted": {"teacher_unavailable": True}},
        )
        # teacher is available on Wednesdays, except the window misses the lesson
        self.db.add(AvailabilityRecord(
            owner_id=1, kind=AvailabilityKind.regular, status=ApprovalStatus.approved,
            weekday=2, start_time=time(13), end_time=time(15),
        ))
        self.db.commit()

        res = self._generate(sid)
        self.assertEqual(res.created_conflicted, 0)
        (occ,) = self._occurrences(series_id=sid)
        self.assertIn(ConflictKind.teacher_wrong_time.value, occ.conflict_reasons)

        sid2 = self._series(
            start_date=date(2025, 10, 1),
            end_date=date(2025, 10, 1),
            days_of_week=[2],
            teacher_id=5,
            student_id=6,
            booth_id=None,
            conflict_policy={"mark_as_conflicted": {"teacher_unavailable": True}},
        )
        res = self._generate(sid2)
        self.assertEqual(res.created_conflicted, 1)

    def test_allow_outside_availability_overrides_marking(self):
        sid = self._series(
            start_date=date(2025, 10, 1),
            end_date=date(2025, 10, 1),
            days_of_week=[2],
            teacher_id=5,
            student_id=None,
            booth_id=None,
            conflict_policy={
                "mark_as_conflicted": {"teacher_unavailable": True},
                "allow_outside_availability_teacher": True,
            },
        )
        res = self._generate(sid)
        self.assertEqual(res.created_confirmed, 1)
        (occ,) = self._occurrences(series_id=sid)
        self.assertEqual(occ.conflict_reasons, [ConflictKind.teacher_unavailable.value])

    # ---------- time zones ----------
    def test_dst_transition_keeps_local_wall_clock(self):
        ny = ZoneInfo("America/New_York")
        sid = self._series(
            start_date=date(2025, 10, 31),
            end_date=date(2025, 11, 5),
            days_of_week=[0, 1, 2, 3, 4, 5, 6],
            start_time=time(10, 0),
            end_time=time(10, 50),
            duration=50,
            timezone="America/New_York",
        )
        res = self._generate(sid, GenerateOptions(today=date(2025, 10, 25), lead_days=30))
        self.assertEqual(res.created_confirmed + res.created_conflicted, 6)

        occs = self._occurrences(series_id=sid)
        for occ in occs:
            self.assertEqual(occ.start_time, time(10, 0))
            # SQLite hands back naive UTC
            local = occ.start_at.replace(tzinfo=timezone.utc).astimezone(ny)
            self.assertEqual(local.strftime("%H:%M"), "10:00", occ.date)
        self.assertEqual(occs[0].start_at.hour, 14)   # Oct 31, EDT
        self.assertEqual(occs[-1].start_at.hour, 15)  # Nov 5, EST

    # ---------- lifecycle ----------
    def test_paused_series_is_a_no_op(self):
        sid = self._series(start_date=date(2025, 9, 24), days_of_week=[2], status=SeriesStatus.paused)
        res = self._generate(sid)
        self.assertEqual(res.attempted, 0)
        self.assertEqual(self._occurrences(series_id=sid), [])

    def test_missing_series_raises_404(self):
        with self.assertRaises(HTTPException) as ctx:
            self._generate(9999)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_single_day_series_retires_on_next_run(self):
        sid = self._series(start_date=date(2025, 9, 24), end_date=date(2025, 9, 24), days_of_week=[2])
        first = self._generate(sid)
        self.assertEqual(first.created_confirmed + first.created_conflicted, 1)
        self.assertFalse(first.deleted)

        second = self._generate(sid)
        self.assertTrue(second.deleted)
        self.assertIsNone(self.db.get(ClassSeries, sid))
        self.assertEqual(len(self._occurrences(date=date(2025, 9, 24), teacher_id=1)), 1)

    def test_series_already_over_is_retired_without_occurrences(self):
        res = self._generate(opts=GenerateOptions(today=date(2025, 10, 10)))
        self.assertTrue(res.deleted)
        self.assertEqual(res.attempted, 0)
        self.assertEqual(self._occurrences(teacher_id=1), [])

    def test_open_ended_series_advances_by_lead_window(self):
        sid = self._series(start_date=date(2025, 9, 1), days_of_week=[0])
        res = self._generate(sid, GenerateOptions(today=date(2025, 9, 1), lead_days=14))
        self.assertEqual(res.to_date, date(2025, 9, 15))
        self.assertEqual(res.created_confirmed + res.created_conflicted, 3)   # 1st, 8th, 15th

        res = self._generate(sid, GenerateOptions(today=date(2025, 9, 1), lead_days=14))
        self.assertEqual(res.from_date, date(2025, 9, 16))
        self.assertEqual(res.skipped, 0)

    # ---------- concurrency / failure ----------
    def test_lock_contention_is_a_no_op(self):
        busy = BusyLocks()
        res = service.generate(self.db, self.series_id, self.opts, locks=busy)
        self.assertEqual(res.attempted, 0)
        self.assertEqual(busy.released, [])
        self.assertEqual(self._occurrences(series_id=self.series_id), [])

    def test_held_in_process_lock_blocks_second_caller(self):
        key = service.lock_key(self.series_id)
        self.assertTrue(self.locks.try_acquire(key))
        try:
            res = self._generate()
            self.assertEqual(res.attempted, 0)
        finally:
            self.locks.release(key)
        self.assertEqual(self._generate().attempted, 2)

    def test_prefetch_failure_writes_nothing_and_retry_completes(self):
        with patch(
            "generation.service.occurrence_service.find_by_dates_and_participants",
            side_effect=RuntimeError("connection lost"),
        ):
            with self.assertRaises(RuntimeError):
                self._generate()

        self.assertEqual(self._occurrences(series_id=self.series_id), [])
        series = self.db.get(ClassSeries, self.series_id)
        self.assertIsNone(series.last_generated_through)

        # lock was released and the retry fills everything in
        res = self._generate()
        self.assertEqual(res.created_confirmed + res.created_conflicted, 2)
        self.assertEqual(len(self._occurrences(series_id=self.series_id)), 2)

    def test_store_failure_mid_run_rolls_back_flushed_rows(self):
        real_create = occurrence_service.create_occurrence
        calls = []

        def fail_on_second(*args, **kwargs):
            calls.append(args[1].date)
            if len(calls) == 2:
                raise RuntimeError("disk full")
            return real_create(*args, **kwargs)

        with patch("generation.service.occurrence_service.create_occurrence", side_effect=fail_on_second):
            with self.assertRaises(RuntimeError):
                self._generate()

        # the Wednesday row was flushed before Friday failed
        self.assertEqual(calls, [date(2025, 9, 24), date(2025, 9, 26)])
        self.assertEqual(self._occurrences(series_id=self.series_id), [])
        series = self.db.get(ClassSeries, self.series_id)
        self.assertIsNone(series.last_generated_through)

        res = self._generate()
        self.assertEqual(res.created_confirmed + res.created_conflicted, 2)
        self.assertEqual(res.skipped, 0)
        self.assertEqual(len(self._occurrences(series_id=self.series_id)), 2)
        self.assertEqual(self.db.get(ClassSeries, self.series_id).last_generated_through, date(2025, 9, 30))

    def test_invalid_stored_override_is_ignored(self):
        sid = self._series(
            start_date=date(2025, 10, 1),
            end_date=date(2025, 10, 1),
            days_of_week=[2],
            teacher_id=5,
            student_id=None,
            booth_id=None,
            conflict_policy={
                "mark_as_conflicted": {"room_conflict": True, "teacher_unavailable": True},
                "generation_lead_days": 0,
            },
        )
        res = self._generate(sid)
        self.assertEqual(res.created_conflicted, 1)

        summary = service.advance_due_series(self.db, series_id=sid, today=date(2025, 9, 20), locks=self.locks)
        self.assertEqual(summary.failures, [])

    # ---------- batch ----------
    def test_advance_due_series(self):
        weekly = self._series(start_date=date(2025, 9, 22), days_of_week=[0])
        self._series(start_date=date(2025, 9, 1), days_of_week=[0], status=SeriesStatus.paused)
        today = date(2025, 9, 22)

        summary = service.advance_due_series(self.db, lead_days=7, today=today, locks=self.locks)
        # the Wed/Fri week and the weekly Monday series
        self.assertEqual(summary.processed, 2)
        self.assertEqual(summary.created_confirmed + summary.created_conflicted, 2 + 2)
        self.assertEqual(summary.failures, [])
        self.assertEqual({d.series_id for d in summary.details}, {self.series_id, weekly})

        again = service.advance_due_series(self.db, lead_days=7, today=today, locks=self.locks)
        # weekly already reaches today + 7; the finished week gets retired
        self.assertEqual(again.up_to_date, 1)
        self.assertEqual(again.processed, 1)
        self.assertTrue(again.details[0].deleted)
        self.assertEqual(again.created_confirmed + again.created_conflicted, 0)

    def test_advance_single_series_and_failures_are_collected(self):
        summary = service.advance_due_series(self.db, series_id=9999, today=date(2025, 9, 20), locks=self.locks)
        self.assertEqual(summary.processed, 0)

        with patch("generation.service.generate", side_effect=RuntimeError("boom")):
            summary = service.advance_due_series(self.db, today=date(2025, 9, 20), locks=self.locks)
        self.assertEqual(summary.processed, 0)
        self.assertEqual([f.series_id for f in summary.failures], [self.series_id])


if __name__ == "__main__":
    unittest.main()
