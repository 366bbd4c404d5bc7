# tests/test_services/test_occurrence_service.py
import unittest
from datetime import date, time, datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from pydantic import ValidationError

from core.database import Base
from series.models import ClassSeries
from occurrence.schema import OccurrenceCreate
from occurrence import service
import models_bootstrap


def dto(on_date, *, series_id=None, teacher_id=None, student_id=None, booth_id=None, hour=10):
    start = datetime(on_date.year, on_date.month, on_date.day, hour - 9, tzinfo=timezone.utc)
    return OccurrenceCreate(
        series_id=series_id,
        teacher_id=teacher_id,
        student_id=student_id,
        booth_id=booth_id,
        date=on_date,
        start_time=time(hour),
        end_time=time(hour + 1),
        timezone="Asia/Tokyo",
        start_at=start,
        end_at=start + timedelta(hours=1),
        duration=60,
    )


class OccurrenceServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        TestingSession = sessionmaker(bind=self.engine, future=True)
        self.db = TestingSession()

        self.a = service.create_occurrence(self.db, dto(date(2025, 9, 24), teacher_id=1, booth_id=3))
        self.b = service.create_occurrence(self.db, dto(date(2025, 9, 24), student_id=2))
        self.c = service.create_occurrence(self.db, dto(date(2025, 9, 26), teacher_id=1))
        self.d = service.create_occurrence(self.db, dto(date(2025, 9, 24), teacher_id=1, hour=14))
        self.d.is_cancelled = True
        self.db.commit()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_find_by_dates_matches_any_ref_and_skips_cancelled(self):
        found = service.find_by_dates_and_participants(
            self.db, [date(2025, 9, 24)], teacher_id=1, student_id=2
        )
        self.assertEqual({o.id for o in found}, {self.a.id, self.b.id})

        found = service.find_by_dates_and_participants(self.db, [date(2025, 9, 24), date(2025, 9, 26)], booth_id=3)
        self.assertEqual([o.id for o in found], [self.a.id])

    def test_find_by_dates_without_refs_or_dates_is_empty(self):
        self.assertEqual(service.find_by_dates_and_participants(self.db, [date(2025, 9, 24)]), [])
        self.assertEqual(service.find_by_dates_and_participants(self.db, [], teacher_id=1), [])

    def test_exists_by_identity_key(self):
        series = ClassSeries(
            start_date=date(2025, 9, 1), start_time=time(10), end_time=time(11), duration=60,
            days_of_week=[2], timezone="Asia/Tokyo",
        )
        self.db.add(series)
        self.db.commit()
        service.create_occurrence(self.db, dto(date(2025, 10, 1), series_id=series.id, teacher_id=9))

        self.assertTrue(service.exists_by_identity_key(self.db, series.id, date(2025, 10, 1), time(10), time(11)))
        self.assertFalse(service.exists_by_identity_key(self.db, series.id, date(2025, 10, 1), time(10), time(12)))
        self.assertFalse(service.exists_by_identity_key(self.db, series.id, date(2025, 10, 8), time(10), time(11)))

    def test_get_occurrences_filters(self):
        self.assertEqual(len(service.get_occurrences(self.db, teacher_id=1)), 3)
        self.assertEqual(len(service.get_occurrences(self.db, teacher_id=1, include_cancelled=False)), 2)
        self.assertEqual(
            len(service.get_occurrences(self.db, start_date=date(2025, 9, 25), end_date=date(2025, 9, 30))), 1
        )

    def test_dto_rejects_inverted_window(self):
        with self.assertRaises(ValidationError):
            OccurrenceCreate(
                date=date(2025, 9, 24),
                start_time=time(10),
                end_time=time(11),
                timezone="UTC",
                start_at=datetime(2025, 9, 24, 11, tzinfo=timezone.utc),
                end_at=datetime(2025, 9, 24, 10, tzinfo=timezone.utc),
                duration=60,
            )


if __name__ == "__main__":
    unittest.main()
