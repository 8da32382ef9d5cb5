from __future__ import annotations

import unittest
from datetime import date, timedelta
from unittest.mock import patch

from sqlalchemy import func, select

from hrdesk.models import AttendanceActivityNote, AttendanceBreak, AttendanceEntry, BreakType
from hrdesk.services.retention import retention_cutoff, run_retention_sweep
from hrdesk.settings import DEFAULT_RETENTION_DAYS, Settings, get_retention_days
from tests.helpers import add_employee, make_session_factory, utc

NOW = utc(2026, 6, 30, 12, 0)
TODAY = date(2026, 6, 30)


class RetentionDaysSettingTests(unittest.TestCase):
    def _days(self, raw):  # type: ignore[no-untyped-def]
        with patch("hrdesk.settings.get_settings", return_value=Settings(attendance_retention_days=raw)):
            return get_retention_days()

    def test_valid_value_is_used(self) -> None:
        self.assertEqual(self._days(30), 30)
        self.assertEqual(self._days("7"), 7)

    def test_invalid_values_fall_back_to_default(self) -> None:
        self.assertEqual(self._days(0), DEFAULT_RETENTION_DAYS)
        self.assertEqual(self._days(-3), DEFAULT_RETENTION_DAYS)
        self.assertEqual(self._days("abc"), DEFAULT_RETENTION_DAYS)
        self.assertEqual(self._days(None), DEFAULT_RETENTION_DAYS)


class RetentionSweepTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        add_employee(self.db, employee_id=1)
        add_employee(self.db, employee_id=2)

    def tearDown(self) -> None:
        self.db.close()

    def _add_entry(self, employee_id: int, day: date) -> AttendanceEntry:
        entry = AttendanceEntry(employee_id=employee_id, date=day, check_in_time=utc(day.year, day.month, day.day, 4))
        entry.breaks.append(
            AttendanceBreak(
                break_type=BreakType.TEA,
                start_time=utc(day.year, day.month, day.day, 6),
                end_time=utc(day.year, day.month, day.day, 6, 15),
                duration_minutes=15,
                is_active=False,
            )
        )
        entry.activity_notes.append(
            AttendanceActivityNote(
                description="work",
                start_time=utc(day.year, day.month, day.day, 5),
                timestamp=utc(day.year, day.month, day.day, 5),
            )
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def test_deletes_only_entries_strictly_before_cutoff(self) -> None:
        cutoff = retention_cutoff(TODAY, 45)
        self.assertEqual(cutoff, date(2026, 5, 16))

        self._add_entry(1, cutoff - timedelta(days=10))
        self._add_entry(2, cutoff - timedelta(days=1))
        kept_on_cutoff = self._add_entry(1, cutoff)
        kept_recent = self._add_entry(2, TODAY)

        with patch("hrdesk.services.retention.get_retention_days", return_value=45):
            result = run_retention_sweep(self.db, now=NOW)

        self.assertTrue(result.success)
        self.assertEqual(result.deleted_count, 2)
        self.assertEqual(result.cutoff_date, cutoff)
        self.assertEqual(result.retention_days, 45)

        remaining = set(self.db.scalars(select(AttendanceEntry.id)).all())
        self.assertEqual(remaining, {kept_on_cutoff.id, kept_recent.id})
        self.assertEqual(self.db.scalar(select(func.count(AttendanceBreak.id))), 2)
        self.assertEqual(self.db.scalar(select(func.count(AttendanceActivityNote.id))), 2)

    def test_zero_override_falls_back_to_configured_days(self) -> None:
        with patch("hrdesk.services.retention.get_retention_days", return_value=DEFAULT_RETENTION_DAYS):
            result = run_retention_sweep(self.db, now=NOW, retention_days=0)

        self.assertEqual(result.retention_days, DEFAULT_RETENTION_DAYS)
        self.assertEqual(result.deleted_count, 0)
        self.assertEqual(result.to_dict()["cutoff_date"], "2026-05-16")

    def test_failure_is_logged_and_raised(self) -> None:
        with (
            patch("hrdesk.services.retention.delete_entries_before", side_effect=RuntimeError("locked")),
            self.assertLogs("hrdesk.retention", level="ERROR"),
            self.assertRaises(RuntimeError),
        ):
            run_retention_sweep(self.db, now=NOW, retention_days=45)


if __name__ == "__main__":
    unittest.main()
