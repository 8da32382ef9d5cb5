from __future__ import annotations

import unittest
from contextlib import nullcontext
from datetime import time, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from hrdesk.services.shift_policy import (
    ShiftPolicy,
    classify_lateness,
    classify_overtime,
    parse_hhmm,
    resolve_shift_policy,
)
from hrdesk.settings import Settings
from tests.helpers import add_employee, make_session_factory, utc


class _FailingDB:
    def __init__(self) -> None:
        self.savepoints = 0

    def begin_nested(self):  # type: ignore[no-untyped-def]
        self.savepoints += 1
        return nullcontext()

    def get(self, _model, _pk):  # type: ignore[no-untyped-def]
        raise RuntimeError("database unavailable")


class ShiftClassificationTests(unittest.TestCase):
    def test_late_check_in_and_overtime_checkout(self) -> None:
        is_late, late_minutes = classify_lateness(time(9, 0), utc(2026, 3, 2, 9, 15), timezone.utc)
        overtime = classify_overtime(time(18, 0), utc(2026, 3, 2, 18, 30), timezone.utc)

        self.assertTrue(is_late)
        self.assertEqual(late_minutes, 15)
        self.assertEqual(overtime, 30)

    def test_on_time_and_early_leave(self) -> None:
        self.assertEqual(classify_lateness(time(9, 0), utc(2026, 3, 2, 9, 0), timezone.utc), (False, 0))
        self.assertEqual(classify_lateness(time(9, 0), utc(2026, 3, 2, 8, 45), timezone.utc), (False, 0))
        self.assertEqual(classify_overtime(time(18, 0), utc(2026, 3, 2, 17, 0), timezone.utc), 0)

    def test_partial_minutes_are_floored(self) -> None:
        _, late_minutes = classify_lateness(time(9, 0), utc(2026, 3, 2, 9, 15, 59), timezone.utc)
        self.assertEqual(late_minutes, 15)

    def test_missing_shift_means_no_classification(self) -> None:
        self.assertEqual(classify_lateness(None, utc(2026, 3, 2, 11, 0)), (False, 0))
        self.assertEqual(classify_overtime(None, utc(2026, 3, 2, 23, 0)), 0)

    def test_shift_window_built_in_attendance_timezone(self) -> None:
        kolkata = ZoneInfo("Asia/Kolkata")
        # 03:45 UTC is 09:15 in Kolkata.
        is_late, late_minutes = classify_lateness(time(9, 0), utc(2026, 3, 2, 3, 45), kolkata)

        self.assertTrue(is_late)
        self.assertEqual(late_minutes, 15)

    def test_parse_hhmm(self) -> None:
        self.assertEqual(parse_hhmm("09:30"), time(9, 30))
        self.assertIsNone(parse_hhmm(None))
        self.assertIsNone(parse_hhmm("  "))
        with self.assertRaises(ValueError):
            parse_hhmm("nine")
        with self.assertRaises(ValueError):
            parse_hhmm("25:00")


class ResolveShiftPolicyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        self.db = self.factory()

    def tearDown(self) -> None:
        self.db.close()

    def test_employee_shift_is_used(self) -> None:
        add_employee(self.db, employee_id=1, shift_start="09:00", shift_end="18:00")

        self.assertEqual(resolve_shift_policy(self.db, 1), ShiftPolicy(start=time(9, 0), end=time(18, 0)))

    def test_missing_employee_or_lookup_failure_is_no_policy(self) -> None:
        self.assertIsNone(resolve_shift_policy(self.db, 404))
        failing = _FailingDB()
        with self.assertLogs("hrdesk.attendance", level="ERROR"):
            self.assertIsNone(resolve_shift_policy(failing, 1))  # type: ignore[arg-type]
        self.assertEqual(failing.savepoints, 1)

    def test_malformed_value_degrades_to_none(self) -> None:
        add_employee(self.db, employee_id=2, shift_start="9am", shift_end="18:00")

        with self.assertLogs("hrdesk.attendance", level="WARNING"):
            policy = resolve_shift_policy(self.db, 2)

        self.assertEqual(policy, ShiftPolicy(start=None, end=time(18, 0)))

    def test_organization_default_applies_when_employee_has_none(self) -> None:
        add_employee(self.db, employee_id=3)
        settings = Settings(default_shift_start="10:00", default_shift_end="19:00")

        with patch("hrdesk.services.shift_policy.get_settings", return_value=settings):
            policy = resolve_shift_policy(self.db, 3)

        self.assertEqual(policy, ShiftPolicy(start=time(10, 0), end=time(19, 0)))

    def test_no_employee_shift_and_no_default_is_none(self) -> None:
        add_employee(self.db, employee_id=4)
        settings = Settings(default_shift_start=None, default_shift_end=None)

        with patch("hrdesk.services.shift_policy.get_settings", return_value=settings):
            self.assertIsNone(resolve_shift_policy(self.db, 4))


if __name__ == "__main__":
    unittest.main()
