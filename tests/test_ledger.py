from __future__ import annotations

import unittest
from datetime import date

from hrdesk.errors import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    BreakAlreadyActive,
    NoActiveBreak,
    NoCheckIn,
    NotCheckedIn,
)
from hrdesk.models import AttendanceBreak, AttendanceEntry, BreakType
from hrdesk.services import ledger
from tests.helpers import utc


def _entry() -> AttendanceEntry:
    return AttendanceEntry(
        employee_id=1,
        date=date(2026, 3, 2),
        total_working_minutes=0,
        total_break_minutes=0,
    )


class TimeLedgerTests(unittest.TestCase):
    def test_lunch_break_day_totals(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.LUNCH, None, utc(2026, 3, 2, 12, 0))
        item = ledger.end_break(entry, utc(2026, 3, 2, 12, 30))
        ledger.record_check_out(entry, utc(2026, 3, 2, 18, 0))
        ledger.recompute(entry)

        self.assertEqual(item.duration_minutes, 30)
        self.assertFalse(item.is_active)
        self.assertEqual(entry.total_break_minutes, 30)
        self.assertEqual(entry.total_working_minutes, 510)

    def test_recompute_is_idempotent(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.TEA, "tea", utc(2026, 3, 2, 10, 0))
        ledger.end_break(entry, utc(2026, 3, 2, 10, 15))
        ledger.record_check_out(entry, utc(2026, 3, 2, 17, 0))

        ledger.recompute(entry)
        first = (entry.total_working_minutes, entry.total_break_minutes)
        ledger.recompute(entry)
        second = (entry.total_working_minutes, entry.total_break_minutes)

        self.assertEqual(first, second)
        self.assertEqual(first, (465, 15))

    def test_totals_never_negative_with_malformed_breaks(self) -> None:
        entry = _entry()
        entry.check_in_time = utc(2026, 3, 2, 9, 0)
        entry.check_out_time = utc(2026, 3, 2, 10, 0)
        entry.breaks.append(
            AttendanceBreak(
                break_type=BreakType.OTHER,
                start_time=utc(2026, 3, 2, 9, 30),
                end_time=utc(2026, 3, 2, 9, 0),
                is_active=False,
            )
        )
        entry.breaks.append(
            AttendanceBreak(
                break_type=BreakType.PERSONAL,
                start_time=utc(2026, 3, 2, 8, 0),
                end_time=utc(2026, 3, 2, 12, 0),
                is_active=False,
            )
        )

        ledger.recompute(entry)

        self.assertEqual(entry.total_break_minutes, 240)
        self.assertEqual(entry.total_working_minutes, 0)

    def test_recompute_ignores_open_break_at_checkout(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.LUNCH, None, utc(2026, 3, 2, 12, 0))
        ledger.record_check_out(entry, utc(2026, 3, 2, 13, 0))
        ledger.recompute(entry)

        self.assertEqual(entry.total_working_minutes, 240)
        self.assertEqual(entry.total_break_minutes, 0)
        self.assertIsNotNone(ledger.active_break(entry))

    def test_recompute_without_checkout_leaves_totals(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.recompute(entry)

        self.assertEqual(entry.total_working_minutes, 0)
        self.assertEqual(entry.total_break_minutes, 0)

    def test_second_check_in_rejected_and_entry_unchanged(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0), ip_address="10.0.0.1")

        with self.assertRaises(AlreadyCheckedIn):
            ledger.record_check_in(entry, utc(2026, 3, 2, 10, 0), ip_address="10.0.0.2")

        self.assertEqual(entry.check_in_time, utc(2026, 3, 2, 9, 0))
        self.assertEqual(entry.check_in_ip_address, "10.0.0.1")

    def test_check_out_preconditions(self) -> None:
        entry = _entry()
        with self.assertRaises(NoCheckIn):
            ledger.record_check_out(entry, utc(2026, 3, 2, 18, 0))
        self.assertIsNone(entry.check_out_time)

        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.record_check_out(entry, utc(2026, 3, 2, 18, 0))
        with self.assertRaises(AlreadyCheckedOut):
            ledger.record_check_out(entry, utc(2026, 3, 2, 19, 0))
        self.assertEqual(entry.check_out_time, utc(2026, 3, 2, 18, 0))

    def test_break_preconditions(self) -> None:
        entry = _entry()
        with self.assertRaises(NotCheckedIn):
            ledger.start_break(entry, BreakType.TEA, None, utc(2026, 3, 2, 9, 0))

        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        with self.assertRaises(NoActiveBreak):
            ledger.end_break(entry, utc(2026, 3, 2, 9, 30))

        ledger.start_break(entry, BreakType.TEA, None, utc(2026, 3, 2, 10, 0))
        with self.assertRaises(BreakAlreadyActive):
            ledger.start_break(entry, BreakType.LUNCH, None, utc(2026, 3, 2, 10, 5))
        self.assertEqual(len(entry.breaks), 1)

        ledger.end_break(entry, utc(2026, 3, 2, 10, 10))
        ledger.record_check_out(entry, utc(2026, 3, 2, 17, 0))
        with self.assertRaises(AlreadyCheckedOut):
            ledger.start_break(entry, BreakType.OTHER, None, utc(2026, 3, 2, 17, 5))

    def test_start_break_defaults_to_other(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        item = ledger.start_break(entry, None, None, utc(2026, 3, 2, 9, 30))

        self.assertEqual(item.break_type, BreakType.OTHER)
        self.assertTrue(item.is_active)

    def test_end_break_floors_partial_minutes(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.TEA, None, utc(2026, 3, 2, 10, 0, 0))
        item = ledger.end_break(entry, utc(2026, 3, 2, 10, 14, 59))

        self.assertEqual(item.duration_minutes, 14)

    def test_live_totals_count_ongoing_break(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.TEA, None, utc(2026, 3, 2, 10, 0))
        ledger.end_break(entry, utc(2026, 3, 2, 10, 10))
        ledger.start_break(entry, BreakType.LUNCH, None, utc(2026, 3, 2, 12, 0))

        totals = ledger.live_totals(entry, utc(2026, 3, 2, 12, 20))

        self.assertEqual(totals.total_login_minutes, 200)
        self.assertEqual(totals.total_break_minutes, 30)
        self.assertEqual(totals.total_working_minutes, 170)

    def test_live_totals_stop_at_checkout(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.record_check_out(entry, utc(2026, 3, 2, 11, 0))

        totals = ledger.live_totals(entry, utc(2026, 3, 2, 20, 0))

        self.assertEqual(totals.to_dict()["total_login_minutes"], 120)
        self.assertEqual(totals.total_working_minutes, 120)

    def test_live_totals_zero_without_check_in(self) -> None:
        self.assertEqual(ledger.live_totals(None, utc(2026, 3, 2, 9, 0)), ledger.LiveTotals(0, 0, 0))
        self.assertEqual(ledger.live_totals(_entry(), utc(2026, 3, 2, 9, 0)), ledger.LiveTotals(0, 0, 0))

    def test_day_totals_use_stored_totals_after_checkout_with_open_break(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.LUNCH, None, utc(2026, 3, 2, 12, 0))
        ledger.record_check_out(entry, utc(2026, 3, 2, 18, 0))
        ledger.recompute(entry)

        totals = ledger.day_totals(entry, utc(2026, 3, 2, 23, 0))

        self.assertEqual(totals, ledger.LiveTotals(540, 0, 540))
        self.assertEqual(totals.total_working_minutes, entry.total_working_minutes)

    def test_day_totals_run_live_while_day_is_open(self) -> None:
        entry = _entry()
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))

        self.assertEqual(ledger.day_totals(entry, utc(2026, 3, 2, 10, 30)), ledger.LiveTotals(90, 0, 90))


if __name__ == "__main__":
    unittest.main()
