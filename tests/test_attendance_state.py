from __future__ import annotations

import unittest
from datetime import date

from hrdesk.models import AttendanceEntry, BreakType
from hrdesk.services import ledger
from hrdesk.services.attendance_state import AttendanceState, derive_state
from tests.helpers import utc


class AttendanceStateTests(unittest.TestCase):
    def test_no_entry_is_not_checked_in(self) -> None:
        self.assertEqual(derive_state(None), AttendanceState.NOT_CHECKED_IN)
        self.assertEqual(
            derive_state(AttendanceEntry(employee_id=1, date=date(2026, 3, 2))),
            AttendanceState.NOT_CHECKED_IN,
        )

    def test_state_follows_entry_fields(self) -> None:
        entry = AttendanceEntry(employee_id=1, date=date(2026, 3, 2))
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        self.assertEqual(derive_state(entry), AttendanceState.CHECKED_IN)

        ledger.start_break(entry, BreakType.TEA, None, utc(2026, 3, 2, 10, 0))
        self.assertEqual(derive_state(entry), AttendanceState.ON_BREAK)

        ledger.end_break(entry, utc(2026, 3, 2, 10, 15))
        self.assertEqual(derive_state(entry), AttendanceState.CHECKED_IN)

        ledger.record_check_out(entry, utc(2026, 3, 2, 18, 0))
        self.assertEqual(derive_state(entry), AttendanceState.CHECKED_OUT)

    def test_checked_out_wins_over_open_break(self) -> None:
        entry = AttendanceEntry(employee_id=1, date=date(2026, 3, 2))
        ledger.record_check_in(entry, utc(2026, 3, 2, 9, 0))
        ledger.start_break(entry, BreakType.LUNCH, None, utc(2026, 3, 2, 12, 0))
        ledger.record_check_out(entry, utc(2026, 3, 2, 12, 30))

        self.assertEqual(derive_state(entry), AttendanceState.CHECKED_OUT)


if __name__ == "__main__":
    unittest.main()
