from __future__ import annotations

import unittest
from datetime import date

from hrdesk.models import AttendanceBreak, AttendanceEntry, AttendanceStatus, BreakType, Employee
from hrdesk.services.aggregation import daily_overview, period_summary
from tests.helpers import utc

DAY = date(2026, 3, 2)


def _employee(employee_id: int, department: str | None = "Engineering") -> Employee:
    return Employee(
        id=employee_id,
        employee_code=f"EMP{employee_id:03d}",
        first_name="Emp",
        last_name=str(employee_id),
        department=department,
        is_active=True,
    )


def _entry(
    employee: Employee | None,
    *,
    entry_id: int,
    check_in_hour: int | None = 9,
    check_out_hour: int | None = None,
    is_late: bool = False,
    status: AttendanceStatus = AttendanceStatus.PRESENT,
    working_minutes: float = 0,
) -> AttendanceEntry:
    entry = AttendanceEntry(
        id=entry_id,
        employee_id=employee.id if employee is not None else None,
        date=DAY,
        check_in_time=utc(2026, 3, 2, check_in_hour, entry_id) if check_in_hour is not None else None,
        check_out_time=utc(2026, 3, 2, check_out_hour) if check_out_hour is not None else None,
        is_late=is_late,
        late_minutes=5 if is_late else 0,
        status=status,
        total_working_minutes=working_minutes,
        total_break_minutes=0,
    )
    entry.employee = employee
    return entry


class DailyOverviewTests(unittest.TestCase):
    def test_counts_for_mixed_day(self) -> None:
        entries = [
            _entry(_employee(1), entry_id=1, is_late=True),
            _entry(_employee(2), entry_id=2),
            _entry(_employee(3, "Sales"), entry_id=3),
            _entry(_employee(4), entry_id=4, check_out_hour=17),
            _entry(_employee(5, "Sales"), entry_id=5, check_out_hour=18),
        ]
        entries[1].breaks.append(
            AttendanceBreak(
                break_type=BreakType.TEA,
                start_time=utc(2026, 3, 2, 10, 0),
                is_active=True,
            )
        )

        result = daily_overview(entries, 10, utc(2026, 3, 2, 10, 20))

        overview = result.overview
        self.assertEqual(overview.total_employees, 10)
        self.assertEqual(overview.present_today, 5)
        self.assertEqual(overview.checked_in, 3)
        self.assertEqual(overview.checked_out, 2)
        self.assertEqual(overview.on_break, 1)
        self.assertEqual(overview.late, 1)
        self.assertEqual(overview.absent, 5)

        self.assertEqual(result.department_stats["Engineering"].total, 3)
        self.assertEqual(result.department_stats["Engineering"].late, 1)
        self.assertEqual(result.department_stats["Sales"].present, 2)

        self.assertEqual(len(result.on_break_employees), 1)
        on_break = result.on_break_employees[0]
        self.assertEqual(on_break.employee.employee_id, "EMP002")
        self.assertEqual(on_break.break_type, BreakType.TEA)
        self.assertEqual(on_break.total_break_minutes, 20)
        self.assertEqual(result.skipped_records, 0)

    def test_recent_activity_sorted_and_capped(self) -> None:
        entries = [_entry(_employee(i), entry_id=i) for i in range(1, 15)]

        result = daily_overview(entries, 20, utc(2026, 3, 2, 12, 0))

        self.assertEqual(len(result.recent_activity), 10)
        self.assertEqual(result.recent_activity[0].employee.id, 14)
        times = [item.check_in_time for item in result.recent_activity]
        self.assertEqual(times, sorted(times, reverse=True))

    def test_unresolved_employee_and_department_are_skipped(self) -> None:
        entries = [
            _entry(None, entry_id=1),
            _entry(_employee(2, department=None), entry_id=2),
            _entry(_employee(3), entry_id=3),
        ]

        with self.assertLogs("hrdesk.aggregation", level="WARNING"):
            result = daily_overview(entries, 3, utc(2026, 3, 2, 12, 0))

        self.assertEqual(result.skipped_records, 2)
        self.assertEqual(result.overview.present_today, 2)
        self.assertEqual(list(result.department_stats), ["Engineering"])

    def test_absent_never_negative(self) -> None:
        entries = [_entry(_employee(1), entry_id=1), _entry(_employee(2), entry_id=2)]

        result = daily_overview(entries, 1, utc(2026, 3, 2, 12, 0))

        self.assertEqual(result.overview.absent, 0)


class PeriodSummaryTests(unittest.TestCase):
    def test_empty_period(self) -> None:
        summary = period_summary([])

        self.assertEqual(summary.total_days, 0)
        self.assertEqual(summary.present_days, 0)
        self.assertEqual(summary.average_working_minutes, 0)

    def test_period_counts(self) -> None:
        entries = [
            _entry(_employee(1), entry_id=1, working_minutes=480),
            _entry(_employee(1), entry_id=2, working_minutes=420),
            _entry(_employee(1), entry_id=3, status=AttendanceStatus.LATE, is_late=True, working_minutes=400),
            _entry(_employee(1), entry_id=4, status=AttendanceStatus.ABSENT, check_in_hour=None),
        ]

        summary = period_summary(entries)

        self.assertEqual(summary.total_days, 4)
        self.assertEqual(summary.present_days, 2)
        self.assertEqual(summary.absent_days, 1)
        self.assertEqual(summary.late_days, 1)
        self.assertEqual(summary.total_working_minutes, 1300)
        self.assertEqual(summary.average_working_minutes, 650)


if __name__ == "__main__":
    unittest.main()
