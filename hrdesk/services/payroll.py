from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from hrdesk.errors import ApiError
from hrdesk.models import Employee, Leave, LeaveStatus
from hrdesk.services.aggregation import period_summary
from hrdesk.services.entries import find_entries_in_range
from hrdesk.services.leaves import find_overlapping_leaves, month_bounds

STANDARD_MINUTES_PER_DAY = 8 * 60


@dataclass(frozen=True, slots=True)
class PayrollAttendanceSummary:
    employee_id: int
    year: int
    month: int
    total_days: int
    present_days: int
    absent_days: float
    late_days: int
    paid_leave_days: float
    working_minutes: float
    standard_minutes: float
    overtime_minutes: float


def paid_leave_days(leaves: list[Leave], month_start: date, month_end: date) -> float:
    total = 0.0
    for leave in leaves:
        if leave.is_half_day:
            total += 0.5
            continue
        start = max(leave.start_date, month_start)
        end = min(leave.end_date, month_end)
        if end < start:
            continue
        total += (end - start).days + 1
    return total


def calculate_monthly_attendance(
    db: Session,
    *,
    employee_id: int,
    year: int,
    month: int,
) -> PayrollAttendanceSummary:
    if db.get(Employee, employee_id) is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="Employee not found.")

    month_start, month_end = month_bounds(year, month)
    summary = period_summary(find_entries_in_range(db, employee_id, month_start, month_end))
    approved = find_overlapping_leaves(
        db,
        employee_id=employee_id,
        start_date=month_start,
        end_date=month_end,
        statuses=(LeaveStatus.APPROVED,),
    )
    leave_days = paid_leave_days(approved, month_start, month_end)

    days_in_month = month_end.day
    standard_minutes = (summary.present_days + leave_days) * STANDARD_MINUTES_PER_DAY
    return PayrollAttendanceSummary(
        employee_id=employee_id,
        year=year,
        month=month,
        total_days=days_in_month,
        present_days=summary.present_days,
        absent_days=max(0.0, days_in_month - summary.present_days - leave_days),
        late_days=summary.late_days,
        paid_leave_days=leave_days,
        working_minutes=summary.total_working_minutes,
        standard_minutes=standard_minutes,
        overtime_minutes=max(0.0, summary.total_working_minutes - standard_minutes),
    )
