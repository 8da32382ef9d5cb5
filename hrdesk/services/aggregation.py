"""Roll-ups over many attendance entries for the dashboard and payroll."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from hrdesk.models import AttendanceEntry, AttendanceStatus, BreakType, Employee
from hrdesk.services.ledger import active_break, live_totals
from hrdesk.services.timeutils import normalize_ts

logger = logging.getLogger("hrdesk.aggregation")

RECENT_ACTIVITY_LIMIT = 10


@dataclass(frozen=True, slots=True)
class EmployeeRef:
    id: int
    name: str
    employee_id: str
    department: str | None = None


@dataclass(frozen=True, slots=True)
class OverviewCounts:
    total_employees: int
    present_today: int
    checked_in: int
    checked_out: int
    on_break: int
    late: int
    absent: int


@dataclass(slots=True)
class DepartmentStat:
    total: int = 0
    present: int = 0
    late: int = 0


@dataclass(frozen=True, slots=True)
class RecentActivity:
    employee: EmployeeRef
    check_in_time: datetime
    check_out_time: datetime | None
    status: AttendanceStatus
    is_late: bool
    late_minutes: int


@dataclass(frozen=True, slots=True)
class OnBreakEmployee:
    employee: EmployeeRef
    break_type: BreakType
    start_time: datetime
    total_break_minutes: int


@dataclass(frozen=True, slots=True)
class DailyOverview:
    overview: OverviewCounts
    department_stats: dict[str, DepartmentStat] = field(default_factory=dict)
    recent_activity: list[RecentActivity] = field(default_factory=list)
    on_break_employees: list[OnBreakEmployee] = field(default_factory=list)
    skipped_records: int = 0


@dataclass(frozen=True, slots=True)
class PeriodSummary:
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    total_working_minutes: float
    average_working_minutes: float


def employee_ref(employee: Employee) -> EmployeeRef:
    return EmployeeRef(
        id=employee.id,
        name=employee.full_name,
        employee_id=employee.employee_code,
        department=employee.department,
    )


def daily_overview(
    entries: Iterable[AttendanceEntry],
    total_employee_count: int,
    now: datetime,
    recent_limit: int = RECENT_ACTIVITY_LIMIT,
) -> DailyOverview:
    reference = normalize_ts(now)
    resolved: list[AttendanceEntry] = []
    skipped = 0
    for entry in entries:
        if entry.employee is None:
            skipped += 1
            logger.warning(
                "aggregation_entry_without_employee",
                extra={"entry_id": entry.id, "employee_id": entry.employee_id},
            )
            continue
        resolved.append(entry)

    checked_in = sum(1 for e in resolved if e.check_in_time is not None and e.check_out_time is None)
    checked_out = sum(1 for e in resolved if e.check_out_time is not None)
    on_break = sum(1 for e in resolved if active_break(e) is not None)
    late = sum(1 for e in resolved if e.is_late)
    present_today = checked_in + checked_out

    department_stats: dict[str, DepartmentStat] = {}
    for entry in resolved:
        department = (entry.employee.department or "").strip()
        if not department:
            skipped += 1
            logger.warning(
                "aggregation_entry_without_department",
                extra={"entry_id": entry.id, "employee_id": entry.employee_id},
            )
            continue
        stat = department_stats.setdefault(department, DepartmentStat())
        stat.total += 1
        if entry.check_in_time is not None:
            stat.present += 1
        if entry.is_late:
            stat.late += 1

    checked_in_entries = [e for e in resolved if e.check_in_time is not None]
    checked_in_entries.sort(key=lambda e: normalize_ts(e.check_in_time), reverse=True)
    recent_activity = [
        RecentActivity(
            employee=employee_ref(entry.employee),
            check_in_time=normalize_ts(entry.check_in_time),
            check_out_time=normalize_ts(entry.check_out_time) if entry.check_out_time else None,
            status=entry.status,
            is_late=bool(entry.is_late),
            late_minutes=entry.late_minutes or 0,
        )
        for entry in checked_in_entries[:recent_limit]
    ]

    on_break_employees: list[OnBreakEmployee] = []
    for entry in resolved:
        current = active_break(entry)
        if current is None:
            continue
        on_break_employees.append(
            OnBreakEmployee(
                employee=employee_ref(entry.employee),
                break_type=current.break_type,
                start_time=normalize_ts(current.start_time),
                total_break_minutes=live_totals(entry, reference).total_break_minutes,
            )
        )

    if skipped:
        logger.info("aggregation_records_skipped", extra={"skipped_records": skipped})

    return DailyOverview(
        overview=OverviewCounts(
            total_employees=total_employee_count,
            present_today=present_today,
            checked_in=checked_in,
            checked_out=checked_out,
            on_break=on_break,
            late=late,
            absent=max(0, total_employee_count - present_today),
        ),
        department_stats=department_stats,
        recent_activity=recent_activity,
        on_break_employees=on_break_employees,
        skipped_records=skipped,
    )


def period_summary(entries: Iterable[AttendanceEntry]) -> PeriodSummary:
    items = list(entries)
    present_days = sum(1 for e in items if e.status == AttendanceStatus.PRESENT)
    total_working_minutes = sum(float(e.total_working_minutes or 0) for e in items)
    average = total_working_minutes / present_days if present_days > 0 else 0.0
    return PeriodSummary(
        total_days=len(items),
        present_days=present_days,
        absent_days=sum(1 for e in items if e.status == AttendanceStatus.ABSENT),
        late_days=sum(1 for e in items if e.is_late),
        total_working_minutes=total_working_minutes,
        average_working_minutes=average,
    )
