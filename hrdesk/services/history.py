from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.errors import ApiError
from hrdesk.models import AttendanceEntry, AttendanceStatus, Employee, HiddenAbsentRecord
from hrdesk.schemas import AttendanceHistoryRow, HideAbsentRequest
from hrdesk.security import CallerIdentity, accessible_employee_ids, ensure_can_access_employee
from hrdesk.services.entries import find_entries_in_range, find_entry
from hrdesk.services.timeutils import normalize_ts
from hrdesk.settings import get_retention_days

MAX_HISTORY_DAYS = 366


def resolve_history_range(
    today: date,
    start_date: date | None,
    end_date: date | None,
) -> tuple[date, date]:
    if start_date is None or end_date is None:
        return today - timedelta(days=get_retention_days()), today
    if end_date < start_date:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )
    if (end_date - start_date).days + 1 > MAX_HISTORY_DAYS:
        raise ApiError(
            status_code=422,
            code="DATE_RANGE_TOO_LARGE",
            message=f"Date range cannot exceed {MAX_HISTORY_DAYS} days.",
        )
    return start_date, end_date


def _history_employees(
    db: Session,
    identity: CallerIdentity,
    employee_id: int | None,
) -> list[Employee]:
    if employee_id is not None:
        ensure_can_access_employee(db, identity, employee_id)
        employee = db.get(Employee, employee_id)
        return [employee] if employee is not None else []

    stmt = select(Employee).where(Employee.is_active.is_(True))
    allowed = accessible_employee_ids(db, identity)
    if allowed is not None:
        stmt = stmt.where(Employee.id.in_(allowed))
    return list(db.scalars(stmt.order_by(Employee.id.asc())).all())


def _entry_row(entry: AttendanceEntry, employee: Employee) -> AttendanceHistoryRow:
    return AttendanceHistoryRow(
        id=entry.id,
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=employee.full_name,
        department=employee.department,
        date=entry.date,
        status=entry.status,
        check_in_time=normalize_ts(entry.check_in_time) if entry.check_in_time else None,
        check_out_time=normalize_ts(entry.check_out_time) if entry.check_out_time else None,
        total_working_minutes=entry.total_working_minutes or 0,
        total_break_minutes=entry.total_break_minutes or 0,
        is_late=bool(entry.is_late),
        late_minutes=entry.late_minutes or 0,
    )


def _placeholder_row(employee: Employee, day: date) -> AttendanceHistoryRow:
    return AttendanceHistoryRow(
        id=None,
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=employee.full_name,
        department=employee.department,
        date=day,
        status=AttendanceStatus.ABSENT,
        is_placeholder=True,
    )


def get_attendance_history(
    db: Session,
    *,
    identity: CallerIdentity,
    today: date,
    employee_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[AttendanceHistoryRow]:
    range_start, range_end = resolve_history_range(today, start_date, end_date)
    employees = _history_employees(db, identity, employee_id)
    if not employees:
        return []

    employee_ids = [item.id for item in employees]
    entries_by_key = {
        (entry.employee_id, entry.date): entry
        for entry in find_entries_in_range(db, employee_ids, range_start, range_end)
    }
    hidden_keys = {
        (item.employee_id, item.date)
        for item in db.scalars(
            select(HiddenAbsentRecord).where(
                HiddenAbsentRecord.employee_id.in_(employee_ids),
                HiddenAbsentRecord.date >= range_start,
                HiddenAbsentRecord.date <= range_end,
            )
        ).all()
    }

    rows: list[AttendanceHistoryRow] = []
    day = range_start
    while day <= range_end:
        for employee in employees:
            key = (employee.id, day)
            entry = entries_by_key.get(key)
            if entry is not None:
                rows.append(_entry_row(entry, employee))
            elif key not in hidden_keys:
                rows.append(_placeholder_row(employee, day))
        day += timedelta(days=1)

    rows.sort(key=lambda row: row.employee_name.lower())
    rows.sort(key=lambda row: row.date, reverse=True)
    return rows


def hide_absent_record(
    db: Session,
    payload: HideAbsentRequest,
    *,
    hidden_by_employee_id: int | None,
    now: datetime | None = None,
) -> HiddenAbsentRecord:
    if db.get(Employee, payload.employee_id) is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="Employee not found.")
    if find_entry(db, payload.employee_id, payload.date) is not None:
        raise ApiError(
            status_code=409,
            code="ATTENDANCE_EXISTS",
            message="Cannot hide absent record, attendance record exists for this date.",
        )

    record = db.scalar(
        select(HiddenAbsentRecord).where(
            HiddenAbsentRecord.employee_id == payload.employee_id,
            HiddenAbsentRecord.date == payload.date,
        )
    )
    if record is None:
        record = HiddenAbsentRecord(employee_id=payload.employee_id, date=payload.date)
        db.add(record)
    record.hidden_by_employee_id = hidden_by_employee_id
    record.hidden_at = normalize_ts(now)
    record.reason = payload.reason

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ApiError(
            status_code=409,
            code="HIDDEN_ABSENT_CONFLICT",
            message="Absent record was hidden concurrently.",
        ) from exc
    db.refresh(record)
    return record


def unhide_absent_record(db: Session, *, employee_id: int, day: date) -> None:
    record = db.scalar(
        select(HiddenAbsentRecord).where(
            HiddenAbsentRecord.employee_id == employee_id,
            HiddenAbsentRecord.date == day,
        )
    )
    if record is None:
        raise ApiError(
            status_code=404,
            code="HIDDEN_ABSENT_NOT_FOUND",
            message="Hidden absent record not found.",
        )
    db.delete(record)
    db.commit()
