"""Employee attendance actions.

Each action is one read-modify-write of the (employee, day) entry inside a
single transaction. The row is locked with SELECT ... FOR UPDATE, and a
concurrent first check-in that loses the insert race surfaces as
``AlreadyCheckedIn`` through the unique constraint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.errors import AlreadyCheckedIn, ApiError, HolidayBlocked, NoActiveBreak, NoCheckIn, NotCheckedIn
from hrdesk.models import AttendanceActivityNote, AttendanceEntry, AttendanceStatus, Employee
from hrdesk.schemas import ActivityNoteCreate, ActivityNoteUpdate, BreakStartRequest, LocationPayload
from hrdesk.services import ledger
from hrdesk.services.attendance_state import AttendanceState, derive_state
from hrdesk.services.entries import find_entry, find_entry_for_update, upsert_entry
from hrdesk.services.holidays import find_blocking_holiday
from hrdesk.services.realtime import (
    DASHBOARD_CHANNEL,
    EVENT_BREAK_END,
    EVENT_BREAK_START,
    EVENT_CHECKIN,
    EVENT_CHECKOUT,
    NotificationSink,
    build_attendance_event,
    emit_best_effort,
)
from hrdesk.services.shift_policy import classify_lateness, classify_overtime, resolve_shift_policy
from hrdesk.services.timeutils import local_day, normalize_ts

logger = logging.getLogger("hrdesk.attendance")


@dataclass(frozen=True, slots=True)
class TodayStatus:
    date: date
    state: AttendanceState
    entry: AttendanceEntry | None
    totals: ledger.LiveTotals


def _location_dict(location: LocationPayload | None) -> dict[str, Any] | None:
    if location is None:
        return None
    return location.model_dump()


def _resolve_active_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="Employee not found.")
    if not employee.is_active:
        raise ApiError(
            status_code=403,
            code="EMPLOYEE_INACTIVE",
            message="Inactive employee cannot perform attendance actions.",
        )
    return employee


def _notify(
    notifier: NotificationSink | None,
    event_type: str,
    employee: Employee,
    *,
    time: datetime,
    break_type: Any = None,
) -> None:
    event = build_attendance_event(
        event_type,
        employee,
        employee_id=employee.id,
        time=time,
        break_type=break_type,
    )
    emit_best_effort(notifier, DASHBOARD_CHANNEL, event)


def check_in(
    db: Session,
    *,
    employee_id: int,
    now: datetime | None = None,
    location: LocationPayload | None = None,
    ip_address: str | None = None,
    device_info: str | None = None,
    notifier: NotificationSink | None = None,
) -> AttendanceEntry:
    now_utc = normalize_ts(now)
    day = local_day(now_utc)
    employee = _resolve_active_employee(db, employee_id)

    entry = find_entry_for_update(db, employee_id, day)
    if entry is not None and entry.check_in_time is not None:
        db.rollback()
        raise AlreadyCheckedIn()

    holiday = find_blocking_holiday(db, day, employee.department, employee.work_location)
    if holiday is not None:
        db.rollback()
        logger.info(
            "attendance_checkin_holiday_blocked",
            extra={"employee_id": employee_id, "day": day.isoformat(), "holiday_id": holiday.id},
        )
        raise HolidayBlocked(holiday.name)

    if entry is None:
        entry = AttendanceEntry(
            employee_id=employee_id,
            date=day,
            status=AttendanceStatus.PRESENT,
            total_working_minutes=0,
            total_break_minutes=0,
            is_late=False,
            late_minutes=0,
            overtime_minutes=0,
        )

    ledger.record_check_in(
        entry,
        now_utc,
        location=_location_dict(location),
        ip_address=ip_address,
        device_info=device_info,
    )

    policy = resolve_shift_policy(db, employee_id)
    is_late, late_minutes = classify_lateness(policy.start if policy else None, now_utc)
    entry.is_late = is_late
    entry.late_minutes = late_minutes
    entry.status = AttendanceStatus.LATE if is_late else AttendanceStatus.PRESENT

    try:
        upsert_entry(db, entry)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyCheckedIn() from exc

    logger.info(
        "attendance_checkin",
        extra={
            "employee_id": employee_id,
            "entry_id": entry.id,
            "day": day.isoformat(),
            "is_late": is_late,
            "late_minutes": late_minutes,
        },
    )
    _notify(notifier, EVENT_CHECKIN, employee, time=now_utc)
    return entry


def check_out(
    db: Session,
    *,
    employee_id: int,
    now: datetime | None = None,
    location: LocationPayload | None = None,
    ip_address: str | None = None,
    device_info: str | None = None,
    notifier: NotificationSink | None = None,
) -> AttendanceEntry:
    now_utc = normalize_ts(now)
    day = local_day(now_utc)
    employee = _resolve_active_employee(db, employee_id)

    entry = find_entry_for_update(db, employee_id, day)
    try:
        if entry is None:
            raise NoCheckIn()
        ledger.record_check_out(
            entry,
            now_utc,
            location=_location_dict(location),
            ip_address=ip_address,
            device_info=device_info,
        )
    except ApiError:
        db.rollback()
        raise

    policy = resolve_shift_policy(db, employee_id)
    entry.overtime_minutes = classify_overtime(policy.end if policy else None, now_utc)
    ledger.recompute(entry)
    db.commit()

    logger.info(
        "attendance_checkout",
        extra={
            "employee_id": employee_id,
            "entry_id": entry.id,
            "day": day.isoformat(),
            "total_working_minutes": entry.total_working_minutes,
            "total_break_minutes": entry.total_break_minutes,
            "overtime_minutes": entry.overtime_minutes,
            "open_break": ledger.active_break(entry) is not None,
        },
    )
    _notify(notifier, EVENT_CHECKOUT, employee, time=now_utc)
    return entry


def start_break(
    db: Session,
    *,
    employee_id: int,
    payload: BreakStartRequest,
    now: datetime | None = None,
    notifier: NotificationSink | None = None,
) -> AttendanceEntry:
    now_utc = normalize_ts(now)
    day = local_day(now_utc)
    employee = _resolve_active_employee(db, employee_id)

    entry = find_entry_for_update(db, employee_id, day)
    try:
        if entry is None:
            raise NotCheckedIn()
        item = ledger.start_break(entry, payload.break_type, payload.reason, now_utc)
    except ApiError:
        db.rollback()
        raise

    db.commit()
    logger.info(
        "attendance_break_started",
        extra={"employee_id": employee_id, "entry_id": entry.id, "break_type": item.break_type.value},
    )
    _notify(notifier, EVENT_BREAK_START, employee, time=now_utc, break_type=item.break_type)
    return entry


def end_break(
    db: Session,
    *,
    employee_id: int,
    now: datetime | None = None,
    notifier: NotificationSink | None = None,
) -> AttendanceEntry:
    now_utc = normalize_ts(now)
    day = local_day(now_utc)
    employee = _resolve_active_employee(db, employee_id)

    entry = find_entry_for_update(db, employee_id, day)
    try:
        if entry is None:
            raise NoActiveBreak()
        item = ledger.end_break(entry, now_utc)
    except ApiError:
        db.rollback()
        raise

    ledger.recompute(entry)
    db.commit()
    logger.info(
        "attendance_break_ended",
        extra={
            "employee_id": employee_id,
            "entry_id": entry.id,
            "break_type": item.break_type.value,
            "duration_minutes": item.duration_minutes,
        },
    )
    _notify(notifier, EVENT_BREAK_END, employee, time=now_utc, break_type=item.break_type)
    return entry


def get_today_status(db: Session, *, employee_id: int, now: datetime | None = None) -> TodayStatus:
    now_utc = normalize_ts(now)
    day = local_day(now_utc)
    entry = find_entry(db, employee_id, day)
    return TodayStatus(
        date=day,
        state=derive_state(entry),
        entry=entry,
        totals=ledger.day_totals(entry, now_utc),
    )


def add_activity_note(
    db: Session,
    *,
    employee_id: int,
    payload: ActivityNoteCreate,
    now: datetime | None = None,
) -> AttendanceActivityNote:
    now_utc = normalize_ts(now)
    entry = find_entry(db, employee_id, local_day(now_utc))
    if entry is None:
        raise ApiError(
            status_code=404,
            code="ATTENDANCE_NOT_FOUND",
            message="No attendance record found for today.",
        )

    note = AttendanceActivityNote(
        type=payload.type,
        description=payload.description.strip(),
        start_time=normalize_ts(payload.start_time) if payload.start_time else now_utc,
        end_time=normalize_ts(payload.end_time) if payload.end_time else None,
        timestamp=now_utc,
    )
    entry.activity_notes.append(note)
    db.commit()
    db.refresh(note)
    return note


def update_activity_note(
    db: Session,
    *,
    employee_id: int,
    note_id: int,
    payload: ActivityNoteUpdate,
    now: datetime | None = None,
) -> AttendanceActivityNote:
    now_utc = normalize_ts(now)
    entry = find_entry(db, employee_id, local_day(now_utc))
    note = None
    if entry is not None:
        note = next((item for item in entry.activity_notes if item.id == note_id), None)
    if note is None:
        raise ApiError(status_code=404, code="ACTIVITY_NOTE_NOT_FOUND", message="Activity note not found.")

    if payload.type is not None:
        note.type = payload.type
    if payload.description is not None:
        note.description = payload.description.strip()
    if payload.start_time is not None:
        note.start_time = normalize_ts(payload.start_time)
    if payload.end_time is not None:
        note.end_time = normalize_ts(payload.end_time)
    note.updated_at = now_utc
    db.commit()
    db.refresh(note)
    return note
