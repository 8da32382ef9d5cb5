"""Administrative create / update / delete of attendance entries.

Administrators may set or clear check-in and check-out times directly, so
the derived totals are rebuilt here rather than by the employee flow. The
stored status is left to the administrator.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.errors import ApiError
from hrdesk.models import AttendanceBreak, AttendanceEntry, Employee
from hrdesk.schemas import AttendanceCreateRequest, AttendanceUpdateRequest, BreakInput
from hrdesk.security import CallerIdentity, ensure_can_access_employee
from hrdesk.services import ledger
from hrdesk.services.entries import find_entry
from hrdesk.services.shift_policy import classify_lateness, classify_overtime, resolve_shift_policy
from hrdesk.services.timeutils import minutes_between, normalize_ts

logger = logging.getLogger("hrdesk.attendance")


def _build_break(item: BreakInput) -> AttendanceBreak:
    start_time = normalize_ts(item.start_time)
    end_time = normalize_ts(item.end_time) if item.end_time is not None else None
    duration = None
    if end_time is not None:
        duration = max(0, math.floor(minutes_between(start_time, end_time)))
    return AttendanceBreak(
        break_type=item.break_type,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=duration,
        reason=item.reason,
        is_active=end_time is None,
    )


def _validate_breaks(items: list[BreakInput]) -> None:
    open_breaks = sum(1 for item in items if item.end_time is None)
    if open_breaks > 1:
        raise ApiError(
            status_code=422,
            code="MULTIPLE_ACTIVE_BREAKS",
            message="At most one break may be left open.",
        )


def _validate_times(check_in_time: datetime | None, check_out_time: datetime | None) -> None:
    if check_out_time is None:
        return
    if check_in_time is None:
        raise ApiError(
            status_code=422,
            code="CHECK_OUT_WITHOUT_CHECK_IN",
            message="check_out_time requires check_in_time.",
        )
    if normalize_ts(check_out_time) < normalize_ts(check_in_time):
        raise ApiError(
            status_code=422,
            code="INVALID_TIME_RANGE",
            message="check_out_time must not be earlier than check_in_time.",
        )


def _refresh_derived_fields(db: Session, entry: AttendanceEntry) -> None:
    policy = None
    if entry.employee_id is not None:
        policy = resolve_shift_policy(db, entry.employee_id)

    if entry.check_in_time is not None:
        entry.is_late, entry.late_minutes = classify_lateness(
            policy.start if policy else None,
            entry.check_in_time,
        )
    else:
        entry.is_late, entry.late_minutes = False, 0

    if entry.check_out_time is not None:
        entry.overtime_minutes = classify_overtime(policy.end if policy else None, entry.check_out_time)
    else:
        entry.overtime_minutes = 0

    if entry.check_in_time is None or entry.check_out_time is None:
        entry.total_working_minutes = 0
        entry.total_break_minutes = 0
    else:
        ledger.recompute(entry)


def get_entry_or_404(db: Session, entry_id: int) -> AttendanceEntry:
    entry = db.get(AttendanceEntry, entry_id)
    if entry is None:
        raise ApiError(status_code=404, code="ATTENDANCE_NOT_FOUND", message="Attendance record not found.")
    return entry


def create_entry(
    db: Session,
    payload: AttendanceCreateRequest,
    *,
    identity: CallerIdentity,
) -> AttendanceEntry:
    ensure_can_access_employee(db, identity, payload.employee_id)
    if db.get(Employee, payload.employee_id) is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="Employee not found.")
    if find_entry(db, payload.employee_id, payload.date) is not None:
        raise ApiError(
            status_code=409,
            code="ATTENDANCE_EXISTS",
            message="Attendance record already exists for this date.",
        )

    _validate_times(payload.check_in_time, payload.check_out_time)
    _validate_breaks(payload.breaks)

    entry = AttendanceEntry(
        employee_id=payload.employee_id,
        date=payload.date,
        check_in_time=normalize_ts(payload.check_in_time) if payload.check_in_time else None,
        check_out_time=normalize_ts(payload.check_out_time) if payload.check_out_time else None,
        status=payload.status,
        notes=payload.notes,
        is_approved=False,
    )
    entry.breaks.extend(_build_break(item) for item in payload.breaks)
    _refresh_derived_fields(db, entry)

    db.add(entry)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ApiError(
            status_code=409,
            code="ATTENDANCE_EXISTS",
            message="Attendance record already exists for this date.",
        ) from exc
    db.refresh(entry)
    logger.info(
        "attendance_entry_created",
        extra={"entry_id": entry.id, "employee_id": entry.employee_id, "actor_id": identity.employee_id},
    )
    return entry


def update_entry(
    db: Session,
    entry_id: int,
    payload: AttendanceUpdateRequest,
    *,
    identity: CallerIdentity,
) -> AttendanceEntry:
    entry = get_entry_or_404(db, entry_id)
    if entry.employee_id is not None:
        ensure_can_access_employee(db, identity, entry.employee_id)

    fields = payload.model_fields_set
    check_in_time = entry.check_in_time
    check_out_time = entry.check_out_time
    if "check_in_time" in fields:
        check_in_time = normalize_ts(payload.check_in_time) if payload.check_in_time else None
    if "check_out_time" in fields:
        check_out_time = normalize_ts(payload.check_out_time) if payload.check_out_time else None
    _validate_times(check_in_time, check_out_time)
    if payload.breaks is not None:
        _validate_breaks(payload.breaks)

    entry.check_in_time = check_in_time
    entry.check_out_time = check_out_time
    if payload.status is not None:
        entry.status = payload.status
    if "notes" in fields:
        entry.notes = payload.notes
    if payload.is_approved is not None:
        entry.is_approved = payload.is_approved
        entry.approved_by_employee_id = identity.employee_id if payload.is_approved else None
        entry.approved_at = normalize_ts(None) if payload.is_approved else None
    if payload.breaks is not None:
        entry.breaks.clear()
        entry.breaks.extend(_build_break(item) for item in payload.breaks)

    _refresh_derived_fields(db, entry)
    db.commit()
    db.refresh(entry)
    logger.info(
        "attendance_entry_updated",
        extra={"entry_id": entry.id, "fields": sorted(fields), "actor_id": identity.employee_id},
    )
    return entry


def delete_entry(db: Session, entry_id: int) -> None:
    entry = get_entry_or_404(db, entry_id)
    db.delete(entry)
    db.commit()
    logger.info("attendance_entry_deleted", extra={"entry_id": entry_id})
