from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrdesk.audit import audit_context, log_audit
from hrdesk.db import get_db
from hrdesk.errors import ApiError
from hrdesk.models import EmployeeRole, LeaveStatus
from hrdesk.schemas import (
    AttendanceCreateRequest,
    AttendanceEntryRead,
    AttendanceUpdateRequest,
    CleanupResponse,
    HiddenAbsentRead,
    HideAbsentRequest,
    HolidayCheckRead,
    HolidayCreate,
    HolidayRead,
    HolidayUpdate,
    LeaveCreateRequest,
    LeaveRead,
    LeaveReviewRequest,
    PayrollAttendanceSummaryRead,
)
from hrdesk.security import (
    CallerIdentity,
    accessible_employee_ids,
    ensure_can_access_employee,
    get_current_identity,
    require_roles,
)
from hrdesk.services.corrections import create_entry, delete_entry, update_entry
from hrdesk.services.history import hide_absent_record, unhide_absent_record
from hrdesk.services.holidays import (
    create_holiday,
    deactivate_holiday,
    delete_holiday,
    get_upcoming_holidays,
    is_holiday,
    list_holidays_in_range,
    update_holiday,
)
from hrdesk.services.leaves import (
    approve_leave,
    cancel_leave,
    create_leave,
    delete_leave,
    get_leave,
    list_leaves,
)
from hrdesk.services.payroll import calculate_monthly_attendance
from hrdesk.services.realtime import (
    DASHBOARD_CHANNEL,
    EVENT_LEAVE_UPDATE,
    NotificationSink,
    emit_best_effort,
    get_notifier,
)
from hrdesk.services.retention import run_retention_sweep
from hrdesk.services.timeutils import today_local

router = APIRouter(tags=["admin"])

require_admin = require_roles(EmployeeRole.ADMIN, EmployeeRole.HR_ADMIN)
require_reviewer = require_roles(EmployeeRole.ADMIN, EmployeeRole.HR_ADMIN, EmployeeRole.MANAGER)


@router.post(
    "/api/attendance/create",
    response_model=AttendanceEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_attendance_endpoint(
    payload: AttendanceCreateRequest,
    request: Request,
    identity: CallerIdentity = Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> AttendanceEntryRead:
    entry = create_entry(db, payload, identity=identity)
    log_audit(
        db,
        audit_context(request, identity),
        action="ATTENDANCE_ENTRY_CREATED",
        entity=entry,
    )
    return AttendanceEntryRead.model_validate(entry)


@router.put("/api/attendance/{entry_id}", response_model=AttendanceEntryRead)
def update_attendance_endpoint(
    entry_id: int,
    payload: AttendanceUpdateRequest,
    request: Request,
    identity: CallerIdentity = Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> AttendanceEntryRead:
    entry = update_entry(db, entry_id, payload, identity=identity)
    log_audit(
        db,
        audit_context(request, identity),
        action="ATTENDANCE_ENTRY_UPDATED",
        entity=entry,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return AttendanceEntryRead.model_validate(entry)


@router.delete("/api/attendance/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attendance_endpoint(
    entry_id: int,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    delete_entry(db, entry_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="ATTENDANCE_ENTRY_DELETED",
        entity_type="attendance_entry",
        entity_id=str(entry_id),
    )


@router.post("/api/attendance/cleanup", response_model=CleanupResponse)
def cleanup_endpoint(
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CleanupResponse:
    result = run_retention_sweep(db)
    log_audit(
        db,
        audit_context(request, identity),
        action="ATTENDANCE_RETENTION_SWEEP",
        entity_type="attendance_entry",
        entity_id=None,
        details=result.to_dict(),
    )
    return CleanupResponse(
        success=result.success,
        deleted_count=result.deleted_count,
        cutoff_date=result.cutoff_date,
        retention_days=result.retention_days,
    )


@router.post("/api/attendance/hide-absent", response_model=HiddenAbsentRead)
def hide_absent_endpoint(
    payload: HideAbsentRequest,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> HiddenAbsentRead:
    record = hide_absent_record(db, payload, hidden_by_employee_id=identity.employee_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="ABSENT_RECORD_HIDDEN",
        entity=record,
    )
    return HiddenAbsentRead.model_validate(record)


@router.delete(
    "/api/attendance/hide-absent/{employee_id}/{day}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def unhide_absent_endpoint(
    employee_id: int,
    day: date,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    unhide_absent_record(db, employee_id=employee_id, day=day)
    log_audit(
        db,
        audit_context(request, identity),
        action="ABSENT_RECORD_UNHIDDEN",
        entity_type="hidden_absent_record",
        entity_id=None,
        details={"employee_id": employee_id, "date": day.isoformat()},
    )


@router.post("/api/holidays", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday_endpoint(
    payload: HolidayCreate,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = create_holiday(db, payload, created_by_employee_id=identity.employee_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="HOLIDAY_CREATED",
        entity=holiday,
    )
    return HolidayRead.model_validate(holiday)


@router.put("/api/holidays/{holiday_id}", response_model=HolidayRead)
def update_holiday_endpoint(
    holiday_id: int,
    payload: HolidayUpdate,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = update_holiday(db, holiday_id, payload)
    log_audit(
        db,
        audit_context(request, identity),
        action="HOLIDAY_UPDATED",
        entity=holiday,
        details={"fields": sorted(payload.model_dump(exclude_unset=True, by_alias=True))},
    )
    return HolidayRead.model_validate(holiday)


@router.put("/api/holidays/{holiday_id}/deactivate", response_model=HolidayRead)
def deactivate_holiday_endpoint(
    holiday_id: int,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = deactivate_holiday(db, holiday_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="HOLIDAY_DEACTIVATED",
        entity=holiday,
    )
    return HolidayRead.model_validate(holiday)


@router.delete("/api/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday_endpoint(
    holiday_id: int,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    delete_holiday(db, holiday_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="HOLIDAY_DELETED",
        entity_type="holiday",
        entity_id=str(holiday_id),
    )


@router.get("/api/holidays", response_model=list[HolidayRead])
def list_holidays_endpoint(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    year: int | None = Query(default=None, ge=1970),
    department: str | None = Query(default=None),
    location: str | None = Query(default=None),
    _identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    if start_date is None or end_date is None:
        target_year = year or today_local().year
        start_date, end_date = date(target_year, 1, 1), date(target_year, 12, 31)
    holidays = list_holidays_in_range(db, start_date, end_date, department=department, location=location)
    return [HolidayRead.model_validate(item) for item in holidays]


@router.get("/api/holidays/upcoming", response_model=list[HolidayRead])
def upcoming_holidays_endpoint(
    limit: int = Query(default=10, ge=1, le=100),
    _identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return [HolidayRead.model_validate(item) for item in get_upcoming_holidays(db, today_local(), limit)]


@router.get("/api/holidays/check/{day}", response_model=HolidayCheckRead)
def check_holiday_endpoint(
    day: date,
    department: str | None = Query(default=None),
    location: str | None = Query(default=None),
    _identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> HolidayCheckRead:
    holiday = is_holiday(db, day, department, location)
    return HolidayCheckRead(
        is_holiday=holiday is not None,
        holiday=HolidayRead.model_validate(holiday) if holiday is not None else None,
    )


@router.post("/api/leaves", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def create_leave_endpoint(
    payload: LeaveCreateRequest,
    request: Request,
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> LeaveRead:
    if not identity.is_admin:
        if payload.employee_id != identity.employee_id:
            raise ApiError(status_code=403, code="FORBIDDEN", message="Access denied.")
        if payload.status != LeaveStatus.PENDING:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Only administrators can set the leave status.",
            )
    leave = create_leave(db, payload)
    log_audit(
        db,
        audit_context(request, identity),
        action="LEAVE_CREATED",
        entity=leave,
    )
    return LeaveRead.model_validate(leave)


@router.get("/api/leaves", response_model=list[LeaveRead])
def list_leaves_endpoint(
    employee_id: int | None = Query(default=None, ge=1),
    year: int | None = Query(default=None, ge=1970),
    month: int | None = Query(default=None, ge=1, le=12),
    leave_status: LeaveStatus | None = Query(default=None, alias="status"),
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> list[LeaveRead]:
    if employee_id is not None:
        ensure_can_access_employee(db, identity, employee_id)
        employee_ids: list[int] | None = [employee_id]
    else:
        employee_ids = accessible_employee_ids(db, identity)
    leaves = list_leaves(db, employee_ids=employee_ids, year=year, month=month, status=leave_status)
    return [LeaveRead.model_validate(item) for item in leaves]


@router.delete("/api/leaves/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave_endpoint(
    leave_id: int,
    request: Request,
    identity: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    delete_leave(db, leave_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="LEAVE_DELETED",
        entity_type="leave",
        entity_id=str(leave_id),
    )


@router.put("/api/leaves/{leave_id}/approve", response_model=LeaveRead)
def approve_leave_endpoint(
    leave_id: int,
    payload: LeaveReviewRequest,
    request: Request,
    identity: CallerIdentity = Depends(require_reviewer),
    notifier: NotificationSink | None = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> LeaveRead:
    ensure_can_access_employee(db, identity, get_leave(db, leave_id).employee_id)
    leave = approve_leave(
        db,
        leave_id,
        decision=payload.status,
        reviewer_employee_id=identity.employee_id,
        rejection_reason=payload.rejection_reason,
    )
    log_audit(
        db,
        audit_context(request, identity),
        action="LEAVE_APPROVED" if leave.status == LeaveStatus.APPROVED else "LEAVE_REJECTED",
        entity=leave,
        details={"reviewed_by_employee_id": leave.reviewed_by_employee_id},
    )
    emit_best_effort(
        notifier,
        DASHBOARD_CHANNEL,
        {
            "type": EVENT_LEAVE_UPDATE,
            "leave_id": leave.id,
            "employee_id": leave.employee_id,
            "status": leave.status.value,
            "reviewed_by_employee_id": leave.reviewed_by_employee_id,
        },
    )
    return LeaveRead.model_validate(leave)


@router.put("/api/leaves/{leave_id}/cancel", response_model=LeaveRead)
def cancel_leave_endpoint(
    leave_id: int,
    request: Request,
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> LeaveRead:
    ensure_can_access_employee(db, identity, get_leave(db, leave_id).employee_id)
    leave = cancel_leave(db, leave_id)
    log_audit(
        db,
        audit_context(request, identity),
        action="LEAVE_CANCELLED",
        entity=leave,
    )
    return LeaveRead.model_validate(leave)


@router.get(
    "/api/payroll/attendance-summary/{employee_id}",
    response_model=PayrollAttendanceSummaryRead,
)
def payroll_attendance_summary_endpoint(
    employee_id: int,
    year: int = Query(ge=1970),
    month: int = Query(ge=1, le=12),
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> PayrollAttendanceSummaryRead:
    ensure_can_access_employee(db, identity, employee_id)
    summary = calculate_monthly_attendance(db, employee_id=employee_id, year=year, month=month)
    return PayrollAttendanceSummaryRead.model_validate(summary, from_attributes=True)
