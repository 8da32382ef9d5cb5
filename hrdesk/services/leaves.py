from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrdesk.errors import ApiError
from hrdesk.models import Employee, Leave, LeaveStatus
from hrdesk.schemas import LeaveCreateRequest

BLOCKING_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)
REVIEW_DECISIONS = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


def leave_total_days(start_date: date, end_date: date, *, is_half_day: bool) -> float:
    if is_half_day:
        return 0.5
    return float((end_date - start_date).days + 1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    days_in_month = monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days_in_month)


def find_overlapping_leaves(
    db: Session,
    *,
    employee_id: int,
    start_date: date,
    end_date: date,
    statuses: tuple[LeaveStatus, ...] = BLOCKING_LEAVE_STATUSES,
) -> list[Leave]:
    stmt = (
        select(Leave)
        .where(
            Leave.employee_id == employee_id,
            Leave.start_date <= end_date,
            Leave.end_date >= start_date,
            Leave.status.in_(statuses),
        )
        .order_by(Leave.start_date.asc(), Leave.id.asc())
    )
    return list(db.scalars(stmt).all())


def create_leave(db: Session, payload: LeaveCreateRequest) -> Leave:
    employee = db.get(Employee, payload.employee_id)
    if employee is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="Employee not found.")

    if payload.end_date < payload.start_date:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )
    if payload.is_half_day and payload.end_date != payload.start_date:
        raise ApiError(
            status_code=422,
            code="INVALID_HALF_DAY",
            message="A half-day leave must start and end on the same day.",
        )

    conflicts = find_overlapping_leaves(
        db,
        employee_id=payload.employee_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    if conflicts:
        raise ApiError(
            status_code=409,
            code="LEAVE_CONFLICT",
            message="Leave conflicts with existing approved/pending leaves.",
        )

    leave = Leave(
        employee_id=payload.employee_id,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        total_days=leave_total_days(payload.start_date, payload.end_date, is_half_day=payload.is_half_day),
        reason=payload.reason.strip(),
        status=payload.status,
        is_half_day=payload.is_half_day,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def list_leaves(
    db: Session,
    *,
    employee_ids: list[int] | None,
    year: int | None,
    month: int | None,
    status: LeaveStatus | None = None,
) -> list[Leave]:
    if (year is None) != (month is None):
        raise ApiError(
            status_code=422,
            code="INVALID_PERIOD",
            message="year and month must be provided together.",
        )

    stmt = select(Leave).order_by(Leave.start_date.asc(), Leave.id.asc())
    if employee_ids is not None:
        if not employee_ids:
            return []
        stmt = stmt.where(Leave.employee_id.in_(employee_ids))
    if status is not None:
        stmt = stmt.where(Leave.status == status)

    if year is not None and month is not None:
        start, end = month_bounds(year, month)
        stmt = stmt.where(
            Leave.start_date <= end,
            Leave.end_date >= start,
        )

    return list(db.scalars(stmt).all())


def delete_leave(db: Session, leave_id: int) -> None:
    leave = db.get(Leave, leave_id)
    if leave is None:
        raise ApiError(status_code=404, code="LEAVE_NOT_FOUND", message="Leave not found.")

    db.delete(leave)
    db.commit()


def _get_leave_for_update(db: Session, leave_id: int) -> Leave:
    leave = db.scalar(select(Leave).where(Leave.id == leave_id).with_for_update())
    if leave is None:
        raise ApiError(status_code=404, code="LEAVE_NOT_FOUND", message="Leave not found.")
    return leave


def get_leave(db: Session, leave_id: int) -> Leave:
    leave = db.get(Leave, leave_id)
    if leave is None:
        raise ApiError(status_code=404, code="LEAVE_NOT_FOUND", message="Leave not found.")
    return leave


def approve_leave(
    db: Session,
    leave_id: int,
    *,
    decision: LeaveStatus,
    reviewer_employee_id: int | None,
    rejection_reason: str | None = None,
) -> Leave:
    """Move a pending leave to approved or rejected.

    Only approved leaves count towards paid-leave days in payroll.
    """
    if decision not in REVIEW_DECISIONS:
        raise ApiError(
            status_code=422,
            code="INVALID_LEAVE_STATUS",
            message="Leave decision must be approved or rejected.",
        )

    leave = _get_leave_for_update(db, leave_id)
    if leave.status != LeaveStatus.PENDING:
        db.rollback()
        raise ApiError(
            status_code=409,
            code="LEAVE_ALREADY_PROCESSED",
            message="Leave has already been processed.",
        )

    leave.status = decision
    leave.reviewed_by_employee_id = reviewer_employee_id
    leave.reviewed_at = datetime.now(timezone.utc)
    if decision == LeaveStatus.REJECTED and rejection_reason:
        leave.rejection_reason = rejection_reason.strip()
    db.commit()
    db.refresh(leave)
    return leave


def cancel_leave(db: Session, leave_id: int) -> Leave:
    leave = _get_leave_for_update(db, leave_id)
    if leave.status != LeaveStatus.PENDING:
        db.rollback()
        raise ApiError(
            status_code=409,
            code="LEAVE_NOT_CANCELLABLE",
            message="Only pending leaves can be cancelled.",
        )

    leave.status = LeaveStatus.CANCELLED
    db.commit()
    db.refresh(leave)
    return leave
