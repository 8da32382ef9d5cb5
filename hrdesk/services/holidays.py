from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrdesk.errors import ApiError
from hrdesk.models import Holiday
from hrdesk.schemas import HolidayCreate, HolidayUpdate

logger = logging.getLogger("hrdesk.attendance")

UPCOMING_HOLIDAY_LIMIT = 10
NULLABLE_HOLIDAY_FIELDS = {"description", "recurring_pattern"}


def _applies_to(values: list[str] | None, candidate: str | None) -> bool:
    if not candidate:
        return True
    if not values:
        return True
    return candidate in values


def holiday_matches(
    holiday: Holiday,
    day: date,
    department: str | None = None,
    location: str | None = None,
) -> bool:
    if not holiday.is_active or holiday.date != day:
        return False
    if not _applies_to(holiday.applicable_departments, department):
        return False
    return _applies_to(holiday.applicable_locations, location)


def is_holiday(
    db: Session,
    day: date,
    department: str | None = None,
    location: str | None = None,
) -> Holiday | None:
    candidates = db.scalars(
        select(Holiday)
        .where(Holiday.date == day, Holiday.is_active.is_(True))
        .order_by(Holiday.id.asc())
    ).all()
    for holiday in candidates:
        if holiday_matches(holiday, day, department, location):
            return holiday
    return None


def find_blocking_holiday(
    db: Session,
    day: date,
    department: str | None = None,
    location: str | None = None,
) -> Holiday | None:
    try:
        with db.begin_nested():
            return is_holiday(db, day, department, location)
    except Exception:
        logger.exception(
            "holiday_lookup_failed",
            extra={"day": day.isoformat(), "department": department, "location": location},
        )
        return None


def create_holiday(db: Session, payload: HolidayCreate, *, created_by_employee_id: int | None) -> Holiday:
    existing = db.scalar(select(Holiday.id).where(Holiday.date == payload.date).limit(1))
    if existing is not None:
        raise ApiError(
            status_code=409,
            code="HOLIDAY_EXISTS",
            message="Holiday already exists on this date.",
        )

    holiday = Holiday(
        name=payload.name.strip(),
        date=payload.date,
        type=payload.type,
        description=payload.description,
        is_recurring=payload.is_recurring,
        recurring_pattern=payload.recurring_pattern,
        is_active=payload.is_active,
        applicable_departments=list(payload.applicable_departments),
        applicable_locations=list(payload.applicable_locations),
        is_paid=payload.is_paid,
        working_hours=payload.working_hours,
        created_by_employee_id=created_by_employee_id,
    )
    db.add(holiday)
    db.commit()
    db.refresh(holiday)
    return holiday


def list_holidays_in_range(
    db: Session,
    start_date: date,
    end_date: date,
    *,
    department: str | None = None,
    location: str | None = None,
) -> list[Holiday]:
    if end_date < start_date:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )

    holidays = db.scalars(
        select(Holiday)
        .where(
            Holiday.date >= start_date,
            Holiday.date <= end_date,
            Holiday.is_active.is_(True),
        )
        .order_by(Holiday.date.asc(), Holiday.id.asc())
    ).all()
    return [
        item
        for item in holidays
        if _applies_to(item.applicable_departments, department)
        and _applies_to(item.applicable_locations, location)
    ]


def get_upcoming_holidays(db: Session, today: date, limit: int = UPCOMING_HOLIDAY_LIMIT) -> list[Holiday]:
    return list(
        db.scalars(
            select(Holiday)
            .where(Holiday.date >= today, Holiday.is_active.is_(True))
            .order_by(Holiday.date.asc(), Holiday.id.asc())
            .limit(max(1, limit))
        ).all()
    )


def _get_holiday(db: Session, holiday_id: int) -> Holiday:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise ApiError(status_code=404, code="HOLIDAY_NOT_FOUND", message="Holiday not found.")
    return holiday


def update_holiday(db: Session, holiday_id: int, payload: HolidayUpdate) -> Holiday:
    holiday = _get_holiday(db, holiday_id)
    changes = payload.model_dump(exclude_unset=True, by_alias=True)

    new_date = changes.get("date")
    if new_date is not None and new_date != holiday.date:
        clash = db.scalar(
            select(Holiday.id).where(Holiday.date == new_date, Holiday.id != holiday.id).limit(1)
        )
        if clash is not None:
            raise ApiError(
                status_code=409,
                code="HOLIDAY_EXISTS",
                message="Holiday already exists on this date.",
            )

    for field_name, value in changes.items():
        if value is None and field_name not in NULLABLE_HOLIDAY_FIELDS:
            continue
        if field_name == "name":
            value = value.strip()
        elif field_name in {"applicable_departments", "applicable_locations"}:
            value = list(value)
        setattr(holiday, field_name, value)

    db.commit()
    db.refresh(holiday)
    return holiday


def deactivate_holiday(db: Session, holiday_id: int) -> Holiday:
    holiday = _get_holiday(db, holiday_id)
    holiday.is_active = False
    db.commit()
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, holiday_id: int) -> None:
    holiday = _get_holiday(db, holiday_id)
    db.delete(holiday)
    db.commit()
