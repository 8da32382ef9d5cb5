from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, tzinfo

from sqlalchemy.orm import Session

from hrdesk.models import Employee
from hrdesk.services.timeutils import attendance_timezone, normalize_ts
from hrdesk.settings import get_settings

logger = logging.getLogger("hrdesk.attendance")


@dataclass(frozen=True, slots=True)
class ShiftPolicy:
    start: time | None
    end: time | None


def parse_hhmm(value: str | None) -> time | None:
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    hour_text, sep, minute_text = raw.partition(":")
    if not sep or not hour_text.isdigit() or not minute_text.isdigit():
        raise ValueError(f"Invalid HH:mm value: {value!r}")
    return time(int(hour_text), int(minute_text))


def _safe_parse(value: str | None, *, employee_id: int, field_name: str) -> time | None:
    try:
        return parse_hhmm(value)
    except ValueError:
        logger.warning(
            "shift_policy_malformed_time",
            extra={"employee_id": employee_id, "field": field_name, "value": value},
        )
        return None


def resolve_shift_policy(db: Session, employee_id: int) -> ShiftPolicy | None:
    try:
        with db.begin_nested():
            employee = db.get(Employee, employee_id)
    except Exception:
        logger.exception("shift_policy_lookup_failed", extra={"employee_id": employee_id})
        return None
    if employee is None:
        return None

    settings = get_settings()
    start = _safe_parse(
        employee.shift_start or settings.default_shift_start,
        employee_id=employee_id,
        field_name="shift_start",
    )
    end = _safe_parse(
        employee.shift_end or settings.default_shift_end,
        employee_id=employee_id,
        field_name="shift_end",
    )
    if start is None and end is None:
        return None
    return ShiftPolicy(start=start, end=end)


def _shift_instant(wall_clock: time, reference: datetime, tz: tzinfo) -> datetime:
    local_reference = normalize_ts(reference).astimezone(tz)
    return datetime.combine(local_reference.date(), wall_clock, tzinfo=tz)


def classify_lateness(
    shift_start: time | None,
    check_in_time: datetime,
    tz: tzinfo | None = None,
) -> tuple[bool, int]:
    if shift_start is None:
        return False, 0

    check_in = normalize_ts(check_in_time)
    expected = _shift_instant(shift_start, check_in, tz or attendance_timezone())
    if check_in <= expected:
        return False, 0
    return True, math.floor((check_in - expected) / timedelta(minutes=1))


def classify_overtime(
    shift_end: time | None,
    check_out_time: datetime,
    tz: tzinfo | None = None,
) -> int:
    if shift_end is None:
        return 0

    check_out = normalize_ts(check_out_time)
    expected = _shift_instant(shift_end, check_out, tz or attendance_timezone())
    if check_out <= expected:
        return 0
    return math.floor((check_out - expected) / timedelta(minutes=1))
