from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hrdesk.settings import get_settings

DEFAULT_ATTENDANCE_TIMEZONE = "Asia/Kolkata"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_ts(ts_utc: datetime | None) -> datetime:
    if ts_utc is None:
        return utcnow()

    if ts_utc.tzinfo is None:
        return ts_utc.replace(tzinfo=timezone.utc)

    return ts_utc.astimezone(timezone.utc)


@lru_cache
def attendance_timezone() -> tzinfo:
    raw_name = (get_settings().attendance_timezone or "").strip() or DEFAULT_ATTENDANCE_TIMEZONE
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_day(ts_utc: datetime, tz: tzinfo | None = None) -> date:
    return normalize_ts(ts_utc).astimezone(tz or attendance_timezone()).date()


def local_day_start_utc(day: date, tz: tzinfo | None = None) -> datetime:
    local_start = datetime.combine(day, time.min, tzinfo=tz or attendance_timezone())
    return local_start.astimezone(timezone.utc)


def today_local(now: datetime | None = None, tz: tzinfo | None = None) -> date:
    return local_day(normalize_ts(now), tz)


def minutes_between(start: datetime, end: datetime) -> float:
    return (normalize_ts(end) - normalize_ts(start)) / timedelta(minutes=1)
