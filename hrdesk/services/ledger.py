"""Per-employee, per-day attendance facts and the totals derived from them.

Every mutating function validates its preconditions before touching the
entry, so a rejected call leaves the entry exactly as it was.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from hrdesk.errors import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    BreakAlreadyActive,
    NoActiveBreak,
    NoCheckIn,
    NotCheckedIn,
)
from hrdesk.models import AttendanceBreak, AttendanceEntry, BreakType
from hrdesk.services.timeutils import minutes_between, normalize_ts


@dataclass(frozen=True, slots=True)
class LiveTotals:
    total_login_minutes: int
    total_break_minutes: int
    total_working_minutes: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total_login_minutes": self.total_login_minutes,
            "total_break_minutes": self.total_break_minutes,
            "total_working_minutes": self.total_working_minutes,
        }


def active_break(entry: AttendanceEntry) -> AttendanceBreak | None:
    for item in entry.breaks:
        if item.is_active and item.end_time is None:
            return item
    return None


def record_check_in(
    entry: AttendanceEntry,
    time: datetime,
    location: dict[str, Any] | None = None,
    ip_address: str | None = None,
    device_info: str | None = None,
) -> AttendanceEntry:
    if entry.check_in_time is not None:
        raise AlreadyCheckedIn()

    entry.check_in_time = normalize_ts(time)
    entry.check_in_location = location
    entry.check_in_ip_address = ip_address
    entry.check_in_device_info = device_info
    return entry


def record_check_out(
    entry: AttendanceEntry,
    time: datetime,
    location: dict[str, Any] | None = None,
    ip_address: str | None = None,
    device_info: str | None = None,
) -> AttendanceEntry:
    if entry.check_in_time is None:
        raise NoCheckIn()
    if entry.check_out_time is not None:
        raise AlreadyCheckedOut()

    # An active break is left open here; recompute() only counts terminated breaks.
    entry.check_out_time = normalize_ts(time)
    entry.check_out_location = location
    entry.check_out_ip_address = ip_address
    entry.check_out_device_info = device_info
    return entry


def start_break(
    entry: AttendanceEntry,
    break_type: BreakType | str | None,
    reason: str | None,
    now: datetime,
) -> AttendanceBreak:
    if entry.check_in_time is None:
        raise NotCheckedIn()
    if entry.check_out_time is not None:
        raise AlreadyCheckedOut("Cannot take break after checkout.")
    if active_break(entry) is not None:
        raise BreakAlreadyActive()

    item = AttendanceBreak(
        break_type=BreakType(break_type) if break_type else BreakType.OTHER,
        start_time=normalize_ts(now),
        end_time=None,
        duration_minutes=None,
        reason=reason,
        is_active=True,
    )
    entry.breaks.append(item)
    return item


def end_break(entry: AttendanceEntry, now: datetime) -> AttendanceBreak:
    item = active_break(entry)
    if item is None:
        raise NoActiveBreak()

    end_time = normalize_ts(now)
    item.end_time = end_time
    item.duration_minutes = max(0, math.floor(minutes_between(item.start_time, end_time)))
    item.is_active = False
    return item


def terminated_break_minutes(entry: AttendanceEntry) -> float:
    total = 0.0
    for item in entry.breaks:
        if item.end_time is None:
            continue
        total += max(0.0, minutes_between(item.start_time, item.end_time))
    return total


def recompute(entry: AttendanceEntry) -> AttendanceEntry:
    if entry.check_in_time is None or entry.check_out_time is None:
        return entry

    gross_minutes = minutes_between(entry.check_in_time, entry.check_out_time)
    break_minutes = terminated_break_minutes(entry)
    entry.total_working_minutes = max(0.0, gross_minutes - break_minutes)
    entry.total_break_minutes = break_minutes
    return entry


def live_totals(entry: AttendanceEntry | None, now: datetime) -> LiveTotals:
    if entry is None or entry.check_in_time is None:
        return LiveTotals(0, 0, 0)

    reference = normalize_ts(now)
    login_end = entry.check_out_time or reference
    login_minutes = max(0, math.floor(minutes_between(entry.check_in_time, login_end)))

    break_minutes = 0
    for item in entry.breaks:
        break_end = item.end_time or reference
        break_minutes += max(0, math.floor(minutes_between(item.start_time, break_end)))

    return LiveTotals(
        total_login_minutes=login_minutes,
        total_break_minutes=break_minutes,
        total_working_minutes=max(0, login_minutes - break_minutes),
    )


def day_totals(entry: AttendanceEntry | None, now: datetime) -> LiveTotals:
    """Running totals while the day is open, the stored totals once checked out."""
    if entry is None or entry.check_in_time is None or entry.check_out_time is None:
        return live_totals(entry, now)

    login_minutes = max(0, math.floor(minutes_between(entry.check_in_time, entry.check_out_time)))
    return LiveTotals(
        total_login_minutes=login_minutes,
        total_break_minutes=int(entry.total_break_minutes or 0),
        total_working_minutes=int(entry.total_working_minutes or 0),
    )
