from __future__ import annotations

import enum

from hrdesk.models import AttendanceEntry
from hrdesk.services.ledger import active_break


class AttendanceState(str, enum.Enum):
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    CHECKED_IN = "CHECKED_IN"
    ON_BREAK = "ON_BREAK"
    CHECKED_OUT = "CHECKED_OUT"


def derive_state(entry: AttendanceEntry | None) -> AttendanceState:
    if entry is None or entry.check_in_time is None:
        return AttendanceState.NOT_CHECKED_IN
    if entry.check_out_time is not None:
        return AttendanceState.CHECKED_OUT
    if active_break(entry) is not None:
        return AttendanceState.ON_BREAK
    return AttendanceState.CHECKED_IN
