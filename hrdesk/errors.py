from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class AttendancePreconditionError(ApiError):
    """The requested transition is not legal for the entry's current state."""

    status_code = 409
    code = "ATTENDANCE_PRECONDITION_FAILED"
    message = "Attendance action is not allowed in the current state."

    def __init__(self, message: str | None = None):
        super().__init__(self.status_code, self.code, message or self.message)


class AlreadyCheckedIn(AttendancePreconditionError):
    code = "ALREADY_CHECKED_IN"
    message = "Already checked in today."


class NoCheckIn(AttendancePreconditionError):
    code = "NO_CHECK_IN"
    message = "No check in found for today."


class AlreadyCheckedOut(AttendancePreconditionError):
    code = "ALREADY_CHECKED_OUT"
    message = "Already checked out today."


class NotCheckedIn(AttendancePreconditionError):
    code = "NOT_CHECKED_IN"
    message = "Must check in before taking a break."


class BreakAlreadyActive(AttendancePreconditionError):
    code = "BREAK_ALREADY_ACTIVE"
    message = "Already on a break."


class NoActiveBreak(AttendancePreconditionError):
    code = "NO_ACTIVE_BREAK"
    message = "No active break found."


class AttendancePolicyError(ApiError):
    """A business rule rejects the action even though the state allows it."""

    status_code = 409
    code = "ATTENDANCE_POLICY_BLOCKED"
    message = "Attendance action is blocked by policy."

    def __init__(self, message: str | None = None):
        super().__init__(self.status_code, self.code, message or self.message)


class HolidayBlocked(AttendancePolicyError):
    code = "HOLIDAY_BLOCKED"
    message = "Cannot check in on a holiday."

    def __init__(self, holiday_name: str | None = None):
        message = None
        if holiday_name:
            message = f"Cannot check in on a holiday ({holiday_name})."
        super().__init__(message)
        self.holiday_name = holiday_name


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
