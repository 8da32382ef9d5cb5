from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from hrdesk.models import (
    ActivityType,
    AttendanceStatus,
    BreakType,
    HolidayType,
    LeaveStatus,
    LeaveType,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LocationPayload(BaseModel):
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=500)


class CheckInRequest(BaseModel):
    location: LocationPayload | None = None
    device_info: str | None = Field(default=None, max_length=1024)


class CheckOutRequest(BaseModel):
    location: LocationPayload | None = None
    device_info: str | None = Field(default=None, max_length=1024)


class BreakStartRequest(BaseModel):
    break_type: BreakType = BreakType.OTHER
    reason: str | None = Field(default=None, max_length=1000)


class BreakRead(BaseModel):
    id: int | None = None
    break_type: BreakType
    start_time: datetime
    end_time: datetime | None = None
    duration_minutes: int | None = None
    reason: str | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ActivityNoteCreate(BaseModel):
    type: ActivityType = ActivityType.WORK
    description: str = Field(min_length=1, max_length=2000)
    start_time: datetime | None = None
    end_time: datetime | None = None


class ActivityNoteUpdate(BaseModel):
    type: ActivityType | None = None
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    start_time: datetime | None = None
    end_time: datetime | None = None


class ActivityNoteRead(BaseModel):
    id: int
    type: ActivityType
    description: str
    start_time: datetime
    end_time: datetime | None = None
    timestamp: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceEntryRead(BaseModel):
    id: int
    employee_id: int | None
    date: date
    check_in_time: datetime | None = None
    check_in_location: dict[str, Any] | None = None
    check_out_time: datetime | None = None
    check_out_location: dict[str, Any] | None = None
    breaks: list[BreakRead] = Field(default_factory=list)
    total_working_minutes: float
    total_break_minutes: float
    status: AttendanceStatus
    is_late: bool
    late_minutes: int
    overtime_minutes: int
    notes: str | None = None
    is_approved: bool

    model_config = ConfigDict(from_attributes=True)


class LiveTotalsRead(BaseModel):
    total_login_minutes: int
    total_break_minutes: int
    total_working_minutes: int

    model_config = ConfigDict(from_attributes=True)


class TodayStatusRead(BaseModel):
    date: date
    state: str
    entry: AttendanceEntryRead | None = None
    totals: LiveTotalsRead


class AttendanceActionResponse(BaseModel):
    message: str
    entry: AttendanceEntryRead


class PeriodSummaryRead(BaseModel):
    employee_id: int
    start_date: date
    end_date: date
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    total_working_minutes: float
    average_working_minutes: float


class DashboardEmployeeRead(CamelModel):
    id: int
    name: str
    employee_id: str
    department: str | None = None


class DashboardCountsRead(CamelModel):
    total_employees: int
    present_today: int
    checked_in: int
    checked_out: int
    on_break: int
    late: int
    absent: int


class DepartmentStatRead(CamelModel):
    total: int
    present: int
    late: int


class RecentActivityRead(CamelModel):
    employee: DashboardEmployeeRead
    check_in_time: datetime
    check_out_time: datetime | None = None
    status: AttendanceStatus
    is_late: bool
    late_minutes: int


class OnBreakEmployeeRead(CamelModel):
    employee: DashboardEmployeeRead
    break_type: BreakType
    start_time: datetime
    total_break_minutes: int


class DashboardOverviewRead(CamelModel):
    overview: DashboardCountsRead
    department_stats: dict[str, DepartmentStatRead] = Field(default_factory=dict)
    recent_activity: list[RecentActivityRead] = Field(default_factory=list)
    on_break_employees: list[OnBreakEmployeeRead] = Field(default_factory=list)


class BreakInput(BaseModel):
    break_type: BreakType = BreakType.OTHER
    start_time: datetime
    end_time: datetime | None = None
    reason: str | None = Field(default=None, max_length=1000)


class AttendanceCreateRequest(BaseModel):
    employee_id: int = Field(ge=1)
    date: date
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: str | None = Field(default=None, max_length=2000)
    breaks: list[BreakInput] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_times(self) -> "AttendanceCreateRequest":
        if self.check_out_time is not None and self.check_in_time is None:
            raise ValueError("check_out_time requires check_in_time.")
        return self


class AttendanceUpdateRequest(BaseModel):
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    status: AttendanceStatus | None = None
    notes: str | None = Field(default=None, max_length=2000)
    is_approved: bool | None = None
    breaks: list[BreakInput] | None = None


class CleanupResponse(BaseModel):
    success: bool
    deleted_count: int
    cutoff_date: date
    retention_days: int


class HideAbsentRequest(BaseModel):
    employee_id: int = Field(ge=1)
    date: date
    reason: str | None = Field(default=None, max_length=1000)


class HiddenAbsentRead(BaseModel):
    id: int
    employee_id: int
    date: date
    hidden_by_employee_id: int | None = None
    hidden_at: datetime
    reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceHistoryRow(BaseModel):
    id: int | None = None
    employee_id: int
    employee_code: str
    employee_name: str
    department: str | None = None
    date: date
    status: AttendanceStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    total_working_minutes: float = 0
    total_break_minutes: float = 0
    is_late: bool = False
    late_minutes: int = 0
    is_placeholder: bool = False


class HolidayCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    date: date
    type: HolidayType = HolidayType.NATIONAL
    description: str | None = Field(default=None, max_length=1000)
    is_recurring: bool = False
    recurring_pattern: str | None = Field(default=None, max_length=20)
    is_active: bool = True
    applicable_departments: list[str] = Field(default_factory=list)
    applicable_locations: list[str] = Field(default_factory=list)
    is_paid: bool = True
    working_hours: float = Field(default=0, ge=0, le=24)


class HolidayUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    new_date: date | None = Field(default=None, alias="date")
    type: HolidayType | None = None
    description: str | None = Field(default=None, max_length=1000)
    is_recurring: bool | None = None
    recurring_pattern: str | None = Field(default=None, max_length=20)
    is_active: bool | None = None
    applicable_departments: list[str] | None = None
    applicable_locations: list[str] | None = None
    is_paid: bool | None = None
    working_hours: float | None = Field(default=None, ge=0, le=24)


class HolidayRead(BaseModel):
    id: int
    name: str
    date: date
    type: HolidayType
    description: str | None = None
    is_recurring: bool
    recurring_pattern: str | None = None
    is_active: bool
    applicable_departments: list[str]
    applicable_locations: list[str]
    is_paid: bool
    working_hours: float

    model_config = ConfigDict(from_attributes=True)


class HolidayCheckRead(BaseModel):
    is_holiday: bool
    holiday: HolidayRead | None = None


class LeaveCreateRequest(BaseModel):
    employee_id: int = Field(ge=1)
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(min_length=1, max_length=1000)
    is_half_day: bool = False
    status: LeaveStatus = LeaveStatus.PENDING


class LeaveReviewRequest(BaseModel):
    status: LeaveStatus
    rejection_reason: str | None = Field(default=None, max_length=1000)


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: float
    reason: str
    status: LeaveStatus
    is_half_day: bool
    reviewed_by_employee_id: int | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PayrollAttendanceSummaryRead(BaseModel):
    employee_id: int
    year: int
    month: int
    total_days: int
    present_days: int
    absent_days: float
    late_days: int
    paid_leave_days: float
    working_minutes: float
    standard_minutes: float
    overtime_minutes: float


class AttendanceHistoryPage(BaseModel):
    attendances: list[AttendanceHistoryRow]
    total: int
    total_pages: int
    current_page: int


class DashboardEventsRead(BaseModel):
    channel: str
    events: list[dict[str, Any]] = Field(default_factory=list)
