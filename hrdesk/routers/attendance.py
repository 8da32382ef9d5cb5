from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from hrdesk.db import get_db
from hrdesk.models import AttendanceEntry
from hrdesk.schemas import (
    ActivityNoteCreate,
    ActivityNoteRead,
    ActivityNoteUpdate,
    AttendanceActionResponse,
    AttendanceEntryRead,
    AttendanceHistoryPage,
    BreakStartRequest,
    CheckInRequest,
    CheckOutRequest,
    DashboardEventsRead,
    DashboardOverviewRead,
    LiveTotalsRead,
    PeriodSummaryRead,
    TodayStatusRead,
)
from hrdesk.security import (
    CallerIdentity,
    client_ip,
    ensure_can_access_employee,
    ensure_dashboard_request_allowed,
    get_current_identity,
)
from hrdesk.services import attendance as attendance_service
from hrdesk.services.aggregation import period_summary
from hrdesk.services.dashboard import build_dashboard_overview
from hrdesk.services.entries import find_entries_in_range
from hrdesk.services.history import get_attendance_history
from hrdesk.services.realtime import DASHBOARD_CHANNEL, NotificationSink, get_notifier
from hrdesk.services.timeutils import today_local

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def _user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def _action_response(message: str, entry: AttendanceEntry) -> AttendanceActionResponse:
    return AttendanceActionResponse(message=message, entry=AttendanceEntryRead.model_validate(entry))


def _rate_limited_dashboard(request: Request) -> None:
    ensure_dashboard_request_allowed(client_ip(request) or "unknown")


@router.post("/checkin", response_model=AttendanceActionResponse)
def check_in_endpoint(
    request: Request,
    payload: CheckInRequest | None = None,
    identity: CallerIdentity = Depends(get_current_identity),
    notifier: NotificationSink | None = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> AttendanceActionResponse:
    request.state.employee_id = identity.employee_id
    payload = payload or CheckInRequest()
    entry = attendance_service.check_in(
        db,
        employee_id=identity.employee_id,
        location=payload.location,
        ip_address=client_ip(request),
        device_info=payload.device_info or _user_agent(request),
        notifier=notifier,
    )
    return _action_response("Checked in successfully", entry)


@router.post("/checkout", response_model=AttendanceActionResponse)
def check_out_endpoint(
    request: Request,
    payload: CheckOutRequest | None = None,
    identity: CallerIdentity = Depends(get_current_identity),
    notifier: NotificationSink | None = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> AttendanceActionResponse:
    request.state.employee_id = identity.employee_id
    payload = payload or CheckOutRequest()
    entry = attendance_service.check_out(
        db,
        employee_id=identity.employee_id,
        location=payload.location,
        ip_address=client_ip(request),
        device_info=payload.device_info or _user_agent(request),
        notifier=notifier,
    )
    return _action_response("Checked out successfully", entry)


@router.post("/break/start", response_model=AttendanceActionResponse)
def start_break_endpoint(
    request: Request,
    payload: BreakStartRequest | None = None,
    identity: CallerIdentity = Depends(get_current_identity),
    notifier: NotificationSink | None = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> AttendanceActionResponse:
    request.state.employee_id = identity.employee_id
    entry = attendance_service.start_break(
        db,
        employee_id=identity.employee_id,
        payload=payload or BreakStartRequest(),
        notifier=notifier,
    )
    return _action_response("Break started successfully", entry)


@router.post("/break/end", response_model=AttendanceActionResponse)
def end_break_endpoint(
    request: Request,
    identity: CallerIdentity = Depends(get_current_identity),
    notifier: NotificationSink | None = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> AttendanceActionResponse:
    request.state.employee_id = identity.employee_id
    entry = attendance_service.end_break(db, employee_id=identity.employee_id, notifier=notifier)
    return _action_response("Break ended successfully", entry)


@router.get("/today", response_model=TodayStatusRead)
def today_endpoint(
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> TodayStatusRead:
    status = attendance_service.get_today_status(db, employee_id=identity.employee_id)
    return TodayStatusRead(
        date=status.date,
        state=status.state.value,
        entry=AttendanceEntryRead.model_validate(status.entry) if status.entry is not None else None,
        totals=LiveTotalsRead.model_validate(status.totals),
    )


@router.get("/summary/{employee_id}", response_model=PeriodSummaryRead)
def summary_endpoint(
    employee_id: int,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> PeriodSummaryRead:
    ensure_can_access_employee(db, identity, employee_id)
    today = today_local()
    range_end = end_date or today
    range_start = start_date or range_end.replace(day=1)
    summary = period_summary(find_entries_in_range(db, employee_id, range_start, range_end))
    return PeriodSummaryRead(
        employee_id=employee_id,
        start_date=range_start,
        end_date=range_end,
        total_days=summary.total_days,
        present_days=summary.present_days,
        absent_days=summary.absent_days,
        late_days=summary.late_days,
        total_working_minutes=summary.total_working_minutes,
        average_working_minutes=summary.average_working_minutes,
    )


@router.get("/history", response_model=AttendanceHistoryPage)
def history_endpoint(
    employee_id: int | None = Query(default=None, ge=1),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=1000),
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> AttendanceHistoryPage:
    rows = get_attendance_history(
        db,
        identity=identity,
        today=today_local(),
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
    )
    total = len(rows)
    if limit is None:
        return AttendanceHistoryPage(attendances=rows, total=total, total_pages=1, current_page=page)
    offset = (page - 1) * limit
    return AttendanceHistoryPage(
        attendances=rows[offset : offset + limit],
        total=total,
        total_pages=(total + limit - 1) // limit,
        current_page=page,
    )


@router.post("/activity-note", response_model=ActivityNoteRead)
def add_activity_note_endpoint(
    payload: ActivityNoteCreate,
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> ActivityNoteRead:
    note = attendance_service.add_activity_note(db, employee_id=identity.employee_id, payload=payload)
    return ActivityNoteRead.model_validate(note)


@router.put("/activity-note/{note_id}", response_model=ActivityNoteRead)
def update_activity_note_endpoint(
    note_id: int,
    payload: ActivityNoteUpdate,
    identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> ActivityNoteRead:
    note = attendance_service.update_activity_note(
        db,
        employee_id=identity.employee_id,
        note_id=note_id,
        payload=payload,
    )
    return ActivityNoteRead.model_validate(note)


@router.get(
    "/dashboard/overview",
    response_model=DashboardOverviewRead,
    dependencies=[Depends(_rate_limited_dashboard)],
)
def dashboard_overview_endpoint(
    _identity: CallerIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> DashboardOverviewRead:
    overview = build_dashboard_overview(db, now=datetime.now(timezone.utc))
    return DashboardOverviewRead.model_validate(overview, from_attributes=True)


@router.get(
    "/dashboard/public",
    response_model=DashboardOverviewRead,
    dependencies=[Depends(_rate_limited_dashboard)],
)
def dashboard_public_endpoint(db: Session = Depends(get_db)) -> DashboardOverviewRead:
    overview = build_dashboard_overview(db, now=datetime.now(timezone.utc))
    return DashboardOverviewRead.model_validate(overview, from_attributes=True)


@router.get("/dashboard/events", response_model=DashboardEventsRead)
def dashboard_events_endpoint(
    limit: int = Query(default=20, ge=1, le=50),
    _identity: CallerIdentity = Depends(get_current_identity),
    notifier: NotificationSink | None = Depends(get_notifier),
) -> DashboardEventsRead:
    recent_events = getattr(notifier, "recent_events", None)
    events = recent_events(DASHBOARD_CHANNEL, limit) if callable(recent_events) else []
    return DashboardEventsRead(channel=DASHBOARD_CHANNEL, events=events)
