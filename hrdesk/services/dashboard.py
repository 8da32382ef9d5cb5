from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrdesk.models import Employee
from hrdesk.services.aggregation import DailyOverview, daily_overview
from hrdesk.services.entries import find_entries_in_range
from hrdesk.services.timeutils import local_day, normalize_ts
from hrdesk.settings import get_settings


def count_active_employees(db: Session) -> int:
    return int(db.scalar(select(func.count(Employee.id)).where(Employee.is_active.is_(True))) or 0)


def build_dashboard_overview(db: Session, *, now: datetime | None = None) -> DailyOverview:
    now_utc = normalize_ts(now)
    today = local_day(now_utc)
    entries = find_entries_in_range(db, None, today, today)
    return daily_overview(
        entries,
        count_active_employees(db),
        now_utc,
        recent_limit=get_settings().recent_activity_limit,
    )
