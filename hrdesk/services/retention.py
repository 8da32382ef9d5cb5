from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from hrdesk.services.entries import delete_entries_before
from hrdesk.services.timeutils import today_local
from hrdesk.settings import get_retention_days

logger = logging.getLogger("hrdesk.retention")


@dataclass(frozen=True, slots=True)
class RetentionSweepResult:
    success: bool
    deleted_count: int
    cutoff_date: date
    retention_days: int

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "deleted_count": self.deleted_count,
            "cutoff_date": self.cutoff_date.isoformat(),
            "retention_days": self.retention_days,
        }


def retention_cutoff(today: date, retention_days: int) -> date:
    return today - timedelta(days=retention_days)


def run_retention_sweep(
    db: Session,
    *,
    now: datetime | None = None,
    retention_days: int | None = None,
) -> RetentionSweepResult:
    days = retention_days if retention_days is not None and retention_days >= 1 else get_retention_days()
    cutoff = retention_cutoff(today_local(now), days)

    try:
        deleted_count = delete_entries_before(db, cutoff)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "retention_sweep_failed",
            extra={"cutoff_date": cutoff.isoformat(), "retention_days": days},
        )
        raise

    logger.info(
        "retention_sweep_completed",
        extra={
            "deleted_count": deleted_count,
            "cutoff_date": cutoff.isoformat(),
            "retention_days": days,
        },
    )
    return RetentionSweepResult(
        success=True,
        deleted_count=deleted_count,
        cutoff_date=cutoff,
        retention_days=days,
    )
