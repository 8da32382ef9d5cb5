from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from hrdesk.models import AttendanceActivityNote, AttendanceBreak, AttendanceEntry


def find_entry(db: Session, employee_id: int, day: date) -> AttendanceEntry | None:
    return db.scalar(
        select(AttendanceEntry).where(
            AttendanceEntry.employee_id == employee_id,
            AttendanceEntry.date == day,
        )
    )


def find_entry_for_update(db: Session, employee_id: int, day: date) -> AttendanceEntry | None:
    return db.scalar(
        select(AttendanceEntry)
        .where(
            AttendanceEntry.employee_id == employee_id,
            AttendanceEntry.date == day,
        )
        .with_for_update()
    )


def upsert_entry(db: Session, entry: AttendanceEntry) -> AttendanceEntry:
    db.add(entry)
    db.flush()
    return entry


def find_entries_in_range(
    db: Session,
    employee_filter: int | Iterable[int] | None,
    start_date: date,
    end_date: date,
) -> list[AttendanceEntry]:
    stmt = (
        select(AttendanceEntry)
        .options(selectinload(AttendanceEntry.employee))
        .where(
            AttendanceEntry.date >= start_date,
            AttendanceEntry.date <= end_date,
        )
        .order_by(AttendanceEntry.date.desc(), AttendanceEntry.id.asc())
    )
    if isinstance(employee_filter, int):
        stmt = stmt.where(AttendanceEntry.employee_id == employee_filter)
    elif employee_filter is not None:
        employee_ids = list(employee_filter)
        if not employee_ids:
            return []
        stmt = stmt.where(AttendanceEntry.employee_id.in_(employee_ids))
    return list(db.scalars(stmt).all())


def delete_entries_before(db: Session, cutoff_date: date) -> int:
    expired_ids = select(AttendanceEntry.id).where(AttendanceEntry.date < cutoff_date)
    db.execute(
        delete(AttendanceBreak)
        .where(AttendanceBreak.entry_id.in_(expired_ids))
        .execution_options(synchronize_session=False)
    )
    db.execute(
        delete(AttendanceActivityNote)
        .where(AttendanceActivityNote.entry_id.in_(expired_ids))
        .execution_options(synchronize_session=False)
    )
    result = db.execute(
        delete(AttendanceEntry)
        .where(AttendanceEntry.date < cutoff_date)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
