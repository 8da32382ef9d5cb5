from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hrdesk import models  # noqa: F401
from hrdesk.db import Base
from hrdesk.models import Employee, EmployeeRole


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def override_get_db(factory: sessionmaker):
    def _override() -> Generator[Session, None, None]:
        db = factory()
        try:
            yield db
        finally:
            db.close()

    return _override


def add_employee(
    db: Session,
    *,
    employee_id: int,
    code: str | None = None,
    first_name: str = "Test",
    last_name: str = "Employee",
    role: EmployeeRole = EmployeeRole.EMPLOYEE,
    department: str | None = "Engineering",
    work_location: str | None = None,
    shift_start: str | None = None,
    shift_end: str | None = None,
    manager_id: int | None = None,
    is_active: bool = True,
) -> Employee:
    employee = Employee(
        id=employee_id,
        employee_code=code or f"EMP{employee_id:03d}",
        first_name=first_name,
        last_name=last_name,
        role=role,
        department=department,
        work_location=work_location,
        shift_start=shift_start,
        shift_end=shift_end,
        manager_id=manager_id,
        is_active=is_active,
    )
    db.add(employee)
    db.commit()
    return employee


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
