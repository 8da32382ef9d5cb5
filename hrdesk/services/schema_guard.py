from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "employees": {"id", "employee_code", "department", "shift_start", "shift_end", "manager_id"},
    "attendance_entries": {
        "id",
        "employee_id",
        "date",
        "check_in_time",
        "check_out_time",
        "total_working_minutes",
        "total_break_minutes",
        "is_late",
        "late_minutes",
        "overtime_minutes",
        "status",
    },
    "attendance_breaks": {"id", "entry_id", "break_type", "start_time", "end_time", "is_active"},
    "attendance_activity_notes": {"id", "entry_id", "type", "description"},
    "holidays": {"id", "date", "is_active", "applicable_departments", "applicable_locations"},
    "hidden_absent_records": {"id", "employee_id", "date"},
    "leaves": {"id", "employee_id", "leave_type", "status", "is_half_day", "reviewed_at"},
    "audit_logs": {"id", "action"},
    "alembic_version": {"version_num"},
}

REQUIRED_UNIQUE_CONSTRAINTS: dict[str, str] = {
    "attendance_entries": "uq_attendance_entries_employee_date",
}


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())

    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        if table_name not in existing_tables:
            issues.append(f"MISSING_TABLE:{table_name}")
            continue
        column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        missing_columns = sorted(item for item in required_columns if item not in column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")

    for table_name, constraint_name in REQUIRED_UNIQUE_CONSTRAINTS.items():
        if table_name not in existing_tables:
            continue
        try:
            constraints = inspector.get_unique_constraints(table_name)
        except NotImplementedError:
            warnings.append(f"UNIQUE_INSPECTION_UNSUPPORTED:{table_name}")
            continue
        names = {str(item.get("name")) for item in constraints}
        if constraint_name not in names:
            issues.append(f"MISSING_UNIQUE_CONSTRAINT:{table_name}:{constraint_name}")

    if "alembic_version" in existing_tables:
        with engine.connect() as connection:
            row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
        version = str(row).strip() if row is not None else ""
        if not version:
            issues.append("ALEMBIC_VERSION_EMPTY")

    return SchemaGuardResult(
        ok=len(issues) == 0,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
