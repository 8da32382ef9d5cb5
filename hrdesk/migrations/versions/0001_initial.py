"""Initial hrdesk schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

employee_role = postgresql.ENUM(
    "admin",
    "hr_admin",
    "manager",
    "employee",
    name="employee_role",
    create_type=False,
)
attendance_status = postgresql.ENUM(
    "present",
    "absent",
    "half-day",
    "late",
    "on-leave",
    name="attendance_status",
    create_type=False,
)
attendance_break_type = postgresql.ENUM(
    "lunch",
    "tea",
    "personal",
    "other",
    name="attendance_break_type",
    create_type=False,
)
attendance_activity_type = postgresql.ENUM(
    "Work",
    "Break",
    "Meeting",
    "Training",
    "Project",
    "Other",
    name="attendance_activity_type",
    create_type=False,
)
holiday_type = postgresql.ENUM(
    "national",
    "regional",
    "company",
    "religious",
    "observance",
    name="holiday_type",
    create_type=False,
)
leave_type = postgresql.ENUM(
    "casual",
    "sick",
    "earned",
    "maternity",
    "paternity",
    "emergency",
    "unpaid",
    name="leave_type",
    create_type=False,
)
leave_status = postgresql.ENUM(
    "pending",
    "approved",
    "rejected",
    "cancelled",
    name="leave_status",
    create_type=False,
)
audit_actor_type = postgresql.ENUM(
    "ADMIN",
    "EMPLOYEE",
    "SYSTEM",
    name="audit_actor_type",
    create_type=False,
)

ALL_ENUMS = (
    employee_role,
    attendance_status,
    attendance_break_type,
    attendance_activity_type,
    holiday_type,
    leave_type,
    leave_status,
    audit_actor_type,
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_code", sa.String(length=64), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", employee_role, nullable=False, server_default=sa.text("'employee'")),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("work_location", sa.String(length=255), nullable=True),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("shift_start", sa.String(length=5), nullable=True),
        sa.Column("shift_end", sa.String(length=5), nullable=True),
        sa.Column("salary", sa.Float(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["manager_id"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("email", name="uq_employees_email"),
    )
    op.create_index("ix_employees_employee_code", "employees", ["employee_code"], unique=True)
    op.create_index("ix_employees_department", "employees", ["department"], unique=False)
    op.create_index("ix_employees_manager_id", "employees", ["manager_id"], unique=False)

    op.create_table(
        "attendance_entries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_in_location", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("check_in_ip_address", sa.String(length=128), nullable=True),
        sa.Column("check_in_device_info", sa.String(length=1024), nullable=True),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_location", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("check_out_ip_address", sa.String(length=128), nullable=True),
        sa.Column("check_out_device_info", sa.String(length=1024), nullable=True),
        sa.Column("total_working_minutes", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_break_minutes", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", attendance_status, nullable=False, server_default=sa.text("'present'")),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("late_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("overtime_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approved_by_employee_id", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by_employee_id"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_entries_employee_date"),
    )
    op.create_index("ix_attendance_entries_employee_id", "attendance_entries", ["employee_id"], unique=False)
    op.create_index("ix_attendance_entries_date", "attendance_entries", ["date"], unique=False)
    op.create_index("ix_attendance_entries_status", "attendance_entries", ["status"], unique=False)

    op.create_table(
        "attendance_breaks",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("break_type", attendance_break_type, nullable=False, server_default=sa.text("'other'")),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["entry_id"], ["attendance_entries.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_attendance_breaks_entry_id", "attendance_breaks", ["entry_id"], unique=False)

    op.create_table(
        "attendance_activity_notes",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("type", attendance_activity_type, nullable=False, server_default=sa.text("'Work'")),
        sa.Column("description", sa.String(length=2000), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["entry_id"], ["attendance_entries.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_attendance_activity_notes_entry_id",
        "attendance_activity_notes",
        ["entry_id"],
        unique=False,
    )

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", holiday_type, nullable=False, server_default=sa.text("'national'")),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("recurring_pattern", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "applicable_departments",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "applicable_locations",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("working_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by_employee_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["created_by_employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_holidays_date", "holidays", ["date"], unique=False)

    op.create_table(
        "hidden_absent_records",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hidden_by_employee_id", sa.Integer(), nullable=True),
        sa.Column("hidden_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["hidden_by_employee_id"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "date", name="uq_hidden_absent_records_employee_date"),
    )
    op.create_index(
        "ix_hidden_absent_records_employee_id",
        "hidden_absent_records",
        ["employee_id"],
        unique=False,
    )
    op.create_index("ix_hidden_absent_records_date", "hidden_absent_records", ["date"], unique=False)

    op.create_table(
        "leaves",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("leave_type", leave_type, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", sa.Float(), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=False),
        sa.Column("status", leave_status, nullable=False, server_default=sa.text("'pending'")),
        sa.Column("is_half_day", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_leaves_employee_id", "leaves", ["employee_id"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "ts_utc",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("ip", sa.String(length=128), nullable=True),
        sa.Column("user_agent", sa.String(length=1024), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_leaves_employee_id", table_name="leaves")
    op.drop_table("leaves")

    op.drop_index("ix_hidden_absent_records_date", table_name="hidden_absent_records")
    op.drop_index("ix_hidden_absent_records_employee_id", table_name="hidden_absent_records")
    op.drop_table("hidden_absent_records")

    op.drop_index("ix_holidays_date", table_name="holidays")
    op.drop_table("holidays")

    op.drop_index("ix_attendance_activity_notes_entry_id", table_name="attendance_activity_notes")
    op.drop_table("attendance_activity_notes")

    op.drop_index("ix_attendance_breaks_entry_id", table_name="attendance_breaks")
    op.drop_table("attendance_breaks")

    op.drop_index("ix_attendance_entries_status", table_name="attendance_entries")
    op.drop_index("ix_attendance_entries_date", table_name="attendance_entries")
    op.drop_index("ix_attendance_entries_employee_id", table_name="attendance_entries")
    op.drop_table("attendance_entries")

    op.drop_index("ix_employees_manager_id", table_name="employees")
    op.drop_index("ix_employees_department", table_name="employees")
    op.drop_index("ix_employees_employee_code", table_name="employees")
    op.drop_table("employees")

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
