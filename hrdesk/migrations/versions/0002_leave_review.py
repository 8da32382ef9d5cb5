"""Add leave review columns

Revision ID: 0002_leave_review
Revises: 0001_initial
Create Date: 2026-10-19 12:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_leave_review"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("leaves", sa.Column("reviewed_by_employee_id", sa.Integer(), nullable=True))
    op.add_column("leaves", sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True))
    op.add_column("leaves", sa.Column("rejection_reason", sa.String(length=1000), nullable=True))
    op.create_foreign_key(
        "fk_leaves_reviewed_by_employee_id_employees",
        "leaves",
        "employees",
        ["reviewed_by_employee_id"],
        ["id"],
        ondelete="SET NULL",
    )


def downgrade() -> None:
    op.drop_constraint("fk_leaves_reviewed_by_employee_id_employees", "leaves", type_="foreignkey")
    op.drop_column("leaves", "rejection_reason")
    op.drop_column("leaves", "reviewed_at")
    op.drop_column("leaves", "reviewed_by_employee_id")
