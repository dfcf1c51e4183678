"""create stations and tasks tables

Revision ID: 3a7e51c0b9d2
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = "3a7e51c0b9d2"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "stations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_capacity_hours", sa.Float(), nullable=False, server_default="8.0"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_stations_name", "stations", ["name"], unique=True)

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("part_number", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("customer", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("assignee", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=2048), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("effort_hours", sa.Float(), nullable=True),
        sa.Column("status", sqlmodel.sql.sqltypes.AutoString(), nullable=False, server_default="NEU"),
        sa.Column("fai", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("qs", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("station", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_station", "tasks", ["station"], unique=False)
    # Lesereihenfolge innerhalb einer Station: (priority, id)
    op.create_index("ix_tasks_station_priority_id", "tasks", ["station", "priority", "id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tasks_station_priority_id", table_name="tasks")
    op.drop_index("ix_tasks_station", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_stations_name", table_name="stations")
    op.drop_table("stations")
