"""create timetable entries

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


entry_status_enum = sa.Enum("active", "inactive", name="entry_status")

ACTIVE_ROWS = sa.text("status = 'active'")


def upgrade() -> None:
    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("faculty_id", sa.String(length=36), sa.ForeignKey("faculty.id"), nullable=False),
        sa.Column("classroom_id", sa.String(length=36), sa.ForeignKey("classrooms.id"), nullable=False),
        sa.Column("slot_id", sa.String(length=36), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("section", sa.String(length=20), nullable=False, server_default="A"),
        sa.Column("semester", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("academic_year", sa.String(length=9), nullable=False),
        sa.Column("max_students", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", entry_status_enum, nullable=False, server_default="active"),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("modified_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
    )
    for column in ("subject_id", "faculty_id", "classroom_id", "slot_id", "academic_year"):
        op.create_index(f"ix_timetable_entries_{column}", "timetable_entries", [column])

    op.create_index(
        "uq_timetable_entries_faculty_slot_term_active",
        "timetable_entries",
        ["faculty_id", "slot_id", "semester", "academic_year"],
        unique=True,
        postgresql_where=ACTIVE_ROWS,
        sqlite_where=ACTIVE_ROWS,
    )
    op.create_index(
        "uq_timetable_entries_classroom_slot_term_active",
        "timetable_entries",
        ["classroom_id", "slot_id", "semester", "academic_year"],
        unique=True,
        postgresql_where=ACTIVE_ROWS,
        sqlite_where=ACTIVE_ROWS,
    )


def downgrade() -> None:
    op.drop_index("uq_timetable_entries_classroom_slot_term_active", table_name="timetable_entries")
    op.drop_index("uq_timetable_entries_faculty_slot_term_active", table_name="timetable_entries")
    for column in ("academic_year", "slot_id", "classroom_id", "faculty_id", "subject_id"):
        op.drop_index(f"ix_timetable_entries_{column}", table_name="timetable_entries")
    op.drop_table("timetable_entries")
    entry_status_enum.drop(op.get_bind(), checkfirst=True)
