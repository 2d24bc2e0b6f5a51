from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine
from app.models.timetable_entry import CLASSROOM_BOOKING_INDEX, FACULTY_BOOKING_INDEX, TimetableEntry

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "status"},
    "faculty": {"id", "user_id", "employee_id", "department"},
    "subjects": {"id", "code", "department", "is_active"},
    "classrooms": {"id", "room_number", "capacity", "status", "is_active"},
    "time_slots": {"id", "day_of_week", "start_time", "end_time", "is_active"},
    "faculty_subjects": {"id", "faculty_id", "subject_id", "is_active"},
    "enrollments": {"id", "subject_id", "section", "semester", "academic_year", "status"},
    "timetable_entries": {
        "id",
        "faculty_id",
        "classroom_id",
        "slot_id",
        "semester",
        "academic_year",
        "status",
    },
    "audit_logs": {"id", "action", "table_affected", "record_id"},
}

BOOKING_INDEXES = (FACULTY_BOOKING_INDEX, CLASSROOM_BOOKING_INDEX)


def _ensure_booking_indexes() -> None:
    # Tables created by an older schema may predate the uniqueness indexes.
    with engine.begin() as connection:
        inspector = inspect(connection)
        if TimetableEntry.__tablename__ not in set(inspector.get_table_names()):
            return
        existing = {item["name"] for item in inspector.get_indexes(TimetableEntry.__tablename__)}
        for index in TimetableEntry.__table__.indexes:
            if index.name in BOOKING_INDEXES and index.name not in existing:
                logger.info("Creating missing booking index %s", index.name)
                index.create(bind=connection)


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _ensure_booking_indexes()
        _assert_required_columns()
    except (SQLAlchemyError, RuntimeError) as exc:
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
