from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.audit_log import AuditAction, AuditLog
from app.models.timetable_entry import TimetableEntry
from app.services.reference_data import classroom_label, faculty_label, slot_label, subject_label

logger = logging.getLogger(__name__)

TIMETABLE_TABLE = "timetable_entries"

_VERBS = {
    AuditAction.create: "Created",
    AuditAction.update: "Updated",
    AuditAction.delete: "Deleted",
    AuditAction.activate: "Activated",
    AuditAction.deactivate: "Deactivated",
}


def describe_timetable_action(action: AuditAction, entry: TimetableEntry | None) -> str:
    if entry is None:
        return f"Timetable {action.value} operation performed"
    return (
        f"{_VERBS[action]} timetable: {subject_label(entry.subject)} taught by {faculty_label(entry.faculty)} "
        f"in {classroom_label(entry.classroom)} on {slot_label(entry.time_slot)}"
    )


def record_timetable_action(
    db: Session,
    *,
    actor_id: str | None,
    action: AuditAction,
    entry_id: str,
    entry: TimetableEntry | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog | None:
    """Append an audit row after the primary write has been committed.

    The row goes in its own transaction; a failure here is logged and never
    undoes the change it describes.
    """
    try:
        record = AuditLog(
            user_id=actor_id,
            action=f"TIMETABLE_{action.value}",
            table_affected=TIMETABLE_TABLE,
            record_id=entry_id,
            old_values=old_values,
            new_values=new_values,
            description=describe_timetable_action(action, entry),
        )
        db.add(record)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Audit log write failed for %s on timetable entry %s", action.value, entry_id)
        return None
    return record


def list_audit_logs(db: Session, *, record_id: str | None = None, limit: int = 500) -> list[AuditLog]:
    query = select(AuditLog).order_by(AuditLog.created_at.desc()).limit(limit)
    if record_id:
        query = query.where(AuditLog.record_id == record_id)
    return list(db.execute(query).scalars())
