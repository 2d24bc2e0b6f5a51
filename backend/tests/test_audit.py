from sqlalchemy import select

from app.core.config import get_settings
from app.models.audit_log import AuditAction, AuditLog
from app.schemas.timetable import EntryDraftIn
from app.services import audit
from app.services.audit import describe_timetable_action, list_audit_logs, record_timetable_action
from app.services.timetable_service import TimetableService


def test_description_falls_back_without_entry():
    assert describe_timetable_action(AuditAction.delete, None) == "Timetable DELETE operation performed"


def test_record_and_list_by_record_id(db):
    record_timetable_action(db, actor_id="u1", action=AuditAction.activate, entry_id="entry-1")
    record_timetable_action(db, actor_id="u1", action=AuditAction.deactivate, entry_id="entry-2")

    logs = list_audit_logs(db, record_id="entry-1")

    assert [log.action for log in logs] == ["TIMETABLE_ACTIVATE"]
    assert logs[0].table_affected == "timetable_entries"


def test_audit_failure_never_undoes_the_write(seed, monkeypatch):
    booking = seed.booking()
    # audit_logs.table_affected is NOT NULL; this makes every audit insert fail.
    monkeypatch.setattr(audit, "TIMETABLE_TABLE", None)

    result = TimetableService(seed.db, get_settings()).create_entry(
        EntryDraftIn(**seed.draft(booking)),
        actor_id="actor-1",
    )

    assert result.success is True
    assert result.entry_id is not None
    assert seed.db.execute(select(AuditLog)).scalars().all() == []
