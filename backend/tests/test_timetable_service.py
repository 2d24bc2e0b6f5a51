from datetime import time

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.config import get_settings
from app.core.exceptions import NotFoundError
from app.models.audit_log import AuditLog
from app.models.classroom import ClassroomStatus
from app.models.time_slot import DayOfWeek
from app.models.timetable_entry import EntryStatus, TimetableEntry
from app.schemas.timetable import EntryDraftIn, EntryFilters
from app.services import advisory
from app.services.advisory import CAPACITY_UNVERIFIED
from app.services.conflict_service import ConflictService
from app.services.timetable_service import TimetableService


@pytest.fixture()
def service(db):
    return TimetableService(db, get_settings())


def _create(service, seed, booking, actor_id="actor-1", **overrides):
    return service.create_entry(EntryDraftIn(**seed.draft(booking, **overrides)), actor_id=actor_id)


def test_create_entry_succeeds_without_warnings(service, seed):
    booking = seed.booking()

    result = _create(service, seed, booking)

    assert result.success is True
    assert result.message == "Timetable entry created successfully"
    assert result.warnings == []
    entry = seed.db.get(TimetableEntry, result.entry_id)
    assert entry.status == EntryStatus.active
    assert entry.created_by == "actor-1"

    logs = list(seed.db.execute(select(AuditLog)).scalars())
    assert len(logs) == 1
    assert logs[0].action == "TIMETABLE_CREATE"
    assert logs[0].user_id == "actor-1"
    assert logs[0].description.startswith(f"Created timetable: {booking.subject.code} - Data Structures taught by Ada Lovelace")
    assert logs[0].description.endswith("on Monday 09:00 AM - 10:00 AM")


def test_create_entry_rejects_faculty_double_booking(service, seed):
    booking = seed.booking()
    other_subject = seed.subject(name="Operating Systems")
    other_room = seed.classroom(room_number="L201", building="Science Block")
    existing = seed.entry(subject=other_subject, faculty=booking.faculty, classroom=other_room, slot=booking.slot)

    result = _create(service, seed, booking)

    assert result.success is False
    assert result.error == "conflict"
    assert result.message == (
        f"Faculty conflict: Already teaching {other_subject.code} - Operating Systems in L201 (Science Block) at this time"
    )
    assert result.details == {"conflicting_entry_id": existing.id}


def test_create_entry_rejects_unassigned_faculty(service, seed):
    booking = seed.booking()
    stranger = seed.faculty(first_name="Alan", last_name="Turing")

    result = _create(service, seed, booking, faculty_id=stranger.id)

    assert result.success is False
    assert result.error == "authorization_error"
    assert result.message == (
        f"Faculty member 'Alan Turing' is not assigned to teach '{booking.subject.code} - Data Structures'. "
        "Please assign the faculty to this subject first."
    )


def test_create_entry_warns_near_capacity(service, seed):
    booking = seed.booking(capacity=100)
    seed.enroll(booking.subject, 95)

    result = _create(service, seed, booking)

    assert result.success is True
    assert result.warnings == [
        f"NEAR CAPACITY: Classroom {booking.classroom.room_number} (Main Block) is nearly full (95/100 students)"
    ]


def test_reactivation_cannot_double_book(service, seed):
    booking = seed.booking()
    first = _create(service, seed, booking)
    assert service.deactivate_entry(first.entry_id, actor_id="actor-1").success is True

    replacement = _create(service, seed, booking)
    assert replacement.success is True

    result = service.activate_entry(first.entry_id, actor_id="actor-1")

    assert result.success is False
    assert result.error == "conflict"
    assert result.details == {"conflicting_entry_id": replacement.entry_id}
    assert seed.db.get(TimetableEntry, first.entry_id).status == EntryStatus.inactive


def test_reactivation_skips_the_validation_pipeline(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)
    service.deactivate_entry(created.entry_id, actor_id="actor-1")

    booking.classroom.status = ClassroomStatus.maintenance
    seed.db.commit()

    result = service.activate_entry(created.entry_id, actor_id="actor-2")

    assert result.success is True
    assert result.message == "Timetable entry activated successfully"
    entry = seed.db.get(TimetableEntry, created.entry_id)
    seed.db.refresh(entry)
    assert entry.status == EntryStatus.active
    assert entry.modified_by == "actor-2"


def test_pipeline_order_reports_format_before_authorization(service, seed):
    booking = seed.booking()
    stranger = seed.faculty(first_name="Alan", last_name="Turing")

    result = _create(service, seed, booking, faculty_id=stranger.id, academic_year="2025/26")

    assert result.error == "format_error"


def test_full_width_academic_year_is_a_format_error(service, seed):
    booking = seed.booking()

    result = _create(service, seed, booking, academic_year="２０２６-２０２７")

    assert result.success is False
    assert result.error == "format_error"
    assert seed.db.execute(select(TimetableEntry)).first() is None


def test_out_of_range_semester_is_a_validation_error(service, seed):
    booking = seed.booking()

    result = _create(service, seed, booking, semester="99999999999999999999")

    assert result.success is False
    assert result.error == "validation_error"
    assert result.message == "Semester cannot exceed 20"


def test_failed_advisory_lookup_still_books_the_entry(service, seed, monkeypatch):
    booking = seed.booking()

    def broken_lookup(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database unavailable"))

    monkeypatch.setattr(advisory, "get_classroom", broken_lookup)

    result = _create(service, seed, booking)

    assert result.success is True
    assert result.warnings == [CAPACITY_UNVERIFIED]
    assert seed.db.get(TimetableEntry, result.entry_id).status == EntryStatus.active


def test_availability_checked_after_authorization(service, seed):
    booking = seed.booking()
    booking.classroom.status = ClassroomStatus.maintenance
    seed.db.commit()

    result = _create(service, seed, booking)

    assert result.error == "availability_error"
    assert result.message == f"Classroom {booking.classroom.room_number} (Main Block) is currently Maintenance"


def test_missing_fields_are_reported(service):
    result = service.create_entry(EntryDraftIn(subject_id="sub-1"), actor_id="actor-1")

    assert result.success is False
    assert result.error == "validation_error"
    assert result.details["missing_fields"] == ["Faculty member", "Classroom", "Time slot", "Semester", "Academic year"]


def test_storage_constraint_catches_a_race(service, seed, monkeypatch):
    booking = seed.booking()
    existing = seed.entry(subject=booking.subject, faculty=booking.faculty, classroom=booking.classroom, slot=booking.slot)
    # Simulate a concurrent writer landing between the check and the insert.
    monkeypatch.setattr(ConflictService, "ensure_no_conflict", lambda self, *args, **kwargs: None)

    result = _create(service, seed, booking)

    assert result.success is False
    assert result.error == "conflict"
    assert result.details == {"conflicting_entry_id": existing.id}
    total = seed.db.execute(select(TimetableEntry)).scalars().all()
    assert len(total) == 1


def test_update_excludes_the_entry_itself(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)
    later = seed.slot(day=DayOfWeek.tuesday, start=time(11, 0), end=time(12, 0), slot_name="Period 3")

    same_slot = service.update_entry(created.entry_id, EntryDraftIn(**seed.draft(booking, notes="Bring laptops")), "actor-2")
    assert same_slot.success is True
    assert same_slot.message == "Timetable entry updated successfully"

    moved = service.update_entry(created.entry_id, EntryDraftIn(**seed.draft(booking, slot_id=later.id)), "actor-2")
    assert moved.success is True

    entry = seed.db.get(TimetableEntry, created.entry_id)
    seed.db.refresh(entry)
    assert entry.slot_id == later.id
    assert entry.notes is None
    assert entry.modified_by == "actor-2"

    update_logs = list(seed.db.execute(select(AuditLog).where(AuditLog.action == "TIMETABLE_UPDATE")).scalars())
    assert len(update_logs) == 2
    assert {log.old_values["slot_id"] for log in update_logs} == {booking.slot.id}
    assert {log.new_values["slot_id"] for log in update_logs} == {booking.slot.id, later.id}


def test_update_requires_an_active_entry(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)
    service.delete_entry(created.entry_id, "actor-1")

    result = service.update_entry(created.entry_id, EntryDraftIn(**seed.draft(booking)), "actor-1")

    assert result.success is False
    assert result.error == "not_found"


def test_delete_is_soft_and_only_once(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)

    first = service.delete_entry(created.entry_id, "actor-1")
    second = service.delete_entry(created.entry_id, "actor-1")

    assert first.success is True
    assert first.message == "Timetable entry deleted successfully"
    assert second.success is False
    assert second.error == "not_found"
    entry = seed.db.get(TimetableEntry, created.entry_id)
    seed.db.refresh(entry)
    assert entry.status == EntryStatus.inactive


def test_deactivate_is_idempotent(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)

    assert service.deactivate_entry(created.entry_id, "actor-1").message == "Timetable entry deactivated successfully"
    again = service.deactivate_entry(created.entry_id, "actor-1")

    assert again.success is True
    assert again.message == "Timetable entry is already inactive"
    actions = [log.action for log in seed.db.execute(select(AuditLog)).scalars()]
    assert actions.count("TIMETABLE_DEACTIVATE") == 1


def test_activate_unknown_entry(service):
    result = service.activate_entry("does-not-exist", "actor-1")

    assert result.success is False
    assert result.error == "not_found"


def test_bulk_delete_reports_partial_success(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)

    result = service.bulk_delete([created.entry_id, "missing-id"], "actor-1")

    assert result.success is False
    assert result.deleted == 1
    assert result.total == 2
    assert result.message.startswith("Deleted 1 out of 2 entries. Errors: Timetable entry missing-id:")


def test_bulk_delete_all_and_empty(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)

    assert service.bulk_delete([], "actor-1").message == "No timetable entries selected for deletion"
    result = service.bulk_delete([created.entry_id], "actor-1")
    assert result.success is True
    assert result.message == "Successfully deleted 1 timetable entries"


def test_database_errors_are_sanitized(service, seed, monkeypatch):
    booking = seed.booking()

    def broken(*args, **kwargs):
        raise OperationalError("INSERT INTO timetable_entries", {}, Exception("disk I/O error"))

    monkeypatch.setattr(service.repository, "add", broken)
    result = _create(service, seed, booking)

    assert result.success is False
    assert result.error == "database_error"
    assert "disk I/O" not in result.message


def test_check_conflicts_fails_closed(service, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(service.conflicts, "check", broken)
    result = service.check_conflicts("fac", "room", "slot", 1, "2025-2026")

    assert result.has_conflict is True
    assert result.message == "Unable to verify conflicts. Please try again."


def test_list_entries_orders_filters_and_counts(service, seed):
    booking = seed.booking()
    tuesday = seed.slot(day=DayOfWeek.tuesday, start=time(8, 0), end=time(9, 0))
    monday_late = seed.slot(day=DayOfWeek.monday, start=time(15, 0), end=time(16, 0))
    for slot in (tuesday, monday_late, booking.slot):
        assert _create(service, seed, booking, slot_id=slot.id).success is True
    seed.enroll(booking.subject, 3)

    page = service.list_entries(EntryFilters(), page=1, page_size=2)

    assert page.pagination.total == 3
    assert page.pagination.total_pages == 2
    assert [(item.day_of_week, item.start_time) for item in page.entries] == [
        (DayOfWeek.monday, time(9, 0)),
        (DayOfWeek.monday, time(15, 0)),
    ]
    assert page.entries[0].enrolled_students == 3
    assert page.entries[0].faculty_name == "Ada Lovelace"

    tuesday_only = service.list_entries(EntryFilters(day_of_week=DayOfWeek.tuesday))
    assert [item.slot_id for item in tuesday_only.entries] == [tuesday.id]


def test_list_entries_clamps_page_size(service, seed):
    page = service.list_entries(EntryFilters(status="all"), page=0, page_size=10_000)

    assert page.pagination.current_page == 1
    assert page.pagination.per_page == get_settings().max_page_size
    assert page.pagination.total_pages == 0


def test_get_entry_hides_inactive_unless_asked(service, seed):
    booking = seed.booking()
    created = _create(service, seed, booking)
    service.deactivate_entry(created.entry_id, "actor-1")

    with pytest.raises(NotFoundError):
        service.get_entry(created.entry_id)
    detail = service.get_entry(created.entry_id, include_inactive=True)
    assert detail.status == EntryStatus.inactive


def test_stats_and_filter_options(service, seed):
    booking = seed.booking()
    seed.classroom(room_number="SPARE")
    _create(service, seed, booking)

    stats = service.stats(seed.academic_year)
    assert stats.total_entries == 1
    assert stats.used_classrooms == 1
    assert stats.total_classrooms == 2
    assert stats.classroom_utilization == 50.0

    options = service.filter_options()
    assert options.academic_years == [seed.academic_year]
    assert options.semesters == [1]
    assert options.departments == ["Computer Science"]
    assert options.days_of_week == [DayOfWeek.monday]
    assert seed.academic_year in service.academic_years()


def test_available_resources_and_faculty_by_subject(service, seed):
    booking = seed.booking()
    seed.classroom(room_number="CLOSED", status=ClassroomStatus.closed)
    seed.faculty(first_name="Alan", last_name="Turing")

    resources = service.available_resources()
    assert [room.id for room in resources.classrooms] == [booking.classroom.id]
    assert len(resources.faculty) == 2

    assigned = service.faculty_by_subject(booking.subject.id)
    assert [item.id for item in assigned] == [booking.faculty.id]
