from __future__ import annotations

from collections.abc import Callable
from datetime import date
import logging
import math

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import DATABASE_ERROR_CODE, ConflictError, NotFoundError, SchedulingError
from app.models.audit_log import AuditAction
from app.models.timetable_entry import EntryStatus, TimetableEntry
from app.schemas.reference import (
    AvailableResources,
    ClassroomOption,
    FacultyOption,
    SubjectOption,
    TimeSlotOption,
)
from app.schemas.timetable import (
    AssignmentStatusOut,
    BulkDeleteResult,
    ConflictCheck,
    ConflictCheckRequest,
    ConflictPreflightOut,
    EntryDraft,
    EntryDraftIn,
    EntryFilters,
    EntryOut,
    EntryPage,
    EntryResult,
    FilterOptions,
    Pagination,
    TimetableStats,
)
from app.services.advisory import collect_advisories
from app.services.audit import record_timetable_action
from app.services.authorization import check_faculty_assignment, ensure_faculty_assigned
from app.services.availability import ensure_resources_available
from app.services.conflict_service import ConflictService
from app.services.reference_data import (
    list_active_faculty,
    list_active_subjects,
    list_active_time_slots,
    list_available_classrooms,
    list_faculty_by_subject,
)
from app.services.timetable_repository import TimetableRepository
from app.services.validation import (
    default_academic_year,
    sanitize_draft,
    suggest_academic_years,
    validate_academic_year,
)

logger = logging.getLogger(__name__)

ENTRY_NOT_FOUND = "Timetable entry not found"
ENTRY_NOT_ACTIVE = "Timetable entry not found or already inactive"
CONFLICT_CHECK_UNAVAILABLE = "Unable to verify conflicts. Please try again."


def build_entry_out(entry: TimetableEntry, enrolled: int = 0) -> EntryOut:
    slot = entry.time_slot
    return EntryOut(
        id=entry.id,
        subject_id=entry.subject_id,
        subject_code=entry.subject.code,
        subject_name=entry.subject.name,
        credits=entry.subject.credits,
        department=entry.subject.department,
        faculty_id=entry.faculty_id,
        faculty_name=entry.faculty.full_name,
        employee_id=entry.faculty.employee_id,
        classroom_id=entry.classroom_id,
        room_number=entry.classroom.room_number,
        building=entry.classroom.building,
        capacity=entry.classroom.capacity,
        slot_id=entry.slot_id,
        day_of_week=slot.day_of_week,
        start_time=slot.start_time,
        end_time=slot.end_time,
        slot_name=slot.slot_name,
        section=entry.section,
        semester=entry.semester,
        academic_year=entry.academic_year,
        max_students=entry.max_students,
        notes=entry.notes,
        status=entry.status,
        enrolled_students=enrolled,
        created_at=entry.created_at,
        modified_at=entry.modified_at,
    )


class TimetableService:
    """Validation pipeline and lifecycle operations for timetable entries.

    Create and update run sanitize, academic year, authorization, availability,
    conflicts and advisories before writing. Every mutation is one transaction
    and is followed by a best-effort audit row. Pipeline failures come back as
    ``EntryResult(success=False, error=<code>)`` rather than exceptions.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.repository = TimetableRepository(db)
        self.conflicts = ConflictService(db)

    # Mutations

    def create_entry(self, draft_in: EntryDraftIn, actor_id: str | None) -> EntryResult:
        def operation() -> EntryResult:
            draft, warnings = self._validate(draft_in)
            entry = self._commit_booking(lambda: self.repository.add(draft, actor_id), draft)
            logger.info("Timetable entry %s created by %s", entry.id, actor_id)
            record_timetable_action(
                self.db,
                actor_id=actor_id,
                action=AuditAction.create,
                entry_id=entry.id,
                entry=entry,
                new_values=entry.snapshot(),
            )
            return EntryResult(
                success=True,
                message="Timetable entry created successfully",
                entry_id=entry.id,
                warnings=warnings,
            )

        return self._run(operation, "create")

    def update_entry(self, entry_id: str, draft_in: EntryDraftIn, actor_id: str | None) -> EntryResult:
        def operation() -> EntryResult:
            entry = self.repository.get_active(entry_id)
            if entry is None:
                raise NotFoundError(ENTRY_NOT_ACTIVE, details={"entry_id": entry_id})
            old_values = entry.snapshot()
            draft, warnings = self._validate(draft_in, exclude_entry_id=entry_id)
            entry = self._commit_booking(
                lambda: self.repository.apply_draft(entry, draft, actor_id),
                draft,
                exclude_entry_id=entry_id,
            )
            logger.info("Timetable entry %s updated by %s", entry_id, actor_id)
            record_timetable_action(
                self.db,
                actor_id=actor_id,
                action=AuditAction.update,
                entry_id=entry_id,
                entry=entry,
                old_values=old_values,
                new_values=entry.snapshot(),
            )
            return EntryResult(
                success=True,
                message="Timetable entry updated successfully",
                entry_id=entry_id,
                warnings=warnings,
            )

        return self._run(operation, "update")

    def delete_entry(self, entry_id: str, actor_id: str | None) -> EntryResult:
        def operation() -> EntryResult:
            entry = self.repository.get_active(entry_id)
            if entry is None:
                raise NotFoundError(ENTRY_NOT_ACTIVE, details={"entry_id": entry_id})
            self._change_status(entry, EntryStatus.inactive, AuditAction.delete, actor_id)
            return EntryResult(success=True, message="Timetable entry deleted successfully", entry_id=entry_id)

        return self._run(operation, "delete")

    def deactivate_entry(self, entry_id: str, actor_id: str | None) -> EntryResult:
        def operation() -> EntryResult:
            entry = self.repository.get(entry_id)
            if entry is None:
                raise NotFoundError(ENTRY_NOT_FOUND, details={"entry_id": entry_id})
            if entry.status == EntryStatus.inactive:
                return EntryResult(success=True, message="Timetable entry is already inactive", entry_id=entry_id)
            self._change_status(entry, EntryStatus.inactive, AuditAction.deactivate, actor_id)
            return EntryResult(success=True, message="Timetable entry deactivated successfully", entry_id=entry_id)

        return self._run(operation, "deactivate")

    def activate_entry(self, entry_id: str, actor_id: str | None) -> EntryResult:
        """Reactivate an entry without re-running the validation pipeline.

        Only the booking indexes are consulted: a reactivation that would
        double-book the faculty member or classroom fails with a conflict.
        """

        def operation() -> EntryResult:
            entry = self.repository.get(entry_id)
            if entry is None:
                raise NotFoundError(ENTRY_NOT_FOUND, details={"entry_id": entry_id})
            if entry.status == EntryStatus.active:
                return EntryResult(success=True, message="Timetable entry is already active", entry_id=entry_id)
            self._change_status(entry, EntryStatus.active, AuditAction.activate, actor_id)
            return EntryResult(success=True, message="Timetable entry activated successfully", entry_id=entry_id)

        return self._run(operation, "activate")

    def bulk_delete(self, entry_ids: list[str], actor_id: str | None) -> BulkDeleteResult:
        if not entry_ids:
            return BulkDeleteResult(success=False, message="No timetable entries selected for deletion")

        deleted = 0
        errors: list[str] = []
        for entry_id in entry_ids:
            result = self.delete_entry(entry_id, actor_id)
            if result.success:
                deleted += 1
            else:
                errors.append(f"Timetable entry {entry_id}: {result.message}")

        total = len(entry_ids)
        if deleted == total:
            return BulkDeleteResult(
                success=True,
                message=f"Successfully deleted {deleted} timetable entries",
                deleted=deleted,
                total=total,
            )
        return BulkDeleteResult(
            success=False,
            message=f"Deleted {deleted} out of {total} entries. Errors: " + "; ".join(errors),
            deleted=deleted,
            total=total,
            errors=errors,
        )

    # Pipeline

    def _validate(self, draft_in: EntryDraftIn, exclude_entry_id: str | None = None) -> tuple[EntryDraft, list[str]]:
        draft = sanitize_draft(draft_in)
        validate_academic_year(draft.academic_year, window=self.settings.academic_year_window_years)
        ensure_faculty_assigned(self.db, draft.faculty_id, draft.subject_id)
        ensure_resources_available(self.db, draft)
        self.conflicts.ensure_no_conflict(
            draft.faculty_id,
            draft.classroom_id,
            draft.slot_id,
            draft.semester,
            draft.academic_year,
            exclude_entry_id,
        )
        return draft, collect_advisories(self.db, draft)

    def _commit_booking(
        self,
        write: Callable[[], TimetableEntry],
        draft: EntryDraft,
        exclude_entry_id: str | None = None,
    ) -> TimetableEntry:
        # The booking indexes are authoritative; a concurrent writer can slip
        # past the detector between the check and the flush.
        try:
            entry = write()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            clash = self.conflicts.check(
                draft.faculty_id,
                draft.classroom_id,
                draft.slot_id,
                draft.semester,
                draft.academic_year,
                exclude_entry_id,
            )
            if clash.has_conflict:
                raise ConflictError(clash.message, conflicting_entry_id=clash.conflicting_entry_id) from exc
            raise
        return entry

    def _change_status(
        self,
        entry: TimetableEntry,
        status: EntryStatus,
        action: AuditAction,
        actor_id: str | None,
    ) -> None:
        old_values = entry.snapshot()
        booking = EntryDraft(
            subject_id=entry.subject_id,
            faculty_id=entry.faculty_id,
            classroom_id=entry.classroom_id,
            slot_id=entry.slot_id,
            section=entry.section,
            semester=entry.semester,
            academic_year=entry.academic_year,
        )
        self._commit_booking(
            lambda: self.repository.set_status(entry, status, actor_id),
            booking,
            exclude_entry_id=entry.id,
        )
        logger.info("Timetable entry %s set %s by %s", entry.id, status.value, actor_id)
        record_timetable_action(
            self.db,
            actor_id=actor_id,
            action=action,
            entry_id=entry.id,
            entry=entry,
            old_values=old_values,
            new_values=entry.snapshot(),
        )

    def _run(self, operation: Callable[[], EntryResult], action: str) -> EntryResult:
        try:
            return operation()
        except SchedulingError as exc:
            self.db.rollback()
            logger.info("Timetable %s rejected (%s): %s", action, exc.code, exc.message)
            return EntryResult(success=False, message=exc.message, error=exc.code, details=exc.details)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Database error during timetable %s", action)
            return EntryResult(
                success=False,
                message=f"Unable to {action} the timetable entry due to a database error. Please try again.",
                error=DATABASE_ERROR_CODE,
            )

    # Queries

    def check_conflicts(
        self,
        faculty_id: str,
        classroom_id: str,
        slot_id: str,
        semester: int,
        academic_year: str,
        exclude_entry_id: str | None = None,
    ) -> ConflictCheck:
        try:
            return self.conflicts.check(faculty_id, classroom_id, slot_id, semester, academic_year, exclude_entry_id)
        except SQLAlchemyError:
            logger.exception("Conflict check failed for slot %s", slot_id)
            return ConflictCheck(has_conflict=True, message=CONFLICT_CHECK_UNAVAILABLE)

    def preflight(self, request: ConflictCheckRequest) -> ConflictPreflightOut:
        return self.conflicts.preflight(request)

    def check_assignment(self, faculty_id: str, subject_id: str) -> AssignmentStatusOut:
        return check_faculty_assignment(self.db, faculty_id, subject_id)

    def get_entry(self, entry_id: str, include_inactive: bool = False) -> EntryOut:
        found = self.repository.get_with_enrollment(entry_id)
        if found is None:
            raise NotFoundError(ENTRY_NOT_FOUND, details={"entry_id": entry_id})
        entry, enrolled = found
        if entry.status != EntryStatus.active and not include_inactive:
            raise NotFoundError(ENTRY_NOT_FOUND, details={"entry_id": entry_id})
        return build_entry_out(entry, enrolled)

    def list_entries(self, filters: EntryFilters, page: int = 1, page_size: int | None = None) -> EntryPage:
        page = max(page, 1)
        page_size = page_size or self.settings.default_page_size
        page_size = min(max(page_size, 1), self.settings.max_page_size)

        rows, total = self.repository.list_page(filters, page=page, page_size=page_size)
        return EntryPage(
            entries=[build_entry_out(entry, enrolled) for entry, enrolled in rows],
            pagination=Pagination(
                current_page=page,
                per_page=page_size,
                total=total,
                total_pages=math.ceil(total / page_size) if total else 0,
            ),
        )

    def current_term(self) -> tuple[str, int]:
        academic_year = self.settings.current_academic_year or default_academic_year(date.today().year)
        return academic_year, self.settings.current_semester or 1

    def available_resources(self) -> AvailableResources:
        academic_year, semester = self.current_term()
        return AvailableResources(
            subjects=[SubjectOption.model_validate(item) for item in list_active_subjects(self.db)],
            faculty=[FacultyOption.model_validate(item) for item in list_active_faculty(self.db)],
            classrooms=[ClassroomOption.model_validate(item) for item in list_available_classrooms(self.db)],
            time_slots=[TimeSlotOption.model_validate(item) for item in list_active_time_slots(self.db)],
            current_academic_year=academic_year,
            current_semester=semester,
        )

    def faculty_by_subject(self, subject_id: str) -> list[FacultyOption]:
        return [FacultyOption.model_validate(item) for item in list_faculty_by_subject(self.db, subject_id)]

    def filter_options(self) -> FilterOptions:
        return FilterOptions(**self.repository.filter_options())

    def stats(self, academic_year: str | None = None) -> TimetableStats:
        academic_year = academic_year or self.current_term()[0]
        return TimetableStats(**self.repository.stats(academic_year))

    def academic_years(self) -> list[str]:
        return suggest_academic_years(self.repository.distinct_academic_years())
