from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AvailabilityError, ConflictError
from app.models.time_slot import TimeSlot
from app.models.timetable_entry import EntryStatus, TimetableEntry
from app.schemas.timetable import ConflictCheck, ConflictCheckRequest, ConflictPreflightOut, ScheduledClassOut
from app.services.advisory import CAPACITY_UNVERIFIED, capacity_advisory
from app.services.reference_data import (
    classroom_label,
    count_enrolled,
    faculty_label,
    get_classroom,
    get_faculty,
    get_time_slot,
    slot_label,
    subject_label,
)

logger = logging.getLogger(__name__)

NO_CONFLICT_MESSAGE = "No conflicts detected"


class ConflictService:
    """Detects faculty and classroom double-bookings within a term.

    A term is the (semester, academic year) pair. Only active entries take part,
    and ``exclude_entry_id`` lets an entry being updated ignore its own row.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _term_conditions(slot_id: str, semester: int, academic_year: str, exclude_entry_id: str | None) -> list:
        conditions = [
            TimetableEntry.slot_id == slot_id,
            TimetableEntry.semester == semester,
            TimetableEntry.academic_year == academic_year,
            TimetableEntry.status == EntryStatus.active,
        ]
        if exclude_entry_id:
            conditions.append(TimetableEntry.id != exclude_entry_id)
        return conditions

    def _term_query(self, slot_id: str, semester: int, academic_year: str, exclude_entry_id: str | None):
        return select(TimetableEntry).where(*self._term_conditions(slot_id, semester, academic_year, exclude_entry_id))

    def find_faculty_clash(
        self,
        faculty_id: str,
        slot_id: str,
        semester: int,
        academic_year: str,
        exclude_entry_id: str | None = None,
    ) -> TimetableEntry | None:
        query = self._term_query(slot_id, semester, academic_year, exclude_entry_id)
        query = query.where(TimetableEntry.faculty_id == faculty_id).limit(1)
        return self.db.execute(query).scalars().first()

    def find_classroom_clash(
        self,
        classroom_id: str,
        slot_id: str,
        semester: int,
        academic_year: str,
        exclude_entry_id: str | None = None,
    ) -> TimetableEntry | None:
        query = self._term_query(slot_id, semester, academic_year, exclude_entry_id)
        query = query.where(TimetableEntry.classroom_id == classroom_id).limit(1)
        return self.db.execute(query).scalars().first()

    def check(
        self,
        faculty_id: str,
        classroom_id: str,
        slot_id: str,
        semester: int,
        academic_year: str,
        exclude_entry_id: str | None = None,
    ) -> ConflictCheck:
        # Faculty first; the first clash found is the one reported.
        clash = self.find_faculty_clash(faculty_id, slot_id, semester, academic_year, exclude_entry_id)
        if clash is not None:
            return ConflictCheck(
                has_conflict=True,
                kind="faculty",
                conflicting_entry_id=clash.id,
                message=(
                    f"Faculty conflict: Already teaching {subject_label(clash.subject)} "
                    f"in {classroom_label(clash.classroom)} at this time"
                ),
            )

        clash = self.find_classroom_clash(classroom_id, slot_id, semester, academic_year, exclude_entry_id)
        if clash is not None:
            return ConflictCheck(
                has_conflict=True,
                kind="classroom",
                conflicting_entry_id=clash.id,
                message=(
                    f"Classroom conflict: Already booked for {subject_label(clash.subject)} "
                    f"with {faculty_label(clash.faculty)} at this time"
                ),
            )

        return ConflictCheck(has_conflict=False, message=NO_CONFLICT_MESSAGE)

    def ensure_no_conflict(
        self,
        faculty_id: str,
        classroom_id: str,
        slot_id: str,
        semester: int,
        academic_year: str,
        exclude_entry_id: str | None = None,
    ) -> None:
        result = self.check(faculty_id, classroom_id, slot_id, semester, academic_year, exclude_entry_id)
        if result.has_conflict:
            raise ConflictError(result.message, conflicting_entry_id=result.conflicting_entry_id)

    def _same_day_classes(self, request: ConflictCheckRequest, slot: TimeSlot, *, by_faculty: bool) -> list[ScheduledClassOut]:
        query = (
            select(TimetableEntry)
            .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
            .where(
                TimeSlot.day_of_week == slot.day_of_week,
                TimetableEntry.slot_id != request.slot_id,
                TimetableEntry.semester == request.semester,
                TimetableEntry.academic_year == request.academic_year,
                TimetableEntry.status == EntryStatus.active,
            )
            .order_by(TimeSlot.start_time)
        )
        if by_faculty:
            query = query.where(TimetableEntry.faculty_id == request.faculty_id)
        else:
            query = query.where(TimetableEntry.classroom_id == request.classroom_id)
        if request.exclude_entry_id:
            query = query.where(TimetableEntry.id != request.exclude_entry_id)

        classes = []
        for entry in self.db.execute(query).scalars():
            counterpart = classroom_label(entry.classroom) if by_faculty else faculty_label(entry.faculty)
            classes.append(
                ScheduledClassOut(
                    entry_id=entry.id,
                    subject_code=entry.subject.code,
                    subject_name=entry.subject.name,
                    counterpart=counterpart,
                    section=entry.section,
                    start_time=entry.time_slot.start_time,
                    end_time=entry.time_slot.end_time,
                )
            )
        return classes

    def _slot_usage(self, request: ConflictCheckRequest) -> int:
        conditions = self._term_conditions(
            request.slot_id, request.semester, request.academic_year, request.exclude_entry_id
        )
        count_query = select(func.count(TimetableEntry.id)).where(*conditions)
        return int(self.db.execute(count_query).scalar_one())

    def preflight(self, request: ConflictCheckRequest) -> ConflictPreflightOut:
        """Conflict check plus the context a scheduler wants before committing a change."""
        faculty = get_faculty(self.db, request.faculty_id)
        classroom = get_classroom(self.db, request.classroom_id)
        slot = get_time_slot(self.db, request.slot_id)
        if faculty is None or classroom is None or slot is None:
            raise AvailabilityError("One or more resources not found")

        result = self.check(
            request.faculty_id,
            request.classroom_id,
            request.slot_id,
            request.semester,
            request.academic_year,
            request.exclude_entry_id,
        )
        faculty_name = faculty_label(faculty)
        room_name = classroom_label(classroom)
        time_label = slot_label(slot)
        response = ConflictPreflightOut(
            has_conflict=result.has_conflict,
            message=result.message,
            details={
                "faculty_name": faculty_name,
                "employee_id": faculty.employee_id,
                "classroom": room_name,
                "time_slot": time_label,
                "semester": request.semester,
                "academic_year": request.academic_year,
                "conflict_kind": result.kind,
                "conflicting_entry_id": result.conflicting_entry_id,
            },
        )
        if result.has_conflict:
            return response

        if request.subject_id:
            section = (request.section or "").strip() or "A"
            try:
                enrolled = count_enrolled(
                    self.db,
                    subject_id=request.subject_id,
                    section=section,
                    semester=request.semester,
                    academic_year=request.academic_year,
                )
            except SQLAlchemyError:
                logger.warning("Enrollment lookup failed during conflict pre-flight", exc_info=True)
                response.warnings.append(CAPACITY_UNVERIFIED)
            else:
                warning = capacity_advisory(enrolled, classroom.capacity, room_name)
                if warning:
                    response.warnings.append(warning)

        faculty_classes = self._same_day_classes(request, slot, by_faculty=True)
        if faculty_classes:
            response.additional_info["faculty_schedule"] = {
                "message": f"Faculty member has {len(faculty_classes)} other class(es) on {slot.day_of_week.value}",
                "classes": [item.model_dump(mode="json") for item in faculty_classes],
            }
        room_classes = self._same_day_classes(request, slot, by_faculty=False)
        if room_classes:
            response.additional_info["classroom_usage"] = {
                "message": f"Classroom has {len(room_classes)} other class(es) on {slot.day_of_week.value}",
                "classes": [item.model_dump(mode="json") for item in room_classes],
            }
        usage = self._slot_usage(request)
        if usage:
            response.additional_info["slot_usage"] = {
                "message": f"This time slot is used by {usage} other class(es)",
                "count": usage,
            }

        if response.warnings:
            response.message = "Schedule is available but please review the warnings below"
        else:
            response.message = f"No conflicts detected. Schedule is available for {faculty_name} in {room_name} on {time_label}"
        return response
