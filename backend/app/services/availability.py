from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.exceptions import AvailabilityError
from app.models.classroom import ClassroomStatus
from app.models.user import UserStatus
from app.schemas.timetable import EntryDraft
from app.services.reference_data import (
    classroom_label,
    faculty_label,
    get_classroom,
    get_faculty,
    get_subject,
    get_time_slot,
    slot_label,
    subject_label,
)


def ensure_classroom_available(db: Session, classroom_id: str) -> None:
    classroom = get_classroom(db, classroom_id)
    if classroom is None:
        raise AvailabilityError("Classroom not found", details={"classroom_id": classroom_id})
    if not classroom.is_active:
        raise AvailabilityError(f"Classroom {classroom_label(classroom)} is not active")
    if classroom.status != ClassroomStatus.available:
        raise AvailabilityError(
            f"Classroom {classroom_label(classroom)} is currently {classroom.status.value.capitalize()}"
        )


def ensure_slot_active(db: Session, slot_id: str) -> None:
    slot = get_time_slot(db, slot_id)
    if slot is None:
        raise AvailabilityError("Time slot not found", details={"slot_id": slot_id})
    if not slot.is_active:
        name = slot.slot_name or "slot"
        raise AvailabilityError(f"Time slot {name} ({slot_label(slot)}) is not active")


def ensure_subject_active(db: Session, subject_id: str) -> None:
    subject = get_subject(db, subject_id)
    if subject is None:
        raise AvailabilityError("Subject not found", details={"subject_id": subject_id})
    if not subject.is_active:
        raise AvailabilityError(f"Subject {subject_label(subject)} is not active")


def ensure_faculty_active(db: Session, faculty_id: str) -> None:
    faculty = get_faculty(db, faculty_id)
    if faculty is None:
        raise AvailabilityError("Faculty member not found", details={"faculty_id": faculty_id})
    if faculty.user is None or faculty.user.status != UserStatus.active:
        raise AvailabilityError(f"Faculty member {faculty_label(faculty)} is not active")


def ensure_resources_available(db: Session, draft: EntryDraft) -> None:
    ensure_classroom_available(db, draft.classroom_id)
    ensure_slot_active(db, draft.slot_id)
    ensure_subject_active(db, draft.subject_id)
    ensure_faculty_active(db, draft.faculty_id)
