from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.faculty import Faculty
from app.models.subject import Subject
from app.schemas.timetable import EntryDraft
from app.services.reference_data import (
    classroom_label,
    count_enrolled,
    faculty_label,
    get_classroom,
    get_faculty,
    get_subject,
    subject_label,
)

logger = logging.getLogger(__name__)

NEAR_CAPACITY_RATIO = 0.9
HIGH_OCCUPANCY_RATIO = 0.8

CAPACITY_UNVERIFIED = "Warning: Could not verify classroom capacity"
DEPARTMENT_UNVERIFIED = "Warning: Could not verify department consistency"


def capacity_advisory(enrolled: int, capacity: int, room: str) -> str | None:
    # Bands are exclusive: only the most severe one is reported.
    if enrolled > capacity:
        return (
            f"CAPACITY EXCEEDED: {enrolled} students enrolled but classroom {room} "
            f"only has capacity for {capacity}"
        )
    if enrolled > capacity * NEAR_CAPACITY_RATIO:
        return f"NEAR CAPACITY: Classroom {room} is nearly full ({enrolled}/{capacity} students)"
    if enrolled > capacity * HIGH_OCCUPANCY_RATIO:
        return f"HIGH OCCUPANCY: Classroom {room} is {enrolled}/{capacity} students"
    return None


def department_advisory(faculty: Faculty, subject: Subject) -> str | None:
    if faculty.department == subject.department:
        return None
    return (
        f"CROSS-DEPARTMENT: {faculty_label(faculty)} from {faculty.department} "
        f"teaching {subject.department} subject ({subject_label(subject)})"
    )


def _capacity_warnings(db: Session, draft: EntryDraft) -> list[str]:
    # A failed lookup rolls back only its own savepoint.
    try:
        with db.begin_nested():
            classroom = get_classroom(db, draft.classroom_id)
            if classroom is None:
                return [CAPACITY_UNVERIFIED]
            enrolled = count_enrolled(
                db,
                subject_id=draft.subject_id,
                section=draft.section,
                semester=draft.semester,
                academic_year=draft.academic_year,
            )
    except SQLAlchemyError:
        logger.warning("Capacity advisory lookup failed for classroom %s", draft.classroom_id, exc_info=True)
        return [CAPACITY_UNVERIFIED]
    message = capacity_advisory(enrolled, classroom.capacity, classroom_label(classroom))
    return [message] if message else []


def _department_warnings(db: Session, draft: EntryDraft) -> list[str]:
    try:
        with db.begin_nested():
            faculty = get_faculty(db, draft.faculty_id)
            subject = get_subject(db, draft.subject_id)
    except SQLAlchemyError:
        logger.warning("Department advisory lookup failed for faculty %s", draft.faculty_id, exc_info=True)
        return [DEPARTMENT_UNVERIFIED]
    if faculty is None or subject is None:
        return [DEPARTMENT_UNVERIFIED]
    message = department_advisory(faculty, subject)
    return [message] if message else []


def collect_advisories(db: Session, draft: EntryDraft) -> list[str]:
    """Non-blocking warnings attached to an otherwise valid entry."""
    return _capacity_warnings(db, draft) + _department_warnings(db, draft)
