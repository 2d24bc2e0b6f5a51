"""Read-only lookups over reference data owned by other parts of the system."""

from __future__ import annotations

from datetime import time

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.classroom import Classroom, ClassroomStatus
from app.models.enrollment import Enrollment, EnrollmentStatus
from app.models.faculty import Faculty
from app.models.faculty_subject import FacultySubjectAssignment
from app.models.subject import Subject
from app.models.time_slot import DAY_ORDER, TimeSlot
from app.models.user import User, UserStatus


def get_subject(db: Session, subject_id: str) -> Subject | None:
    return db.get(Subject, subject_id)


def get_faculty(db: Session, faculty_id: str) -> Faculty | None:
    return db.get(Faculty, faculty_id)


def get_classroom(db: Session, classroom_id: str) -> Classroom | None:
    return db.get(Classroom, classroom_id)


def get_time_slot(db: Session, slot_id: str) -> TimeSlot | None:
    return db.get(TimeSlot, slot_id)


def get_active_assignment(db: Session, faculty_id: str, subject_id: str) -> FacultySubjectAssignment | None:
    query = (
        select(FacultySubjectAssignment)
        .where(
            FacultySubjectAssignment.faculty_id == faculty_id,
            FacultySubjectAssignment.subject_id == subject_id,
            FacultySubjectAssignment.is_active.is_(True),
        )
        .limit(1)
    )
    return db.execute(query).scalars().first()


def get_latest_assignment(db: Session, faculty_id: str, subject_id: str) -> FacultySubjectAssignment | None:
    query = (
        select(FacultySubjectAssignment)
        .where(
            FacultySubjectAssignment.faculty_id == faculty_id,
            FacultySubjectAssignment.subject_id == subject_id,
        )
        .order_by(FacultySubjectAssignment.is_active.desc(), FacultySubjectAssignment.assigned_date.desc())
        .limit(1)
    )
    return db.execute(query).scalars().first()


def count_enrolled(db: Session, *, subject_id: str, section: str, semester: int, academic_year: str) -> int:
    query = select(func.count(Enrollment.id)).where(
        Enrollment.subject_id == subject_id,
        Enrollment.section == section,
        Enrollment.semester == semester,
        Enrollment.academic_year == academic_year,
        Enrollment.status == EnrollmentStatus.enrolled,
    )
    return int(db.execute(query).scalar_one())


def list_faculty_by_subject(db: Session, subject_id: str) -> list[Faculty]:
    query = (
        select(Faculty)
        .join(FacultySubjectAssignment, FacultySubjectAssignment.faculty_id == Faculty.id)
        .join(User, User.id == Faculty.user_id)
        .where(
            FacultySubjectAssignment.subject_id == subject_id,
            FacultySubjectAssignment.is_active.is_(True),
            User.status == UserStatus.active,
        )
        .order_by(Faculty.last_name, Faculty.first_name)
        .distinct()
    )
    return list(db.execute(query).scalars())


def list_active_subjects(db: Session) -> list[Subject]:
    query = select(Subject).where(Subject.is_active.is_(True)).order_by(Subject.department, Subject.code)
    return list(db.execute(query).scalars())


def list_active_faculty(db: Session) -> list[Faculty]:
    query = (
        select(Faculty)
        .join(User, User.id == Faculty.user_id)
        .where(User.status == UserStatus.active)
        .order_by(Faculty.department, Faculty.last_name, Faculty.first_name)
    )
    return list(db.execute(query).scalars())


def list_available_classrooms(db: Session) -> list[Classroom]:
    query = (
        select(Classroom)
        .where(Classroom.is_active.is_(True), Classroom.status == ClassroomStatus.available)
        .order_by(Classroom.building, Classroom.room_number)
    )
    return list(db.execute(query).scalars())


def list_active_time_slots(db: Session) -> list[TimeSlot]:
    slots = list(db.execute(select(TimeSlot).where(TimeSlot.is_active.is_(True))).scalars())
    slots.sort(key=lambda slot: (DAY_ORDER.get(slot.day_of_week.value, 99), slot.start_time))
    return slots


def format_clock(value: time) -> str:
    return value.strftime("%I:%M %p")


def subject_label(subject: Subject | None) -> str:
    return f"{subject.code} - {subject.name}" if subject is not None else "Subject"


def faculty_label(faculty: Faculty | None) -> str:
    return faculty.full_name if faculty is not None else "Faculty"


def classroom_label(classroom: Classroom | None) -> str:
    return f"{classroom.room_number} ({classroom.building})" if classroom is not None else "Classroom"


def slot_label(slot: TimeSlot | None) -> str:
    if slot is None:
        return "Time slot"
    return f"{slot.day_of_week.value} {format_clock(slot.start_time)} - {format_clock(slot.end_time)}"
