from __future__ import annotations

from sqlalchemy import case, distinct, func, select
from sqlalchemy.orm import Session

from app.models.classroom import Classroom, ClassroomStatus
from app.models.enrollment import Enrollment, EnrollmentStatus
from app.models.subject import Subject
from app.models.time_slot import DayOfWeek, TimeSlot
from app.models.timetable_entry import EntryStatus, TimetableEntry
from app.schemas.timetable import EntryDraft, EntryFilters

DAY_SORT = case(
    *[(TimeSlot.day_of_week == day, index) for index, day in enumerate(DayOfWeek)],
    else_=len(DayOfWeek),
)


def enrolled_count_expression():
    return (
        select(func.count(Enrollment.id))
        .where(
            Enrollment.subject_id == TimetableEntry.subject_id,
            Enrollment.section == TimetableEntry.section,
            Enrollment.semester == TimetableEntry.semester,
            Enrollment.academic_year == TimetableEntry.academic_year,
            Enrollment.status == EnrollmentStatus.enrolled,
        )
        .correlate(TimetableEntry)
        .scalar_subquery()
    )


class TimetableRepository:
    """Persistence for timetable entries.

    Writes only flush; the caller owns the transaction so a constraint
    violation surfaces before anything is committed.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, entry_id: str) -> TimetableEntry | None:
        return self.db.get(TimetableEntry, entry_id)

    def get_active(self, entry_id: str) -> TimetableEntry | None:
        entry = self.get(entry_id)
        if entry is None or entry.status != EntryStatus.active:
            return None
        return entry

    def get_with_enrollment(self, entry_id: str) -> tuple[TimetableEntry, int] | None:
        query = select(TimetableEntry, enrolled_count_expression()).where(TimetableEntry.id == entry_id)
        row = self.db.execute(query).first()
        if row is None:
            return None
        return row[0], int(row[1] or 0)

    def add(self, draft: EntryDraft, actor_id: str) -> TimetableEntry:
        entry = TimetableEntry(
            **draft.model_dump(),
            status=EntryStatus.active,
            created_by=actor_id,
            modified_by=actor_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def apply_draft(self, entry: TimetableEntry, draft: EntryDraft, actor_id: str) -> TimetableEntry:
        for key, value in draft.model_dump().items():
            setattr(entry, key, value)
        entry.modified_by = actor_id
        self.db.flush()
        return entry

    def set_status(self, entry: TimetableEntry, status: EntryStatus, actor_id: str) -> TimetableEntry:
        entry.status = status
        entry.modified_by = actor_id
        self.db.flush()
        return entry

    @staticmethod
    def _filter_conditions(filters: EntryFilters) -> list:
        conditions = []
        if filters.status == "active":
            conditions.append(TimetableEntry.status == EntryStatus.active)
        elif filters.status == "inactive":
            conditions.append(TimetableEntry.status == EntryStatus.inactive)
        if filters.academic_year:
            conditions.append(TimetableEntry.academic_year == filters.academic_year)
        if filters.semester:
            conditions.append(TimetableEntry.semester == filters.semester)
        if filters.department:
            conditions.append(Subject.department == filters.department)
        if filters.faculty_id:
            conditions.append(TimetableEntry.faculty_id == filters.faculty_id)
        if filters.subject_id:
            conditions.append(TimetableEntry.subject_id == filters.subject_id)
        if filters.day_of_week:
            conditions.append(TimeSlot.day_of_week == filters.day_of_week)
        return conditions

    def list_page(self, filters: EntryFilters, *, page: int, page_size: int) -> tuple[list[tuple[TimetableEntry, int]], int]:
        conditions = self._filter_conditions(filters)

        query = (
            select(TimetableEntry, enrolled_count_expression())
            .join(Subject, Subject.id == TimetableEntry.subject_id)
            .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
            .where(*conditions)
            .order_by(DAY_SORT, TimeSlot.start_time, Subject.code, TimetableEntry.id)
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = [(entry, int(enrolled or 0)) for entry, enrolled in self.db.execute(query).all()]

        count_query = (
            select(func.count(TimetableEntry.id))
            .join(Subject, Subject.id == TimetableEntry.subject_id)
            .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
            .where(*conditions)
        )
        total = int(self.db.execute(count_query).scalar_one())
        return rows, total

    def distinct_academic_years(self) -> list[str]:
        query = (
            select(distinct(TimetableEntry.academic_year))
            .where(TimetableEntry.status == EntryStatus.active)
            .order_by(TimetableEntry.academic_year.desc())
        )
        return list(self.db.execute(query).scalars())

    def filter_options(self) -> dict:
        active = TimetableEntry.status == EntryStatus.active
        semesters = self.db.execute(
            select(distinct(TimetableEntry.semester)).where(active).order_by(TimetableEntry.semester)
        ).scalars()
        departments = self.db.execute(
            select(distinct(Subject.department))
            .join(TimetableEntry, TimetableEntry.subject_id == Subject.id)
            .where(active)
            .order_by(Subject.department)
        ).scalars()
        days = self.db.execute(
            select(distinct(TimeSlot.day_of_week))
            .join(TimetableEntry, TimetableEntry.slot_id == TimeSlot.id)
            .where(active)
        ).scalars()
        return {
            "academic_years": self.distinct_academic_years(),
            "semesters": list(semesters),
            "departments": list(departments),
            "days_of_week": sorted(days, key=list(DayOfWeek).index),
        }

    def stats(self, academic_year: str) -> dict:
        scope = (TimetableEntry.status == EntryStatus.active, TimetableEntry.academic_year == academic_year)
        row = self.db.execute(
            select(
                func.count(TimetableEntry.id),
                func.count(distinct(TimetableEntry.subject_id)),
                func.count(distinct(TimetableEntry.faculty_id)),
                func.count(distinct(TimetableEntry.classroom_id)),
            ).where(*scope)
        ).one()
        total_classrooms = int(
            self.db.execute(
                select(func.count(Classroom.id)).where(
                    Classroom.is_active.is_(True), Classroom.status == ClassroomStatus.available
                )
            ).scalar_one()
        )
        used_classrooms = int(row[3])
        utilization = round(used_classrooms / total_classrooms * 100, 2) if total_classrooms else 0.0
        return {
            "academic_year": academic_year,
            "total_entries": int(row[0]),
            "subjects_scheduled": int(row[1]),
            "faculty_scheduled": int(row[2]),
            "used_classrooms": used_classrooms,
            "total_classrooms": total_classrooms,
            "classroom_utilization": utilization,
        }
