import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.classroom import Classroom
from app.models.faculty import Faculty
from app.models.subject import Subject
from app.models.time_slot import TimeSlot


class EntryStatus(str, Enum):
    active = "active"
    inactive = "inactive"


# Both indexes only cover active rows, so deactivated history never blocks a new booking.
ACTIVE_ROWS = text("status = 'active'")
FACULTY_BOOKING_INDEX = "uq_timetable_entries_faculty_slot_term_active"
CLASSROOM_BOOKING_INDEX = "uq_timetable_entries_classroom_slot_term_active"


class TimetableEntry(Base):
    __tablename__ = "timetable_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id"), nullable=False, index=True)
    faculty_id: Mapped[str] = mapped_column(String(36), ForeignKey("faculty.id"), nullable=False, index=True)
    classroom_id: Mapped[str] = mapped_column(String(36), ForeignKey("classrooms.id"), nullable=False, index=True)
    slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("time_slots.id"), nullable=False, index=True)
    section: Mapped[str] = mapped_column(String(20), nullable=False, default="A")
    semester: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False, index=True)
    max_students: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[EntryStatus] = mapped_column(
        SAEnum(EntryStatus, name="entry_status"), nullable=False, default=EntryStatus.active
    )
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    modified_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    subject: Mapped[Subject] = relationship(lazy="joined")
    faculty: Mapped[Faculty] = relationship(lazy="joined")
    classroom: Mapped[Classroom] = relationship(lazy="joined")
    time_slot: Mapped[TimeSlot] = relationship(lazy="joined")

    __table_args__ = (
        Index(
            FACULTY_BOOKING_INDEX,
            "faculty_id",
            "slot_id",
            "semester",
            "academic_year",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
        Index(
            CLASSROOM_BOOKING_INDEX,
            "classroom_id",
            "slot_id",
            "semester",
            "academic_year",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == EntryStatus.active

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "faculty_id": self.faculty_id,
            "classroom_id": self.classroom_id,
            "slot_id": self.slot_id,
            "section": self.section,
            "semester": self.semester,
            "academic_year": self.academic_year,
            "max_students": self.max_students,
            "notes": self.notes,
            "status": self.status.value if self.status is not None else None,
        }
