from __future__ import annotations

from datetime import datetime, time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.models.time_slot import DayOfWeek
from app.models.timetable_entry import EntryStatus

RawField = str | int | None

ACADEMIC_YEAR_REGEX = r"^[0-9]{4}-[0-9]{4}$"


class EntryDraftIn(BaseModel):
    """Raw, unvalidated entry fields as submitted by a caller."""

    model_config = ConfigDict(extra="ignore")

    subject_id: RawField = None
    faculty_id: RawField = None
    classroom_id: RawField = None
    slot_id: RawField = None
    section: str | None = None
    semester: RawField = None
    academic_year: str | None = None
    max_students: RawField = None
    notes: str | None = None


class EntryDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject_id: str
    faculty_id: str
    classroom_id: str
    slot_id: str
    section: str = "A"
    semester: int = 1
    academic_year: str
    max_students: int | None = None
    notes: str | None = None


class EntryResult(BaseModel):
    success: bool
    message: str
    entry_id: str | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    details: dict = Field(default_factory=dict)


class BulkDeleteRequest(BaseModel):
    entry_ids: list[str] = Field(default_factory=list, max_length=500)


class BulkDeleteResult(BaseModel):
    success: bool
    message: str
    deleted: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)


class ConflictCheckRequest(BaseModel):
    faculty_id: str = Field(min_length=1, max_length=36)
    classroom_id: str = Field(min_length=1, max_length=36)
    slot_id: str = Field(min_length=1, max_length=36)
    semester: int = Field(ge=1, le=20)
    academic_year: str = Field(pattern=ACADEMIC_YEAR_REGEX)
    exclude_entry_id: str | None = None
    subject_id: str | None = None
    section: str | None = None


class ConflictCheck(BaseModel):
    has_conflict: bool
    message: str
    kind: Literal["faculty", "classroom"] | None = None
    conflicting_entry_id: str | None = None


class ScheduledClassOut(BaseModel):
    entry_id: str
    subject_code: str
    subject_name: str
    counterpart: str
    section: str
    start_time: time
    end_time: time


class ConflictPreflightOut(BaseModel):
    has_conflict: bool
    message: str
    details: dict = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    additional_info: dict = Field(default_factory=dict)


class EntryFilters(BaseModel):
    academic_year: str | None = None
    semester: int | None = Field(default=None, ge=1, le=20)
    department: str | None = None
    faculty_id: str | None = None
    subject_id: str | None = None
    day_of_week: DayOfWeek | None = None
    status: Literal["active", "inactive", "all"] = "active"


class EntryOut(BaseModel):
    id: str
    subject_id: str
    subject_code: str
    subject_name: str
    credits: int
    department: str
    faculty_id: str
    faculty_name: str
    employee_id: str
    classroom_id: str
    room_number: str
    building: str
    capacity: int
    slot_id: str
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    slot_name: str | None
    section: str
    semester: int
    academic_year: str
    max_students: int | None
    notes: str | None
    status: EntryStatus
    enrolled_students: int = 0
    created_at: datetime | None = None
    modified_at: datetime | None = None


class Pagination(BaseModel):
    current_page: int
    per_page: int
    total: int
    total_pages: int


class EntryPage(BaseModel):
    entries: list[EntryOut]
    pagination: Pagination


class FilterOptions(BaseModel):
    academic_years: list[str]
    semesters: list[int]
    departments: list[str]
    days_of_week: list[DayOfWeek]


class TimetableStats(BaseModel):
    academic_year: str
    total_entries: int
    subjects_scheduled: int
    faculty_scheduled: int
    used_classrooms: int
    total_classrooms: int
    classroom_utilization: float


class AssignmentCheckRequest(BaseModel):
    faculty_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)


class AssignmentStatusOut(BaseModel):
    is_assigned: bool
    status: Literal["not_assigned", "inactive_assignment", "inactive_faculty", "assigned_active"]
    message: str
    details: dict = Field(default_factory=dict)
    recommendation: str | None = None
    warnings: list[str] = Field(default_factory=list)
