from datetime import time

from pydantic import BaseModel

from app.models.classroom import ClassroomType
from app.models.time_slot import DayOfWeek


class SubjectOption(BaseModel):
    id: str
    code: str
    name: str
    department: str
    credits: int

    model_config = {"from_attributes": True}


class FacultyOption(BaseModel):
    id: str
    employee_id: str
    first_name: str
    last_name: str
    department: str
    designation: str

    model_config = {"from_attributes": True}


class ClassroomOption(BaseModel):
    id: str
    room_number: str
    building: str
    capacity: int
    type: ClassroomType

    model_config = {"from_attributes": True}


class TimeSlotOption(BaseModel):
    id: str
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    slot_name: str | None

    model_config = {"from_attributes": True}


class AvailableResources(BaseModel):
    subjects: list[SubjectOption]
    faculty: list[FacultyOption]
    classrooms: list[ClassroomOption]
    time_slots: list[TimeSlotOption]
    current_academic_year: str
    current_semester: int
