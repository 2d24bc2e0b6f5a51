import itertools
import os
import tempfile
from datetime import date, time
from pathlib import Path
from types import SimpleNamespace

# The app bootstraps its own engine at import time; point it at a throwaway file.
_RUNTIME_DB_DIR = Path(tempfile.mkdtemp(prefix="campus-timetable-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_RUNTIME_DB_DIR / 'runtime.db'}"
os.environ["ENVIRONMENT"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.classroom import Classroom, ClassroomStatus  # noqa: E402
from app.models.enrollment import Enrollment  # noqa: E402
from app.models.faculty import Faculty  # noqa: E402
from app.models.faculty_subject import FacultySubjectAssignment  # noqa: E402
from app.models.subject import Subject  # noqa: E402
from app.models.time_slot import DayOfWeek, TimeSlot  # noqa: E402
from app.models.timetable_entry import EntryStatus, TimetableEntry  # noqa: E402
from app.models.user import User, UserRole, UserStatus  # noqa: E402

CURRENT_ACADEMIC_YEAR = f"{date.today().year}-{date.today().year + 1}"


class Seed:
    """Small factory for reference data; every helper commits."""

    def __init__(self, db):
        self.db = db
        self._counter = itertools.count(1)
        self.academic_year = CURRENT_ACADEMIC_YEAR

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def user(self, *, role=UserRole.scheduler, status=UserStatus.active, name=None, department="Computer Science"):
        n = next(self._counter)
        return self._save(
            User(
                name=name or f"User {n}",
                email=f"user{n}@campus.test",
                role=role,
                status=status,
                department=department,
            )
        )

    def faculty(self, *, first_name="Ada", last_name="Lovelace", department="Computer Science", status=UserStatus.active):
        n = next(self._counter)
        account = self.user(role=UserRole.faculty, status=status, name=f"{first_name} {last_name}")
        return self._save(
            Faculty(
                user_id=account.id,
                employee_id=f"EMP{n:03d}",
                first_name=first_name,
                last_name=last_name,
                department=department,
                designation="Assistant Professor",
            )
        )

    def subject(self, *, code=None, name="Data Structures", department="Computer Science", is_active=True):
        n = next(self._counter)
        return self._save(
            Subject(code=code or f"CS{100 + n}", name=name, department=department, credits=3, is_active=is_active)
        )

    def classroom(self, *, room_number=None, building="Main Block", capacity=60, status=ClassroomStatus.available, is_active=True):
        n = next(self._counter)
        return self._save(
            Classroom(
                room_number=room_number or f"R{100 + n}",
                building=building,
                capacity=capacity,
                status=status,
                is_active=is_active,
            )
        )

    def slot(self, *, day=DayOfWeek.monday, start=time(9, 0), end=time(10, 0), slot_name="Period 1", is_active=True):
        return self._save(
            TimeSlot(day_of_week=day, start_time=start, end_time=end, slot_name=slot_name, is_active=is_active)
        )

    def assign(self, faculty, subject, *, is_active=True):
        return self._save(FacultySubjectAssignment(faculty_id=faculty.id, subject_id=subject.id, is_active=is_active))

    def enroll(self, subject, count, *, section="A", semester=1, academic_year=None):
        for _ in range(count):
            student = self.user(role=UserRole.student)
            self.db.add(
                Enrollment(
                    student_id=student.id,
                    subject_id=subject.id,
                    section=section,
                    semester=semester,
                    academic_year=academic_year or self.academic_year,
                )
            )
        self.db.commit()

    def entry(self, *, subject, faculty, classroom, slot, section="A", semester=1, academic_year=None, status=EntryStatus.active):
        return self._save(
            TimetableEntry(
                subject_id=subject.id,
                faculty_id=faculty.id,
                classroom_id=classroom.id,
                slot_id=slot.id,
                section=section,
                semester=semester,
                academic_year=academic_year or self.academic_year,
                status=status,
            )
        )

    def booking(self, *, capacity=60):
        """An assigned faculty member, an available room and a free slot."""
        subject = self.subject()
        faculty = self.faculty()
        self.assign(faculty, subject)
        classroom = self.classroom(capacity=capacity)
        slot = self.slot()
        return SimpleNamespace(subject=subject, faculty=faculty, classroom=classroom, slot=slot)

    def draft(self, booking, **overrides) -> dict:
        payload = {
            "subject_id": booking.subject.id,
            "faculty_id": booking.faculty.id,
            "classroom_id": booking.classroom.id,
            "slot_id": booking.slot.id,
            "section": "A",
            "semester": 1,
            "academic_year": self.academic_year,
        }
        payload.update(overrides)
        return payload


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seed(db):
    return Seed(db)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def build(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return build
