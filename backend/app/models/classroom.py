import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class ClassroomType(str, Enum):
    lecture = "lecture"
    lab = "lab"
    seminar = "seminar"
    auditorium = "auditorium"


class ClassroomStatus(str, Enum):
    available = "available"
    maintenance = "maintenance"
    reserved = "reserved"
    closed = "closed"


class Classroom(Base):
    __tablename__ = "classrooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_number: Mapped[str] = mapped_column(String(50), nullable=False)
    building: Mapped[str] = mapped_column(String(200), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    type: Mapped[ClassroomType] = mapped_column(
        SAEnum(ClassroomType, name="classroom_type"), nullable=False, default=ClassroomType.lecture
    )
    status: Mapped[ClassroomStatus] = mapped_column(
        SAEnum(ClassroomStatus, name="classroom_status"), nullable=False, default=ClassroomStatus.available
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
