from app.models.audit_log import AuditAction, AuditLog  # noqa: F401
from app.models.classroom import Classroom, ClassroomStatus, ClassroomType  # noqa: F401
from app.models.enrollment import Enrollment, EnrollmentStatus  # noqa: F401
from app.models.faculty import Faculty  # noqa: F401
from app.models.faculty_subject import FacultySubjectAssignment  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.time_slot import DAY_ORDER, DayOfWeek, TimeSlot  # noqa: F401
from app.models.timetable_entry import EntryStatus, TimetableEntry  # noqa: F401
from app.models.user import User, UserRole, UserStatus  # noqa: F401
