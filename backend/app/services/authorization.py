from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, NotFoundError
from app.schemas.timetable import AssignmentStatusOut
from app.services.advisory import department_advisory
from app.services.reference_data import (
    faculty_label,
    get_active_assignment,
    get_faculty,
    get_latest_assignment,
    get_subject,
    subject_label,
)


def ensure_faculty_assigned(db: Session, faculty_id: str, subject_id: str) -> None:
    if get_active_assignment(db, faculty_id, subject_id) is not None:
        return
    faculty_name = faculty_label(get_faculty(db, faculty_id))
    subject_name = subject_label(get_subject(db, subject_id))
    raise AuthorizationError(
        f"Faculty member '{faculty_name}' is not assigned to teach '{subject_name}'. "
        "Please assign the faculty to this subject first.",
        details={"faculty_id": faculty_id, "subject_id": subject_id},
    )


def check_faculty_assignment(db: Session, faculty_id: str, subject_id: str) -> AssignmentStatusOut:
    faculty = get_faculty(db, faculty_id)
    subject = get_subject(db, subject_id)
    if faculty is None or subject is None:
        raise NotFoundError("Faculty member or subject not found")

    faculty_name = faculty_label(faculty)
    subject_name = subject_label(subject)
    user_status = faculty.user.status.value if faculty.user is not None else "unknown"
    details = {
        "faculty_name": faculty_name,
        "employee_id": faculty.employee_id,
        "faculty_department": faculty.department,
        "subject_name": subject_name,
        "subject_department": subject.department,
        "user_status": user_status,
    }

    assignment = get_latest_assignment(db, faculty_id, subject_id)
    if assignment is None:
        return AssignmentStatusOut(
            is_assigned=False,
            status="not_assigned",
            message=f"Faculty member '{faculty_name}' is not assigned to teach '{subject_name}'",
            details=details,
            recommendation="Assign this faculty member to the subject in the faculty-subject assignments.",
        )

    details["assigned_date"] = assignment.assigned_date.isoformat()
    if not assignment.is_active:
        return AssignmentStatusOut(
            is_assigned=False,
            status="inactive_assignment",
            message=(
                f"Faculty member '{faculty_name}' was previously assigned to '{subject_name}' "
                "but the assignment is currently inactive"
            ),
            details=details,
            recommendation="Reactivate this assignment in the faculty-subject assignments.",
        )
    if user_status != "active":
        return AssignmentStatusOut(
            is_assigned=False,
            status="inactive_faculty",
            message=(
                f"Faculty member '{faculty_name}' is assigned to '{subject_name}' "
                f"but their user account is {user_status}"
            ),
            details=details,
            recommendation="Activate the faculty member's user account first.",
        )

    details["designation"] = faculty.designation
    warning = department_advisory(faculty, subject)
    return AssignmentStatusOut(
        is_assigned=True,
        status="assigned_active",
        message=f"Faculty member '{faculty_name}' is authorized to teach '{subject_name}'",
        details=details,
        warnings=[warning] if warning else [],
    )
