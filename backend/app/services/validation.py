from __future__ import annotations

from collections.abc import Iterable
from datetime import date
import re

from app.core.exceptions import FormatError, ValidationError
from app.schemas.timetable import ACADEMIC_YEAR_REGEX, EntryDraft, EntryDraftIn

ACADEMIC_YEAR_PATTERN = re.compile(ACADEMIC_YEAR_REGEX)
DEFAULT_SECTION = "A"
DEFAULT_YEAR_WINDOW = 5
MAX_SEMESTER = 20
MAX_STUDENTS = 10_000

REQUIRED_FIELDS: dict[str, str] = {
    "subject_id": "Subject",
    "faculty_id": "Faculty member",
    "classroom_id": "Classroom",
    "slot_id": "Time slot",
    "semester": "Semester",
    "academic_year": "Academic year",
}


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _clean_identifier(value: str | int) -> str:
    return str(value).strip()


def _positive_int(value: str | int, label: str, maximum: int) -> int:
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"{label} must be a whole number") from exc
    if number < 1:
        raise ValidationError(f"{label} must be greater than zero")
    if number > maximum:
        raise ValidationError(f"{label} cannot exceed {maximum}")
    return number


def sanitize_draft(raw: EntryDraftIn) -> EntryDraft:
    """Normalize raw caller input into a typed draft.

    Every missing required field is reported in a single ``ValidationError``.
    """
    missing = [label for field, label in REQUIRED_FIELDS.items() if _is_blank(getattr(raw, field))]
    if missing:
        raise ValidationError(
            "Please provide the following required fields: " + ", ".join(missing),
            details={"missing_fields": missing},
        )

    section = (raw.section or "").strip() or DEFAULT_SECTION
    notes = (raw.notes or "").strip() or None
    max_students = None
    if not _is_blank(raw.max_students):
        max_students = _positive_int(raw.max_students, "Max students", MAX_STUDENTS)

    return EntryDraft(
        subject_id=_clean_identifier(raw.subject_id),
        faculty_id=_clean_identifier(raw.faculty_id),
        classroom_id=_clean_identifier(raw.classroom_id),
        slot_id=_clean_identifier(raw.slot_id),
        section=section,
        semester=_positive_int(raw.semester, "Semester", MAX_SEMESTER),
        academic_year=raw.academic_year.strip(),
        max_students=max_students,
        notes=notes,
    )


def validate_academic_year(
    academic_year: str,
    *,
    current_year: int | None = None,
    window: int = DEFAULT_YEAR_WINDOW,
) -> tuple[int, int]:
    if not ACADEMIC_YEAR_PATTERN.fullmatch(academic_year or ""):
        raise FormatError("Academic year must be in YYYY-YYYY format (e.g., 2025-2026)")

    start_text, end_text = academic_year.split("-")
    start_year, end_year = int(start_text), int(end_text)
    if end_year != start_year + 1:
        raise FormatError("Academic year end year must be exactly one year after start year")

    reference_year = current_year if current_year is not None else date.today().year
    if abs(start_year - reference_year) > window:
        raise FormatError(
            f"Academic year {academic_year} is outside the accepted range "
            f"({reference_year - window}-{reference_year + window}). Please check the year range."
        )
    return start_year, end_year


def default_academic_year(current_year: int | None = None) -> str:
    year = current_year if current_year is not None else date.today().year
    return f"{year}-{year + 1}"


def suggest_academic_years(existing: Iterable[str], *, current_year: int | None = None, ahead: int = 5) -> list[str]:
    year = current_year if current_year is not None else date.today().year
    generated = [f"{start}-{start + 1}" for start in range(year, year + ahead)]
    return sorted(set(existing) | set(generated), reverse=True)
