from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_current_user, get_timetable_service, require_scheduler
from app.core.exceptions import ERROR_STATUS_CODES
from app.models.time_slot import DayOfWeek
from app.models.user import User, UserRole
from app.schemas.reference import AvailableResources, FacultyOption
from app.schemas.timetable import (
    ACADEMIC_YEAR_REGEX,
    AssignmentCheckRequest,
    AssignmentStatusOut,
    BulkDeleteRequest,
    BulkDeleteResult,
    ConflictCheckRequest,
    ConflictPreflightOut,
    EntryDraftIn,
    EntryFilters,
    EntryOut,
    EntryPage,
    EntryResult,
    FilterOptions,
    TimetableStats,
)
from app.services.timetable_service import TimetableService

router = APIRouter()


def _respond(result: EntryResult, response: Response, success_status: int = status.HTTP_200_OK) -> EntryResult:
    if result.success:
        response.status_code = success_status
    else:
        response.status_code = ERROR_STATUS_CODES.get(result.error or "", status.HTTP_400_BAD_REQUEST)
    return result


@router.post("/entries", response_model=EntryResult)
def create_entry(
    payload: EntryDraftIn,
    response: Response,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryResult:
    result = service.create_entry(payload, actor_id=current_user.id)
    return _respond(result, response, success_status=status.HTTP_201_CREATED)


@router.get("/entries", response_model=EntryPage)
def list_entries(
    academic_year: str | None = Query(default=None, pattern=ACADEMIC_YEAR_REGEX),
    semester: int | None = Query(default=None, ge=1, le=20),
    department: str | None = Query(default=None, max_length=100),
    faculty_id: str | None = Query(default=None, max_length=36),
    subject_id: str | None = Query(default=None, max_length=36),
    day_of_week: DayOfWeek | None = Query(default=None),
    entry_status: Literal["active", "inactive", "all"] = Query(default="active", alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryPage:
    filters = EntryFilters(
        academic_year=academic_year,
        semester=semester,
        department=department,
        faculty_id=faculty_id,
        subject_id=subject_id,
        day_of_week=day_of_week,
        status=entry_status,
    )
    return service.list_entries(filters, page=page, page_size=page_size)


@router.post("/entries/bulk-delete", response_model=BulkDeleteResult)
def bulk_delete_entries(
    payload: BulkDeleteRequest,
    response: Response,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> BulkDeleteResult:
    result = service.bulk_delete(payload.entry_ids, actor_id=current_user.id)
    if not result.success:
        # Partial success still reports what was deleted.
        response.status_code = status.HTTP_207_MULTI_STATUS if result.deleted else status.HTTP_400_BAD_REQUEST
    return result


@router.get("/entries/{entry_id}", response_model=EntryOut)
def get_entry(
    entry_id: str,
    include_inactive: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryOut:
    allow_inactive = include_inactive and current_user.role in {UserRole.admin, UserRole.scheduler}
    return service.get_entry(entry_id, include_inactive=allow_inactive)


@router.put("/entries/{entry_id}", response_model=EntryResult)
def update_entry(
    entry_id: str,
    payload: EntryDraftIn,
    response: Response,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryResult:
    return _respond(service.update_entry(entry_id, payload, actor_id=current_user.id), response)


@router.delete("/entries/{entry_id}", response_model=EntryResult)
def delete_entry(
    entry_id: str,
    response: Response,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryResult:
    return _respond(service.delete_entry(entry_id, actor_id=current_user.id), response)


@router.post("/entries/{entry_id}/activate", response_model=EntryResult)
def activate_entry(
    entry_id: str,
    response: Response,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryResult:
    return _respond(service.activate_entry(entry_id, actor_id=current_user.id), response)


@router.post("/entries/{entry_id}/deactivate", response_model=EntryResult)
def deactivate_entry(
    entry_id: str,
    response: Response,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryResult:
    return _respond(service.deactivate_entry(entry_id, actor_id=current_user.id), response)


@router.post("/conflicts/check", response_model=ConflictPreflightOut)
def check_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> ConflictPreflightOut:
    return service.preflight(payload)


@router.post("/faculty-assignment/check", response_model=AssignmentStatusOut)
def check_faculty_assignment(
    payload: AssignmentCheckRequest,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> AssignmentStatusOut:
    return service.check_assignment(payload.faculty_id, payload.subject_id)


@router.get("/subjects/{subject_id}/faculty", response_model=list[FacultyOption])
def list_subject_faculty(
    subject_id: str,
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> list[FacultyOption]:
    return service.faculty_by_subject(subject_id)


@router.get("/resources", response_model=AvailableResources)
def available_resources(
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> AvailableResources:
    return service.available_resources()


@router.get("/filter-options", response_model=FilterOptions)
def filter_options(
    current_user: User = Depends(get_current_user),
    service: TimetableService = Depends(get_timetable_service),
) -> FilterOptions:
    return service.filter_options()


@router.get("/stats", response_model=TimetableStats)
def timetable_stats(
    academic_year: str | None = Query(default=None, pattern=ACADEMIC_YEAR_REGEX),
    current_user: User = Depends(require_scheduler),
    service: TimetableService = Depends(get_timetable_service),
) -> TimetableStats:
    return service.stats(academic_year)


@router.get("/academic-years", response_model=list[str])
def academic_years(
    current_user: User = Depends(get_current_user),
    service: TimetableService = Depends(get_timetable_service),
) -> list[str]:
    return service.academic_years()
