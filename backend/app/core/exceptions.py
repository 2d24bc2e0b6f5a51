class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class SchedulingError(AppError):
    """Raised when a proposed timetable entry fails the validation pipeline."""
    code = "scheduling_error"
    default_status = 400

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=self.default_status, details=details)


class ValidationError(SchedulingError):
    """Required fields are missing or the input cannot be cast."""
    code = "validation_error"
    default_status = 422


class FormatError(SchedulingError):
    """The academic year is malformed or implausible."""
    code = "format_error"
    default_status = 422


class AuthorizationError(SchedulingError):
    """The faculty member holds no active assignment to the subject."""
    code = "authorization_error"
    default_status = 403


class AvailabilityError(SchedulingError):
    """A referenced subject, faculty member, classroom or time slot is unusable."""
    code = "availability_error"
    default_status = 409


class ConflictError(SchedulingError):
    """The faculty member or classroom is already booked for the slot and term."""
    code = "conflict"
    default_status = 409

    def __init__(self, message: str, conflicting_entry_id: str | None = None):
        details = {"conflicting_entry_id": conflicting_entry_id} if conflicting_entry_id else None
        super().__init__(message, details=details)
        self.conflicting_entry_id = conflicting_entry_id


class NotFoundError(SchedulingError):
    """The targeted timetable entry does not exist (or is not in the required state)."""
    code = "not_found"
    default_status = 404


DATABASE_ERROR_CODE = "database_error"

ERROR_STATUS_CODES: dict[str, int] = {
    cls.code: cls.default_status
    for cls in (ValidationError, FormatError, AuthorizationError, AvailabilityError, ConflictError, NotFoundError)
}
ERROR_STATUS_CODES[DATABASE_ERROR_CODE] = 500
