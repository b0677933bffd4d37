# attendance_engine/core/exceptions.py
"""Custom exceptions for the attendance engine."""
from typing import Optional


class AttendanceEngineException(Exception):
    """Base exception for the attendance engine."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class TenantNotResolved(AttendanceEngineException):
    """Raised when tenant-scoped data is touched without an active tenant."""
    def __init__(self, message: str = "No tenant resolved for this operation"):
        super().__init__(message, 401)


class CrossTenantViolation(AttendanceEngineException):
    """Raised when an operation references a row owned by another tenant."""
    def __init__(self, resource: str, id: Optional[str] = None):
        self.resource = resource
        self.resource_id = id
        message = f"{resource} belongs to a different tenant"
        if id:
            message += f" (id: {id})"
        super().__init__(message, 404)


class Unauthorized(AttendanceEngineException):
    """Permission denied exception"""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, 403)


class NotFoundError(AttendanceEngineException):
    """Resource not found exception"""
    def __init__(self, resource: str, id: Optional[str] = None):
        message = f"{resource} not found"
        if id:
            message += f" with id: {id}"
        super().__init__(message, 404)


class ValidationException(AttendanceEngineException):
    """Validation error exception"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, 400)


class DuplicateCatalogEntry(AttendanceEngineException):
    """Raised when a per-tenant uniqueness rule would be broken."""
    def __init__(self, entity: str, message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f"{entity} already exists in this institute", 409)


class DuplicateEnrollment(DuplicateCatalogEntry):
    def __init__(self, message: str = "Student is already enrolled in this course offering"):
        super().__init__("Enrollment", message)


class ScheduleOverlap(AttendanceEngineException):
    def __init__(self, message: str = "This course offering already has a schedule on this day that overlaps with the specified time"):
        super().__init__(message, 409)


class WindowExpired(AttendanceEngineException):
    """Attendance portal is closed for this session."""
    def __init__(self, message: str = "Attendance window is closed for this session"):
        super().__init__(message, 423)


class AlreadyMarked(AttendanceEngineException):
    def __init__(self, message: str = "Attendance for this session has already been marked"):
        super().__init__(message, 409)


class IncompleteSubmission(AttendanceEngineException):
    def __init__(self, message: str, missing_enrollment_ids: Optional[list] = None, unknown_enrollment_ids: Optional[list] = None):
        self.missing_enrollment_ids = missing_enrollment_ids or []
        self.unknown_enrollment_ids = unknown_enrollment_ids or []
        super().__init__(message, 422)


class ReferentialConflict(AttendanceEngineException):
    """Deletion blocked by dependent rows."""
    def __init__(self, message: str):
        super().__init__(message, 409)
