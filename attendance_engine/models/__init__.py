# attendance_engine/models/__init__.py
"""Import all models here so metadata is complete for Alembic and create_all."""
from .base import Base

# Shared models
from .shared.tenant import Tenant
from .shared.user import User, UserRole, Role

# Tenant-specific models
from .tenant_specific.catalog import Cohort, Section, Subject
from .tenant_specific.course_offering import CourseOffering
from .tenant_specific.class_schedule import ClassSchedule, DayOfWeek
from .tenant_specific.enrollment import StudentEnrollment, EnrollmentSource
from .tenant_specific.attendance import AttendanceSession, AttendanceRecord, AttendanceStatus

__all__ = [
    "Base",
    "Tenant",
    "User",
    "UserRole",
    "Role",
    "Cohort",
    "Section",
    "Subject",
    "CourseOffering",
    "ClassSchedule",
    "DayOfWeek",
    "StudentEnrollment",
    "EnrollmentSource",
    "AttendanceSession",
    "AttendanceRecord",
    "AttendanceStatus",
]
