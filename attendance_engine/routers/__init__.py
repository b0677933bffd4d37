from . import health, attendance, schedules, enrollments

__all__ = [
    "health",
    "attendance",
    "schedules",
    "enrollments",
]
