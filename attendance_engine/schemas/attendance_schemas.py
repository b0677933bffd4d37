# attendance_engine/schemas/attendance_schemas.py
from typing import List, Optional
from datetime import date, datetime
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from ..models.tenant_specific.attendance import AttendanceStatus

class StudentStatus(BaseModel):
    enrollment_id: UUID
    status: AttendanceStatus

class AttendanceSubmission(BaseModel):
    class_schedule_id: UUID
    session_date: Optional[date] = Field(default=None, description="Must be today's institute-local date when given")
    students: List[StudentStatus]

    @field_validator('students')
    @classmethod
    def validate_unique_students(cls, v):
        ids = [s.enrollment_id for s in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Each enrollment may appear only once')
        return v

class AttendanceCounts(BaseModel):
    present: int = 0
    absent: int = 0
    leave: int = 0

    @property
    def total(self) -> int:
        return self.present + self.absent + self.leave

class AttendanceSubmissionResult(BaseModel):
    attendance_session_id: UUID
    class_schedule_id: UUID
    course_offering_id: UUID
    session_date: date
    marked_at: datetime
    counts: AttendanceCounts

class OfferingAttendanceSummary(BaseModel):
    course_offering_id: UUID
    sessions_held: int
    counts: AttendanceCounts

class StudentAttendanceCounts(BaseModel):
    enrollment_id: UUID
    student_id: UUID
    roll_number: Optional[str] = None
    full_name: str
    counts: AttendanceCounts

class EnrollmentAttendanceSummary(BaseModel):
    enrollment_id: UUID
    course_offering_id: UUID
    sessions_marked: int
    counts: AttendanceCounts
    attendance_percentage: float

class AttendanceHistoryEntry(BaseModel):
    record_id: UUID
    attendance_date: date
    status: AttendanceStatus
    class_schedule_id: UUID
    schedule_archived: bool

class AttendanceRecord(BaseModel):
    id: UUID
    enrollment_id: UUID
    class_schedule_id: UUID
    course_offering_id: UUID
    attendance_date: date
    status: AttendanceStatus
    marked_by_teacher_id: UUID
    marked_at: datetime

    class Config:
        from_attributes = True
