# attendance_engine/schemas/enrollment_schemas.py
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel

class EnrollmentCreate(BaseModel):
    student_id: UUID
    course_offering_id: UUID

class Enrollment(EnrollmentCreate):
    id: UUID
    tenant_id: UUID
    enrolled_at: datetime
    enrollment_source: str

    class Config:
        from_attributes = True
