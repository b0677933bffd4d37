# attendance_engine/schemas/course_offering_schemas.py
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel

class CourseOfferingCreate(BaseModel):
    teacher_id: UUID
    subject_id: UUID
    cohort_id: UUID
    section_id: UUID

class CourseOffering(CourseOfferingCreate):
    id: UUID
    tenant_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True
