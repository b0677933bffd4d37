# attendance_engine/schemas/user_schemas.py
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

class TeacherCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr

class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    roll_number: str = Field(..., min_length=1, max_length=50, description="Free-text student id, e.g. 2023-CS-101")
    cohort_id: Optional[UUID] = None
    section_id: Optional[UUID] = None
