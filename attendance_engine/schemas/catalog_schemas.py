# attendance_engine/schemas/catalog_schemas.py
from typing import Optional
from pydantic import BaseModel, Field

class CohortCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Batch name, e.g. 2023-Fall")

class CohortUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)

class SectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Section name, e.g. CS-A")

class SectionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)

class SubjectCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Subject code, e.g. CS-101")
    name: str = Field(..., min_length=1, max_length=200)

class SubjectUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
