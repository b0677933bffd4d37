# attendance_engine/schemas/tenant_schemas.py
"""Pydantic schemas for Tenant (Institute) entity."""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

class TenantRegistration(BaseModel):
    """Sign-up payload: the institute and its first administrator"""
    institute_name: str = Field(..., min_length=1, max_length=200)
    admin_full_name: str = Field(..., min_length=1, max_length=200)
    admin_email: EmailStr
    time_zone_id: Optional[str] = Field(default=None, max_length=100, description="IANA or Windows zone id")
