# attendance_engine/schemas/schedule_schemas.py
from typing import Optional
from datetime import date, datetime, time
from uuid import UUID
from pydantic import BaseModel, Field, model_validator

from ..core.config import settings
from ..models.tenant_specific.class_schedule import DayOfWeek

class ClassScheduleBase(BaseModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    grace_period_minutes: int = Field(default=settings.default_grace_period_minutes, ge=0, le=240, description="Minutes after start during which attendance may be marked")

    @model_validator(mode='after')
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time')
        return self

class ClassScheduleCreate(ClassScheduleBase):
    course_offering_id: UUID

class ClassScheduleUpdate(ClassScheduleBase):
    pass

class ClassSchedule(BaseModel):
    id: UUID
    tenant_id: UUID
    course_offering_id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    grace_period_minutes: int
    archived: bool

    class Config:
        from_attributes = True

class SessionStatusOut(BaseModel):
    state: str
    reason: str
    message: str
    class_schedule_id: Optional[UUID] = None
    course_offering_id: Optional[UUID] = None
    session_date: Optional[date] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    seconds_remaining: Optional[int] = None
    seconds_until_start: Optional[int] = None

    @classmethod
    def from_status(cls, status) -> "SessionStatusOut":
        return cls(
            state=status.state.value,
            reason=status.reason.value,
            message=status.message,
            class_schedule_id=status.slot.schedule_id if status.slot else None,
            course_offering_id=status.slot.course_offering_id if status.slot else None,
            session_date=status.session_date,
            window_start=status.window_start,
            window_end=status.window_end,
            seconds_remaining=status.seconds_remaining,
            seconds_until_start=status.seconds_until_start,
        )
