# attendance_engine/models/tenant_specific/class_schedule.py
from sqlalchemy import Column, Integer, ForeignKey, Time, Enum, CheckConstraint, Index, Uuid
from sqlalchemy.orm import relationship
from ..base import Base
import enum


class DayOfWeek(enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value) -> "DayOfWeek":
        """Map a date/datetime to its weekday (Monday first, as ``date.weekday``)."""
        return list(cls)[value.weekday()]


class ClassSchedule(Base):
    """Recurring weekly meeting of a course offering.

    Schedules are never hard-deleted; ``is_deleted`` marks them archived so
    attendance history keeps a resolvable schedule.
    """
    __tablename__ = "class_schedules"

    # Foreign Keys
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    course_offering_id = Column(Uuid(as_uuid=True), ForeignKey("course_offerings.id"), nullable=False, index=True)

    # Timing
    day_of_week = Column(Enum(DayOfWeek), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    grace_period_minutes = Column(Integer, default=15, nullable=False)

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='ck_schedule_end_after_start'),
        CheckConstraint('grace_period_minutes >= 0', name='ck_schedule_grace_non_negative'),
        Index('idx_schedule_offering_day', 'course_offering_id', 'day_of_week'),
    )

    # Relationships
    course_offering = relationship("CourseOffering", lazy="raise")

    @property
    def archived(self) -> bool:
        return bool(self.is_deleted)
