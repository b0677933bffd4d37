# attendance_engine/models/tenant_specific/attendance.py
from sqlalchemy import Column, DateTime, ForeignKey, Enum, Date, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import relationship
from ..base import Base, utcnow
import enum


class AttendanceStatus(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"


class AttendanceSession(Base):
    """One marked occurrence of a class schedule.

    The unique constraint on (class_schedule_id, session_date) is what makes
    "one batch of records per session" hold against concurrent writers.
    """
    __tablename__ = "attendance_sessions"

    # Foreign Keys
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    class_schedule_id = Column(Uuid(as_uuid=True), ForeignKey("class_schedules.id"), nullable=False, index=True)
    course_offering_id = Column(Uuid(as_uuid=True), ForeignKey("course_offerings.id"), nullable=False, index=True)
    marked_by_teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    session_date = Column(Date, nullable=False)
    marked_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('class_schedule_id', 'session_date', name='uq_attendance_session_schedule_date'),
    )


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    # Foreign Keys
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    attendance_session_id = Column(Uuid(as_uuid=True), ForeignKey("attendance_sessions.id"), nullable=False, index=True)
    enrollment_id = Column(Uuid(as_uuid=True), ForeignKey("student_enrollments.id"), nullable=False, index=True)
    # Denormalized for reporting queries
    course_offering_id = Column(Uuid(as_uuid=True), ForeignKey("course_offerings.id"), nullable=False, index=True)
    class_schedule_id = Column(Uuid(as_uuid=True), ForeignKey("class_schedules.id"), nullable=False, index=True)
    marked_by_teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # Attendance Information
    attendance_date = Column(Date, nullable=False, index=True)
    status = Column(Enum(AttendanceStatus), nullable=False)
    marked_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('class_schedule_id', 'attendance_date', 'enrollment_id', name='uq_attendance_record_session_enrollment'),
        Index('idx_attendance_offering_date', 'course_offering_id', 'attendance_date'),
    )

    # Relationships
    session = relationship("AttendanceSession", lazy="raise")
    enrollment = relationship("StudentEnrollment", lazy="raise")
