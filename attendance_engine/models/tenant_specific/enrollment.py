# attendance_engine/models/tenant_specific/enrollment.py
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from ..base import Base, utcnow


class EnrollmentSource:
    AUTO = "auto"      # implied by cohort + section membership
    MANUAL = "manual"  # explicit admin action, e.g. repeaters


class StudentEnrollment(Base):
    __tablename__ = "student_enrollments"

    # Foreign Keys
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    course_offering_id = Column(Uuid(as_uuid=True), ForeignKey("course_offerings.id"), nullable=False, index=True)

    # Enrollment Details
    enrolled_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    enrollment_source = Column(String(10), default=EnrollmentSource.AUTO, nullable=False)

    __table_args__ = (
        UniqueConstraint('student_id', 'course_offering_id', name='uq_enrollment_student_offering'),
    )

    # Relationships
    student = relationship("User", lazy="raise")
    course_offering = relationship("CourseOffering", lazy="raise")
