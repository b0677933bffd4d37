# attendance_engine/models/tenant_specific/course_offering.py
# A teacher assigned to teach one subject to one cohort + section
from sqlalchemy import Column, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from ..base import Base

class CourseOffering(Base):
    __tablename__ = "course_offerings"

    # Foreign Keys
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    subject_id = Column(Uuid(as_uuid=True), ForeignKey("subjects.id"), nullable=False, index=True)
    cohort_id = Column(Uuid(as_uuid=True), ForeignKey("cohorts.id"), nullable=False, index=True)
    section_id = Column(Uuid(as_uuid=True), ForeignKey("sections.id"), nullable=False, index=True)

    # One teacher per subject for a cohort + section
    __table_args__ = (
        UniqueConstraint('tenant_id', 'subject_id', 'cohort_id', 'section_id', name='uq_offering_subject_cohort_section'),
    )

    # Relationships
    teacher = relationship("User", lazy="raise")
    subject = relationship("Subject", lazy="raise")
    cohort = relationship("Cohort", lazy="raise")
    section = relationship("Section", lazy="raise")
