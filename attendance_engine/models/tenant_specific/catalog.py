# attendance_engine/models/tenant_specific/catalog.py
"""Catalog dimensions: cohorts (batches), sections and subjects."""
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import validates
from ..base import Base


def normalize_key(value: str) -> str:
    return value.strip().lower()


class Cohort(Base):
    """Academic batch / intake year, e.g. "2023" or "Fall-2024"."""
    __tablename__ = "cohorts"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    name_key = Column(String(100), nullable=False)

    @validates('name')
    def validate_name(self, key, value):
        if not value or not value.strip():
            raise ValueError("Cohort name cannot be empty")
        self.name_key = normalize_key(value)
        return value.strip()

    __table_args__ = (
        UniqueConstraint('tenant_id', 'name_key', name='uq_cohort_tenant_name'),
    )


class Section(Base):
    __tablename__ = "sections"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    name_key = Column(String(100), nullable=False)

    @validates('name')
    def validate_name(self, key, value):
        if not value or not value.strip():
            raise ValueError("Section name cannot be empty")
        self.name_key = normalize_key(value)
        return value.strip()

    __table_args__ = (
        UniqueConstraint('tenant_id', 'name_key', name='uq_section_tenant_name'),
    )


class Subject(Base):
    __tablename__ = "subjects"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    code = Column(String(50), nullable=False)  # e.g. "CS-101"
    code_key = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)

    @validates('code')
    def validate_code(self, key, value):
        if not value or not value.strip():
            raise ValueError("Subject code cannot be empty")
        self.code_key = normalize_key(value)
        return value.strip()

    __table_args__ = (
        UniqueConstraint('tenant_id', 'code_key', name='uq_subject_tenant_code'),
    )
