# attendance_engine/models/shared/tenant.py
"""Tenant (Institute) model definition."""
import re
from sqlalchemy import Column, String, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import validates
from ..base import Base

TENANT_CODE_PATTERN = re.compile(r'^[A-Z]{3}-\d{4}$')


class Tenant(Base):
    __tablename__ = "tenants"

    # Login-time identifier, e.g. "PUN-9021"; immutable once issued
    code = Column(String(20), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    admin_email = Column(String(256), nullable=False)

    # IANA (or Windows) zone id used to evaluate time-locked operations
    time_zone_id = Column(String(100), nullable=True)

    @validates('code')
    def validate_code(self, key, value):
        if not value or not TENANT_CODE_PATTERN.match(value):
            raise ValueError("Invalid tenant code format")
        if self.code is not None and self.code != value:
            raise ValueError("Tenant code cannot be changed")
        return value

    @validates('admin_email')
    def validate_email(self, key, value):
        if not value or not re.match(r'^[^@]+@[^@]+\.[^@]+$', value):
            raise ValueError("Invalid email address format")
        return value.strip().lower()

    __table_args__ = (
        UniqueConstraint('code', name='uq_tenant_code'),
        CheckConstraint("length(code) = 8", name='ck_tenant_code_length'),
    )
