# attendance_engine/models/shared/user.py
"""Identity records: users and their role memberships.

Users are not filtered by tenant at the store level because the sign-in lookup
must find them before a tenant is known; every other lookup scopes them
explicitly.
"""
import enum
from sqlalchemy import Column, String, ForeignKey, Enum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship, validates
from ..base import Base


class Role(enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(Base):
    __tablename__ = "users"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)

    full_name = Column(String(200), nullable=False)
    # Login identifier; unique across the deployment
    email = Column(String(256), nullable=False, unique=True, index=True)

    # Student-only fields
    roll_number = Column(String(50), nullable=True)
    roll_number_key = Column(String(50), nullable=True)
    cohort_id = Column(Uuid(as_uuid=True), ForeignKey("cohorts.id"), nullable=True, index=True)
    section_id = Column(Uuid(as_uuid=True), ForeignKey("sections.id"), nullable=True, index=True)

    roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan", lazy="selectin")

    @validates('email')
    def validate_email(self, key, value):
        if not value or '@' not in value:
            raise ValueError("Invalid email address format")
        return value.strip().lower()

    @validates('roll_number')
    def validate_roll_number(self, key, value):
        value = value.strip() if value else None
        self.roll_number_key = value.lower() if value else None
        return value

    @property
    def role_set(self) -> set:
        return {membership.role for membership in self.roles}

    __table_args__ = (
        # Roll numbers are unique per institute, case-insensitive
        UniqueConstraint('tenant_id', 'roll_number_key', name='uq_user_tenant_roll_number'),
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(Role), nullable=False)

    user = relationship("User", back_populates="roles")

    __table_args__ = (
        UniqueConstraint('user_id', 'role', name='uq_user_role'),
    )
