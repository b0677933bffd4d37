# attendance_engine/services/user_service.py
"""Identity adapter: user lookup, role membership, creation and deletion.

Credentials live outside the engine; this service only keeps the profile
fields and role memberships the scheduling and enrollment rules depend on.
"""
from typing import Optional, Set
from uuid import UUID
import logging

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DuplicateCatalogEntry, ReferentialConflict, ValidationException
from ..core.tenant_context import BypassReason, TenantContext
from ..models.shared.user import Role, User, UserRole
from ..models.tenant_specific.attendance import AttendanceRecord
from ..models.tenant_specific.catalog import Cohort, Section
from ..models.tenant_specific.course_offering import CourseOffering
from ..models.tenant_specific.enrollment import StudentEnrollment
from ..schemas.user_schemas import StudentCreate, TeacherCreate
from .base_service import violates_constraint
from .tenant_scoped_service import TenantScopedService

logger = logging.getLogger(__name__)


def roles_of(user: User) -> Set[Role]:
    return user.role_set


def has_role(user: User, role: Role) -> bool:
    return role in user.role_set


class UserService(TenantScopedService[User]):
    resource_name = "User"

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        super().__init__(User, db, ctx)

    # LOOKUPS

    async def find_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.get(user_id)

    async def find_user_by_login_identifier(self, identifier: str) -> Optional[User]:
        """Pre-authentication lookup across all tenants by login identifier (email)."""
        self.ctx.require_bypass(BypassReason.LOGIN_LOOKUP)
        if not identifier or not identifier.strip():
            return None
        stmt = select(User).where(User.email == identifier.strip().lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def context_for_user(user: User) -> TenantContext:
        """Build the request context once a user has signed in."""
        return TenantContext.for_tenant(user.tenant_id, user.id)

    # CREATION

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        if violates_constraint(error, User, "uq_user_tenant_roll_number"):
            return DuplicateCatalogEntry("User", "This roll number is already in use in your institute.")
        if "email" in str(error.orig):
            return DuplicateCatalogEntry("User", "A user with this email already exists.")
        logger.warning("User change rejected by the database: %s", error.orig)
        return ReferentialConflict("The user is referenced by other records and was not changed.")

    async def add_user(self, full_name: str, email: str, roles: Set[Role], **fields) -> User:
        """Stage a user with ``roles`` in the current transaction.

        Emails are unique across the deployment; a clash rolls the whole
        transaction back.
        """
        try:
            return await self.add({
                "full_name": full_name,
                "email": email,
                "roles": [UserRole(role=role) for role in sorted(roles, key=lambda r: r.value)],
                **fields,
            })
        except IntegrityError as e:
            await self.db.rollback()
            raise self.translate_integrity_error(e)

    async def create_teacher(self, obj_in: TeacherCreate) -> User:
        user = await self.add_user(obj_in.full_name, obj_in.email, {Role.TEACHER})
        await self.commit()
        logger.info("Created teacher %s for tenant %s", user.id, self.tenant_id)
        return user

    async def create_student(self, obj_in: StudentCreate) -> User:
        """Create a student and auto-enroll them in their section's offerings."""
        from .enrollment_service import EnrollmentService

        if (obj_in.cohort_id is None) != (obj_in.section_id is None):
            raise ValidationException("Cohort and section must be assigned together")
        if obj_in.cohort_id is not None:
            await self.load_related(Cohort, obj_in.cohort_id, "Cohort")
            await self.load_related(Section, obj_in.section_id, "Section")

        roll_key = obj_in.roll_number.strip().lower()
        stmt = self.scoped(select(User.id)).where(User.roll_number_key == roll_key)
        if (await self.db.execute(stmt)).first() is not None:
            raise DuplicateCatalogEntry("User", f"Roll number '{obj_in.roll_number}' is already in use in your institute.")

        try:
            student = await self.add_user(
                obj_in.full_name,
                obj_in.email,
                {Role.STUDENT},
                roll_number=obj_in.roll_number,
                cohort_id=obj_in.cohort_id,
                section_id=obj_in.section_id,
            )
            enrollments = await EnrollmentService(self.db, self.ctx).reconcile_student(student)
        except IntegrityError as e:
            await self.db.rollback()
            raise self.translate_integrity_error(e)
        await self.commit()

        logger.info(
            "Created student %s for tenant %s; auto-enrolled in %d course offering(s)",
            student.id, self.tenant_id, len(enrollments),
        )
        return student

    # DELETION

    async def _get_with_role(self, user_id: UUID, role: Role) -> User:
        user = await self.get_or_404(user_id)
        if not has_role(user, role):
            raise ValidationException(f"User is not a {role.value}", field="user_id")
        return user

    async def _count(self, model, *criteria) -> int:
        stmt = self.scoped(select(func.count()).select_from(model), model).where(*criteria)
        return (await self.db.execute(stmt)).scalar() or 0

    async def delete_student(self, student_id: UUID) -> None:
        """Delete a student and their enrollments in one transaction.

        Refused while attendance records reference any of the enrollments or
        while the same user teaches a course offering.
        """
        student = await self._get_with_role(student_id, Role.STUDENT)
        enrollment_ids = self.scoped(select(StudentEnrollment.id), StudentEnrollment).where(
            StudentEnrollment.student_id == student.id
        )
        records = await self._count(AttendanceRecord, AttendanceRecord.enrollment_id.in_(enrollment_ids))
        if records:
            raise ReferentialConflict(
                f"Cannot delete this student because {records} attendance record(s) reference their enrollments."
            )
        offerings = await self._count(CourseOffering, CourseOffering.teacher_id == student.id)
        if offerings:
            raise ReferentialConflict(
                f"Cannot delete this student because they teach {offerings} course offering(s)."
            )

        await self.db.execute(
            delete(StudentEnrollment).where(
                StudentEnrollment.tenant_id == self.tenant_id,
                StudentEnrollment.student_id == student.id,
            )
        )
        await self.db.delete(student)
        await self.commit()
        logger.info("Deleted student %s and their enrollments for tenant %s", student_id, self.tenant_id)

    async def delete_teacher(self, teacher_id: UUID) -> None:
        """Delete a teacher who is not assigned to any course offering."""
        teacher = await self._get_with_role(teacher_id, Role.TEACHER)
        offerings = await self._count(CourseOffering, CourseOffering.teacher_id == teacher.id)
        if offerings:
            raise ReferentialConflict(
                f"Cannot delete this teacher because they are assigned to {offerings} course offering(s)."
            )
        enrollments = await self._count(StudentEnrollment, StudentEnrollment.student_id == teacher.id)
        if enrollments:
            raise ReferentialConflict(
                f"Cannot delete this teacher because they are enrolled in {enrollments} course offering(s) as a student."
            )

        await self.db.delete(teacher)
        await self.commit()
        logger.info("Deleted teacher %s for tenant %s", teacher_id, self.tenant_id)
