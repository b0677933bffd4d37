# attendance_engine/services/enrollment_service.py
"""Student enrollment and auto-enrollment propagation.

Cohort + section membership implies enrollment in every course offering of
that cohort + section. Two reconcilers keep that true from both directions:
when an offering is created and when a student is created. Both share the
same predicate, only create the rows that are missing, and only flush; the
triggering operation commits them together with its own writes.
"""
from typing import List, Optional, Set
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DuplicateEnrollment, ReferentialConflict, ValidationException
from ..core.tenant_context import TenantContext
from ..models.base import utcnow
from ..models.shared.user import Role, User, UserRole
from ..models.tenant_specific.attendance import AttendanceRecord
from ..models.tenant_specific.course_offering import CourseOffering
from ..models.tenant_specific.enrollment import EnrollmentSource, StudentEnrollment
from ..schemas.enrollment_schemas import EnrollmentCreate
from .base_service import violates_constraint
from .tenant_scoped_service import TenantScopedService

logger = logging.getLogger(__name__)


class EnrollmentService(TenantScopedService[StudentEnrollment]):
    resource_name = "Enrollment"

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        super().__init__(StudentEnrollment, db, ctx)

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        if violates_constraint(error, StudentEnrollment, "uq_enrollment_student_offering"):
            return DuplicateEnrollment()
        logger.warning("Enrollment change rejected by the database: %s", error.orig)
        return ReferentialConflict("The enrollment is referenced by other records and was not changed.")

    # PROPAGATION

    async def implied_student_ids(self, cohort_id: UUID, section_id: UUID) -> List[UUID]:
        """Students of this tenant whose cohort + section is the given pair."""
        stmt = (
            self.scoped(select(User.id), User)
            .join(UserRole, UserRole.user_id == User.id)
            .where(
                UserRole.role == Role.STUDENT,
                User.cohort_id == cohort_id,
                User.section_id == section_id,
            )
            .order_by(User.roll_number)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _enrolled_student_ids(self, course_offering_id: UUID) -> Set[UUID]:
        stmt = self.scoped(select(StudentEnrollment.student_id)).where(
            StudentEnrollment.course_offering_id == course_offering_id
        )
        return set((await self.db.execute(stmt)).scalars().all())

    async def reconcile_offering(self, offering: CourseOffering) -> List[StudentEnrollment]:
        """Enroll every implied student of a new offering who is not enrolled yet."""
        self.ensure_same_tenant(offering)
        implied = await self.implied_student_ids(offering.cohort_id, offering.section_id)
        existing = await self._enrolled_student_ids(offering.id)

        created = []
        for student_id in implied:
            # A teacher who also holds the student role never sits in their own class
            if student_id in existing or student_id == offering.teacher_id:
                continue
            created.append(StudentEnrollment(
                tenant_id=self.tenant_id,
                student_id=student_id,
                course_offering_id=offering.id,
                enrolled_at=utcnow(),
                enrollment_source=EnrollmentSource.AUTO,
            ))
        if created:
            self.db.add_all(created)
            await self.db.flush()

        logger.info("Offering %s: %d implied student(s), %d newly enrolled", offering.id, len(implied), len(created))
        return created

    async def reconcile_student(self, student: User) -> List[StudentEnrollment]:
        """Enroll a student in every offering of their cohort + section."""
        self.ensure_same_tenant(student)
        if student.cohort_id is None or student.section_id is None or Role.STUDENT not in student.role_set:
            return []

        stmt = self.scoped(select(CourseOffering), CourseOffering).where(
            CourseOffering.cohort_id == student.cohort_id,
            CourseOffering.section_id == student.section_id,
            CourseOffering.teacher_id != student.id,
        )
        offerings = (await self.db.execute(stmt)).scalars().all()

        enrolled_stmt = self.scoped(select(StudentEnrollment.course_offering_id)).where(
            StudentEnrollment.student_id == student.id
        )
        already = set((await self.db.execute(enrolled_stmt)).scalars().all())

        created = [
            StudentEnrollment(
                tenant_id=self.tenant_id,
                student_id=student.id,
                course_offering_id=offering.id,
                enrolled_at=utcnow(),
                enrollment_source=EnrollmentSource.AUTO,
            )
            for offering in offerings
            if offering.id not in already
        ]
        if created:
            self.db.add_all(created)
            await self.db.flush()
        return created

    # EXPLICIT ENROLLMENT

    async def get_by_student_and_offering(self, student_id: UUID, course_offering_id: UUID) -> Optional[StudentEnrollment]:
        stmt = self.scoped().where(
            StudentEnrollment.student_id == student_id,
            StudentEnrollment.course_offering_id == course_offering_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def enroll_student(self, obj_in: EnrollmentCreate) -> StudentEnrollment:
        """Enroll any student of the tenant in any offering of the tenant (repeaters)."""
        student = await self.load_related(User, obj_in.student_id, "Student")
        if Role.STUDENT not in student.role_set:
            raise ValidationException("Only users with the student role can be enrolled")
        offering = await self.load_related(CourseOffering, obj_in.course_offering_id, "Course offering")

        if await self.get_by_student_and_offering(student.id, offering.id):
            raise DuplicateEnrollment()

        enrollment = await self.create({
            "student_id": student.id,
            "course_offering_id": offering.id,
            "enrolled_at": utcnow(),
            "enrollment_source": EnrollmentSource.MANUAL,
        })
        logger.info("Manually enrolled student %s in offering %s", student.id, offering.id)
        return enrollment

    async def unenroll(self, enrollment_id: UUID) -> None:
        enrollment = await self.get_or_404(enrollment_id)
        stmt = self.scoped(select(func.count()).select_from(AttendanceRecord), AttendanceRecord).where(
            AttendanceRecord.enrollment_id == enrollment.id
        )
        referenced = (await self.db.execute(stmt)).scalar() or 0
        if referenced:
            raise ReferentialConflict(
                f"Cannot remove this enrollment because {referenced} attendance record(s) reference it."
            )
        await self.db.delete(enrollment)
        await self.commit()
        logger.info("Removed enrollment %s", enrollment_id)

    # READS

    async def list_for_offering(self, course_offering_id: UUID) -> List[StudentEnrollment]:
        """Current enrollments of an offering ordered by roll number."""
        await self.load_related(CourseOffering, course_offering_id, "Course offering")
        stmt = (
            self.scoped()
            .join(User, User.id == StudentEnrollment.student_id)
            .where(StudentEnrollment.course_offering_id == course_offering_id)
            .order_by(User.roll_number, User.full_name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_student(self, student_id: UUID) -> List[StudentEnrollment]:
        await self.load_related(User, student_id, "Student")
        stmt = self.scoped().where(StudentEnrollment.student_id == student_id).order_by(StudentEnrollment.enrolled_at)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
