# attendance_engine/services/course_offering_service.py
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DuplicateCatalogEntry, ReferentialConflict, ValidationException
from ..core.tenant_context import TenantContext
from ..models.shared.user import Role, User
from ..models.tenant_specific.attendance import AttendanceRecord
from ..models.tenant_specific.catalog import Cohort, Section, Subject
from ..models.tenant_specific.class_schedule import ClassSchedule
from ..models.tenant_specific.course_offering import CourseOffering
from ..models.tenant_specific.enrollment import StudentEnrollment
from ..schemas.course_offering_schemas import CourseOfferingCreate
from .base_service import violates_constraint
from .enrollment_service import EnrollmentService
from .tenant_scoped_service import TenantScopedService

logger = logging.getLogger(__name__)


class CourseOfferingService(TenantScopedService[CourseOffering]):
    resource_name = "Course offering"

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        super().__init__(CourseOffering, db, ctx)

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        if violates_constraint(error, CourseOffering, "uq_offering_subject_cohort_section"):
            return DuplicateCatalogEntry(
                "Course offering",
                "A teacher is already assigned to this subject for this cohort and section.",
            )
        logger.warning("Course offering change rejected by the database: %s", error.orig)
        return ReferentialConflict("The course offering is referenced by other records and was not changed.")

    async def find_existing(self, subject_id: UUID, cohort_id: UUID, section_id: UUID) -> Optional[CourseOffering]:
        stmt = self.scoped().where(
            CourseOffering.subject_id == subject_id,
            CourseOffering.cohort_id == cohort_id,
            CourseOffering.section_id == section_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_offering(self, obj_in: CourseOfferingCreate) -> Tuple[CourseOffering, int]:
        """Assign a teacher to a subject for a cohort + section.

        Every student currently in that cohort + section is enrolled in the
        same transaction. Returns the offering and the number of enrollments
        created for it.
        """
        teacher = await self.load_related(User, obj_in.teacher_id, "Teacher")
        if Role.TEACHER not in teacher.role_set:
            raise ValidationException("Selected user is not a teacher", field="teacher_id")
        subject = await self.load_related(Subject, obj_in.subject_id, "Subject")
        cohort = await self.load_related(Cohort, obj_in.cohort_id, "Cohort")
        section = await self.load_related(Section, obj_in.section_id, "Section")

        if await self.find_existing(subject.id, cohort.id, section.id):
            raise DuplicateCatalogEntry(
                "Course offering",
                f"Subject '{subject.code}' already has a teacher for {cohort.name} / {section.name}.",
            )

        try:
            offering = await self.add({
                "teacher_id": teacher.id,
                "subject_id": subject.id,
                "cohort_id": cohort.id,
                "section_id": section.id,
            })
            enrollments = await EnrollmentService(self.db, self.ctx).reconcile_offering(offering)
        except IntegrityError as e:
            await self.db.rollback()
            raise self.translate_integrity_error(e)
        await self.commit()

        logger.info(
            "Created course offering %s (%s for %s/%s); auto-enrolled %d student(s)",
            offering.id, subject.code, cohort.name, section.name, len(enrollments),
        )
        return offering, len(enrollments)

    async def list_offerings(self, teacher_id: Optional[UUID] = None) -> List[CourseOffering]:
        stmt = self.scoped()
        if teacher_id is not None:
            stmt = stmt.where(CourseOffering.teacher_id == teacher_id)
        stmt = stmt.order_by(CourseOffering.created_at)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _count(self, model, offering_id: UUID, include_archived: bool = True) -> int:
        stmt = self.scoped(select(func.count()).select_from(model), model).where(model.course_offering_id == offering_id)
        if not include_archived:
            stmt = stmt.where(model.is_deleted == False)
        return (await self.db.execute(stmt)).scalar() or 0

    async def delete_offering(self, offering_id: UUID) -> None:
        """Delete an offering and its enrollments unless history depends on it."""
        offering = await self.get_or_404(offering_id)

        records = await self._count(AttendanceRecord, offering.id)
        schedules = await self._count(ClassSchedule, offering.id)
        if records or schedules:
            blockers = []
            if records:
                blockers.append(f"{records} attendance record(s)")
            if schedules:
                blockers.append(f"{schedules} class schedule(s)")
            raise ReferentialConflict(
                "Cannot delete this course offering because it is referenced by " + ", ".join(blockers) + "."
            )

        await self.db.execute(
            delete(StudentEnrollment).where(
                StudentEnrollment.tenant_id == self.tenant_id,
                StudentEnrollment.course_offering_id == offering.id,
            )
        )
        await self.db.delete(offering)
        await self.commit()
        logger.info("Deleted course offering %s for tenant %s", offering_id, self.tenant_id)
