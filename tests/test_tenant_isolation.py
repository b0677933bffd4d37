import logging
import uuid

import pytest

from attendance_engine.core.exceptions import CrossTenantViolation, NotFoundError, ValidationException
from attendance_engine.models import AttendanceStatus, CourseOffering
from attendance_engine.schemas.attendance_schemas import StudentStatus
from attendance_engine.schemas.catalog_schemas import CohortCreate
from attendance_engine.schemas.course_offering_schemas import CourseOfferingCreate
from attendance_engine.schemas.enrollment_schemas import EnrollmentCreate
from attendance_engine.services.catalog_service import CohortService
from attendance_engine.services.course_offering_service import CourseOfferingService
from attendance_engine.services.enrollment_service import EnrollmentService
from attendance_engine.services.schedule_service import ScheduleService


@pytest.fixture
async def rival(school):
    return await school.institute("Lahore Grammar")


async def test_lists_only_show_own_tenant_rows(session_factory, institute, rival):
    async with session_factory() as db:
        cohorts = await CohortService(db, institute.ctx).list_entries()
    assert [c.id for c in cohorts] == [institute.cohort_id]


async def test_same_catalog_names_are_allowed_across_tenants(session_factory, institute, rival):
    # Both institutes were seeded with cohort "2023", section "CS-A" and subject "CS-101"
    assert institute.cohort_id != rival.cohort_id
    async with session_factory() as db:
        cohort = await CohortService(db, rival.ctx).create_cohort(CohortCreate(name="2024"))
    async with session_factory() as db:
        created = await CohortService(db, institute.ctx).create_cohort(CohortCreate(name="2024"))
    assert created.id != cohort.id


async def test_loading_foreign_row_is_violation_and_audited(school, session_factory, institute, rival, caplog):
    offering_id, _ = await school.offering(rival)
    caplog.set_level(logging.WARNING, logger="attendance_engine.audit")

    async with session_factory() as db:
        with pytest.raises(CrossTenantViolation) as exc:
            await CourseOfferingService(db, institute.ctx).get_or_404(offering_id)

    assert exc.value.resource_id == str(offering_id)
    assert "Cross-tenant access blocked" in caplog.text
    assert str(institute.tenant_id) in caplog.text


async def test_absent_row_is_plain_not_found(session_factory, institute, caplog):
    caplog.set_level(logging.WARNING, logger="attendance_engine.audit")
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await CourseOfferingService(db, institute.ctx).get_or_404(uuid.uuid4())
    assert "Cross-tenant" not in caplog.text


async def test_offering_cannot_reference_foreign_subject(school, session_factory, institute, rival):
    async with session_factory() as db:
        with pytest.raises(CrossTenantViolation):
            await CourseOfferingService(db, institute.ctx).create_offering(CourseOfferingCreate(
                teacher_id=institute.teacher_id,
                subject_id=rival.subject_id,
                cohort_id=institute.cohort_id,
                section_id=institute.section_id,
            ))
    assert await school.count(CourseOffering) == 0


async def test_cannot_enroll_foreign_student(school, session_factory, institute, rival):
    foreign_student = await school.student(rival, "LGS-001")
    offering_id, _ = await school.offering(institute)
    async with session_factory() as db:
        with pytest.raises(CrossTenantViolation):
            await EnrollmentService(db, institute.ctx).enroll_student(
                EnrollmentCreate(student_id=foreign_student, course_offering_id=offering_id)
            )


async def test_cannot_schedule_or_mark_foreign_offering(school, session_factory, institute, rival):
    await school.student(rival, "LGS-001")
    offering_id, _ = await school.offering(rival)
    schedule_id = await school.schedule(rival, offering_id)
    enrollment_ids = await school.enrollment_ids(rival, offering_id)

    async with session_factory() as db:
        with pytest.raises(CrossTenantViolation):
            await ScheduleService(db, institute.ctx).list_schedules(course_offering_id=offering_id)

    with pytest.raises(CrossTenantViolation):
        await school.submit(
            institute,
            schedule_id,
            [StudentStatus(enrollment_id=enrollment_ids[0], status=AttendanceStatus.PRESENT)],
            teacher_id=rival.teacher_id,
        )


async def test_tenant_id_cannot_be_reassigned(session_factory, institute, rival):
    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await CohortService(db, institute.ctx).update(institute.cohort_id, {"tenant_id": rival.tenant_id})
