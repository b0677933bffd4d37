import pytest

from attendance_engine.core.exceptions import DuplicateEnrollment, ReferentialConflict, ValidationException
from attendance_engine.models import AttendanceStatus, CourseOffering, EnrollmentSource, StudentEnrollment
from attendance_engine.schemas.attendance_schemas import StudentStatus
from attendance_engine.schemas.enrollment_schemas import EnrollmentCreate
from attendance_engine.services.enrollment_service import EnrollmentService


async def test_reconcile_is_idempotent(school, session_factory, institute):
    await school.student(institute, "2023-CS-001")
    await school.student(institute, "2023-CS-002")
    offering_id, created = await school.offering(institute)
    assert created == 2

    async with session_factory() as db:
        service = EnrollmentService(db, institute.ctx)
        offering = await service.load_related(CourseOffering, offering_id, "Course offering")
        assert await service.reconcile_offering(offering) == []
        await db.commit()
    assert await school.count(StudentEnrollment) == 2


async def test_student_created_later_joins_existing_offerings(school, session_factory, institute):
    maths = await school.subject(institute, "MATH-201")
    first, _ = await school.offering(institute)
    second, _ = await school.offering(institute, subject_id=maths)

    student_id = await school.student(institute, "2023-CS-001")

    async with session_factory() as db:
        enrollments = await EnrollmentService(db, institute.ctx).list_for_student(student_id)
    assert {e.course_offering_id for e in enrollments} == {first, second}
    assert all(e.enrollment_source == EnrollmentSource.AUTO for e in enrollments)


async def test_student_without_section_is_not_auto_enrolled(school, institute):
    await school.offering(institute)
    await school.student(institute, "2023-CS-001", cohort_id=None, section_id=None)
    assert await school.count(StudentEnrollment) == 0


async def test_implied_students_match_cohort_and_section(school, session_factory, institute):
    other_section = await school.section(institute, "CS-B")
    mine = await school.student(institute, "2023-CS-001")
    await school.student(institute, "2023-CS-002", section_id=other_section)

    async with session_factory() as db:
        implied = await EnrollmentService(db, institute.ctx).implied_student_ids(institute.cohort_id, institute.section_id)
    assert implied == [mine]


async def test_repeater_is_enrolled_manually(school, session_factory, institute):
    other_section = await school.section(institute, "CS-B")
    repeater = await school.student(institute, "2022-CS-077", section_id=other_section)
    offering_id, _ = await school.offering(institute)

    async with session_factory() as db:
        enrollment = await EnrollmentService(db, institute.ctx).enroll_student(
            EnrollmentCreate(student_id=repeater, course_offering_id=offering_id)
        )
    assert enrollment.enrollment_source == EnrollmentSource.MANUAL

    async with session_factory() as db:
        with pytest.raises(DuplicateEnrollment):
            await EnrollmentService(db, institute.ctx).enroll_student(
                EnrollmentCreate(student_id=repeater, course_offering_id=offering_id)
            )
    assert await school.count(StudentEnrollment, student_id=repeater) == 1


async def test_only_students_can_be_enrolled(school, session_factory, institute):
    offering_id, _ = await school.offering(institute)
    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await EnrollmentService(db, institute.ctx).enroll_student(
                EnrollmentCreate(student_id=institute.teacher_id, course_offering_id=offering_id)
            )


async def test_enrollments_are_listed_by_roll_number(school, session_factory, institute):
    students = {}
    for roll in ("2023-CS-003", "2023-CS-001", "2023-CS-002"):
        students[roll] = await school.student(institute, roll)
    offering_id, _ = await school.offering(institute)

    async with session_factory() as db:
        enrollments = await EnrollmentService(db, institute.ctx).list_for_offering(offering_id)
    assert [e.student_id for e in enrollments] == [students[r] for r in sorted(students)]


async def test_unenroll_without_history(school, session_factory, institute):
    await school.student(institute, "2023-CS-001")
    offering_id, _ = await school.offering(institute)
    [enrollment_id] = await school.enrollment_ids(institute, offering_id)

    async with session_factory() as db:
        await EnrollmentService(db, institute.ctx).unenroll(enrollment_id)
    assert await school.count(StudentEnrollment) == 0


async def test_unenroll_blocked_by_attendance_history(school, session_factory, institute, class_with_students):
    _, schedule_id, enrollment_ids = class_with_students
    await school.submit(institute, schedule_id, [
        StudentStatus(enrollment_id=e, status=AttendanceStatus.PRESENT) for e in enrollment_ids
    ])

    async with session_factory() as db:
        with pytest.raises(ReferentialConflict):
            await EnrollmentService(db, institute.ctx).unenroll(enrollment_ids[0])
    assert await school.count(StudentEnrollment) == 3
