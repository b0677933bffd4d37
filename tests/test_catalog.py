import uuid

import pytest

from attendance_engine.core.exceptions import (
    DuplicateCatalogEntry, NotFoundError, ReferentialConflict, ValidationException,
)
from attendance_engine.models import Cohort, Section
from attendance_engine.schemas.catalog_schemas import (
    CohortCreate, CohortUpdate, SectionCreate, SectionUpdate, SubjectCreate, SubjectUpdate,
)
from attendance_engine.schemas.user_schemas import StudentCreate, TeacherCreate
from attendance_engine.services.catalog_service import CohortService, SectionService, SubjectService
from attendance_engine.services.user_service import UserService


async def test_cohort_names_are_unique_ignoring_case_and_spaces(session_factory, institute):
    async with session_factory() as db:
        with pytest.raises(DuplicateCatalogEntry) as exc:
            await CohortService(db, institute.ctx).create_cohort(CohortCreate(name="  2023 "))
    assert exc.value.status_code == 409


async def test_section_names_are_stored_trimmed(session_factory, institute):
    async with session_factory() as db:
        section = await SectionService(db, institute.ctx).create_section(SectionCreate(name="  CS-B  "))
    assert section.name == "CS-B"
    assert section.name_key == "cs-b"


async def test_blank_name_is_a_validation_error(session_factory, institute):
    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await SectionService(db, institute.ctx).create_section(SectionCreate(name="   "))


async def test_subject_codes_are_unique_per_tenant(session_factory, institute):
    async with session_factory() as db:
        with pytest.raises(DuplicateCatalogEntry):
            await SubjectService(db, institute.ctx).create_subject(SubjectCreate(code="cs-101", name="Again"))


async def test_subject_update_checks_other_codes_only(school, session_factory, institute):
    other_id = await school.subject(institute, "MATH-201")

    async with session_factory() as db:
        updated = await SubjectService(db, institute.ctx).update_subject(
            institute.subject_id, SubjectUpdate(code="Cs-101", name="Intro to Programming")
        )
    assert updated.name == "Intro to Programming"

    async with session_factory() as db:
        with pytest.raises(DuplicateCatalogEntry):
            await SubjectService(db, institute.ctx).update_subject(other_id, SubjectUpdate(code="CS-101"))


async def test_cohort_rename(session_factory, institute):
    async with session_factory() as db:
        cohort = await CohortService(db, institute.ctx).update_cohort(institute.cohort_id, CohortUpdate(name="2023-Fall"))
    assert cohort.name_key == "2023-fall"


async def test_referenced_cohort_cannot_be_deleted(school, session_factory, institute):
    await school.student(institute, "2023-CS-101")
    await school.offering(institute)

    async with session_factory() as db:
        with pytest.raises(ReferentialConflict) as exc:
            await CohortService(db, institute.ctx).delete_entry(institute.cohort_id)
    assert "1 course offering(s)" in exc.value.message
    assert "1 student(s)" in exc.value.message


async def test_unreferenced_cohort_is_deleted(school, session_factory, institute):
    async with session_factory() as db:
        cohort = await CohortService(db, institute.ctx).create_cohort(CohortCreate(name="2030"))
        cohort_id = cohort.id
    async with session_factory() as db:
        await CohortService(db, institute.ctx).delete_entry(cohort_id)
    assert await school.count(Cohort, id=cohort_id) == 0
    assert await school.count(Section) == 1


async def test_roll_numbers_are_unique_per_tenant_ignoring_case(school, institute):
    await school.student(institute, "2023-CS-101")
    with pytest.raises(DuplicateCatalogEntry):
        await school.student(institute, "2023-cs-101")

    rival = await school.institute("Lahore Grammar")
    assert await school.student(rival, "2023-CS-101")


async def test_student_needs_cohort_and_section_together(session_factory, institute):
    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await UserService(db, institute.ctx).create_student(StudentCreate(
                full_name="Half Assigned",
                email="half@school.edu",
                roll_number="X-1",
                cohort_id=institute.cohort_id,
            ))


async def test_student_with_unknown_section_is_rejected(session_factory, institute):
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await UserService(db, institute.ctx).create_student(StudentCreate(
                full_name="Lost",
                email="lost@school.edu",
                roll_number="X-2",
                cohort_id=institute.cohort_id,
                section_id=uuid.uuid4(),
            ))


async def test_emails_are_unique(session_factory, institute):
    async with session_factory() as db:
        await UserService(db, institute.ctx).create_teacher(TeacherCreate(full_name="Sara", email="sara@school.edu"))
    async with session_factory() as db:
        with pytest.raises(DuplicateCatalogEntry):
            await UserService(db, institute.ctx).create_teacher(TeacherCreate(full_name="Sara B", email="SARA@school.edu"))


async def test_section_rename_checks_other_sections(school, session_factory, institute):
    await school.section(institute, "CS-B")
    async with session_factory() as db:
        renamed = await SectionService(db, institute.ctx).update_section(institute.section_id, SectionUpdate(name=" cs-a "))
    assert renamed.name == "cs-a"

    async with session_factory() as db:
        with pytest.raises(DuplicateCatalogEntry):
            await SectionService(db, institute.ctx).update_section(institute.section_id, SectionUpdate(name="CS-B"))
