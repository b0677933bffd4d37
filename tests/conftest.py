import os

# Keep the application engine off PostgreSQL when modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import random
import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional, Tuple
from uuid import UUID

import pytest
from sqlalchemy import select
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import create_async_engine

from attendance_engine.core.database import build_session_factory
from attendance_engine.core.tenant_context import TenantContext
from attendance_engine.models import Base, DayOfWeek
from attendance_engine.schemas.attendance_schemas import StudentStatus
from attendance_engine.schemas.catalog_schemas import CohortCreate, SectionCreate, SubjectCreate
from attendance_engine.schemas.course_offering_schemas import CourseOfferingCreate
from attendance_engine.schemas.schedule_schemas import ClassScheduleCreate
from attendance_engine.schemas.tenant_schemas import TenantRegistration
from attendance_engine.schemas.user_schemas import StudentCreate, TeacherCreate
from attendance_engine.services.attendance_service import AttendanceService
from attendance_engine.services.catalog_service import CohortService, SectionService, SubjectService
from attendance_engine.services.course_offering_service import CourseOfferingService
from attendance_engine.services.enrollment_service import EnrollmentService
from attendance_engine.services.schedule_service import ScheduleService
from attendance_engine.services.tenant_service import TenantService
from attendance_engine.services.user_service import UserService

# 2024-01-01 is a Monday
MONDAY = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FrozenClock:
    """Settable stand-in for the UTC wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, second: int = 0, days: int = 0) -> None:
        self.now = MONDAY + timedelta(days=days, hours=hour, minutes=minute, seconds=second)


@dataclass
class Institute:
    tenant_id: UUID
    admin_id: UUID
    teacher_id: UUID
    cohort_id: UUID
    section_id: UUID
    subject_id: UUID

    @property
    def ctx(self) -> TenantContext:
        return TenantContext.for_tenant(self.tenant_id, self.teacher_id)

    @property
    def admin_ctx(self) -> TenantContext:
        return TenantContext.for_tenant(self.tenant_id, self.admin_id)


def unique_email(name: str) -> str:
    slug = name.lower().replace(" ", ".")
    return f"{slug}.{uuid.uuid4().hex[:8]}@school.edu"


class SchoolBuilder:
    """Seeds institutes through the services, one session per operation."""

    def __init__(self, session_factory, clock: FrozenClock):
        self.session_factory = session_factory
        self.clock = clock

    def session(self):
        return self.session_factory()

    async def institute(self, name: str = "Punjab College", time_zone_id: Optional[str] = "UTC") -> Institute:
        async with self.session() as db:
            tenant, admin = await TenantService(db, rng=random.Random(name)).register_tenant(TenantRegistration(
                institute_name=name,
                admin_full_name=f"{name} Admin",
                admin_email=unique_email("admin"),
                time_zone_id=time_zone_id,
            ))
            tenant_id, admin_id = tenant.id, admin.id
        ctx = TenantContext.for_tenant(tenant_id, admin_id)
        async with self.session() as db:
            cohort = await CohortService(db, ctx).create_cohort(CohortCreate(name="2023"))
            section = await SectionService(db, ctx).create_section(SectionCreate(name="CS-A"))
            subject = await SubjectService(db, ctx).create_subject(SubjectCreate(code="CS-101", name="Programming"))
            cohort_id, section_id, subject_id = cohort.id, section.id, subject.id
        teacher_id = await self.teacher(tenant_id, "Ayesha Khan")
        return Institute(tenant_id, admin_id, teacher_id, cohort_id, section_id, subject_id)

    async def teacher(self, tenant_id: UUID, full_name: str) -> UUID:
        async with self.session() as db:
            teacher = await UserService(db, TenantContext.for_tenant(tenant_id)).create_teacher(
                TeacherCreate(full_name=full_name, email=unique_email(full_name))
            )
            return teacher.id

    async def student(self, inst: Institute, roll_number: str, cohort_id=..., section_id=...) -> UUID:
        async with self.session() as db:
            student = await UserService(db, inst.ctx).create_student(StudentCreate(
                full_name=f"Student {roll_number}",
                email=unique_email(roll_number),
                roll_number=roll_number,
                cohort_id=inst.cohort_id if cohort_id is ... else cohort_id,
                section_id=inst.section_id if section_id is ... else section_id,
            ))
            return student.id

    async def section(self, inst: Institute, name: str) -> UUID:
        async with self.session() as db:
            section = await SectionService(db, inst.ctx).create_section(SectionCreate(name=name))
            return section.id

    async def subject(self, inst: Institute, code: str) -> UUID:
        async with self.session() as db:
            subject = await SubjectService(db, inst.ctx).create_subject(SubjectCreate(code=code, name=f"Subject {code}"))
            return subject.id

    async def offering(self, inst: Institute, subject_id=None, teacher_id=None, section_id=None) -> Tuple[UUID, int]:
        async with self.session() as db:
            offering, created = await CourseOfferingService(db, inst.ctx).create_offering(CourseOfferingCreate(
                teacher_id=teacher_id or inst.teacher_id,
                subject_id=subject_id or inst.subject_id,
                cohort_id=inst.cohort_id,
                section_id=section_id or inst.section_id,
            ))
            return offering.id, created

    async def schedule(
        self,
        inst: Institute,
        offering_id: UUID,
        day: DayOfWeek = DayOfWeek.MONDAY,
        start: time = time(9, 0),
        end: time = time(10, 0),
        grace: int = 15,
    ) -> UUID:
        async with self.session() as db:
            schedule = await ScheduleService(db, inst.ctx, self.clock).create_schedule(ClassScheduleCreate(
                course_offering_id=offering_id,
                day_of_week=day,
                start_time=start,
                end_time=end,
                grace_period_minutes=grace,
            ))
            return schedule.id

    async def class_with_students(self, inst: Institute) -> Tuple[UUID, UUID, List[UUID]]:
        for roll in ("2023-CS-101", "2023-CS-102", "2023-CS-103"):
            await self.student(inst, roll)
        offering_id, _ = await self.offering(inst)
        schedule_id = await self.schedule(inst, offering_id)
        return offering_id, schedule_id, await self.enrollment_ids(inst, offering_id)

    async def enrollment_ids(self, inst: Institute, offering_id: UUID) -> List[UUID]:
        """Enrollment ids of an offering in roll-number order."""
        async with self.session() as db:
            enrollments = await EnrollmentService(db, inst.ctx).list_for_offering(offering_id)
            return [e.id for e in enrollments]

    async def submit(self, inst: Institute, schedule_id: UUID, statuses: List[StudentStatus], teacher_id=None, **kwargs):
        async with self.session() as db:
            return await AttendanceService(db, inst.ctx, self.clock).submit_attendance(
                schedule_id, teacher_id or inst.teacher_id, statuses, **kwargs
            )

    async def count(self, model, **criteria) -> int:
        async with self.session() as db:
            stmt = select(model)
            for key, value in criteria.items():
                stmt = stmt.where(getattr(model, key) == value)
            return len((await db.execute(stmt)).scalars().all())


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def clock():
    clock = FrozenClock(MONDAY)
    clock.set(9, 10)
    return clock


@pytest.fixture
def school(session_factory, clock):
    return SchoolBuilder(session_factory, clock)


@pytest.fixture
async def institute(school):
    return await school.institute()


@pytest.fixture
async def class_with_students(school, institute):
    """Three students in 2023 / CS-A, an offering with a Monday 09:00-10:00 class."""
    return await school.class_with_students(institute)


@pytest.fixture
async def file_school(tmp_path, clock):
    """A builder over an on-disk SQLite database, where sessions use separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'attendance.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SchoolBuilder(build_session_factory(engine), clock)
    await engine.dispose()
