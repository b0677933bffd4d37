# attendance_engine/services/schedule_service.py
"""Weekly class schedules and the live attendance status derived from them."""
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Set
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ScheduleOverlap, ValidationException
from ..core.tenant_context import TenantContext
from ..models.shared.tenant import Tenant
from ..models.tenant_specific.attendance import AttendanceSession
from ..models.tenant_specific.class_schedule import ClassSchedule, DayOfWeek
from ..models.tenant_specific.course_offering import CourseOffering
from ..schemas.schedule_schemas import ClassScheduleCreate, ClassScheduleUpdate
from ..utils.time_lock import ScheduleSlot, SessionStatus, evaluate_day, find_overlap
from ..utils.timezones import Clock, local_now, resolve_zone, utc_clock
from .tenant_scoped_service import TenantScopedService

logger = logging.getLogger(__name__)


class ScheduleService(TenantScopedService[ClassSchedule]):
    resource_name = "Class schedule"

    def __init__(self, db: AsyncSession, ctx: TenantContext, clock: Clock = utc_clock):
        super().__init__(ClassSchedule, db, ctx)
        self.clock = clock

    # CLOCK

    async def local_now(self) -> datetime:
        """Current institute-local wall-clock time."""
        stmt = select(Tenant.time_zone_id).where(Tenant.id == self.tenant_id)
        time_zone_id = (await self.db.execute(stmt)).scalar_one_or_none()
        return local_now(resolve_zone(time_zone_id), self.clock)

    # VALIDATION

    def _validate_times(self, start_time: time, end_time: time, grace_period_minutes: int) -> None:
        if end_time <= start_time:
            raise ValidationException("End time must be after start time", field="end_time")
        if grace_period_minutes is None or grace_period_minutes < 0:
            raise ValidationException("Grace period cannot be negative", field="grace_period_minutes")

    async def _ensure_no_overlap(
        self,
        course_offering_id: UUID,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        stmt = self.scoped().where(
            ClassSchedule.course_offering_id == course_offering_id,
            ClassSchedule.day_of_week == day_of_week,
            ClassSchedule.is_deleted == False,
        )
        if exclude_id is not None:
            stmt = stmt.where(ClassSchedule.id != exclude_id)
        siblings = (await self.db.execute(stmt)).scalars().all()

        clash = find_overlap(start_time, end_time, siblings)
        if clash is not None:
            raise ScheduleOverlap(
                f"This course offering already has a {day_of_week.value} schedule from "
                f"{clash.start_time:%H:%M} to {clash.end_time:%H:%M} that overlaps with "
                f"{start_time:%H:%M}-{end_time:%H:%M}"
            )

    # WRITES

    async def create_schedule(self, obj_in: ClassScheduleCreate) -> ClassSchedule:
        self._validate_times(obj_in.start_time, obj_in.end_time, obj_in.grace_period_minutes)
        offering = await self.load_related(CourseOffering, obj_in.course_offering_id, "Course offering")
        await self._ensure_no_overlap(offering.id, obj_in.day_of_week, obj_in.start_time, obj_in.end_time)

        schedule = await self.create({
            "course_offering_id": offering.id,
            "day_of_week": obj_in.day_of_week,
            "start_time": obj_in.start_time,
            "end_time": obj_in.end_time,
            "grace_period_minutes": obj_in.grace_period_minutes,
        })
        logger.info(
            "Created schedule %s for offering %s: %s %s-%s",
            schedule.id, offering.id, schedule.day_of_week.value, schedule.start_time, schedule.end_time,
        )
        return schedule

    async def update_schedule(self, schedule_id: UUID, obj_in: ClassScheduleUpdate) -> ClassSchedule:
        schedule = await self.get_or_404(schedule_id)
        if schedule.archived:
            raise ValidationException("Archived schedules cannot be edited")
        self._validate_times(obj_in.start_time, obj_in.end_time, obj_in.grace_period_minutes)
        await self._ensure_no_overlap(
            schedule.course_offering_id, obj_in.day_of_week, obj_in.start_time, obj_in.end_time,
            exclude_id=schedule.id,
        )
        return await self.update(schedule.id, obj_in.model_dump())

    async def archive_schedule(self, schedule_id: UUID) -> ClassSchedule:
        """Retire a schedule while keeping it resolvable from attendance history."""
        schedule = await self.get_or_404(schedule_id)
        if schedule.archived:
            raise ValidationException("Schedule is already archived")
        schedule.is_deleted = True
        await self.commit()
        logger.info("Archived schedule %s", schedule_id)
        return schedule

    # READS

    async def list_schedules(self, course_offering_id: Optional[UUID] = None, include_archived: bool = False) -> List[ClassSchedule]:
        stmt = self.scoped()
        if course_offering_id is not None:
            await self.load_related(CourseOffering, course_offering_id, "Course offering")
            stmt = stmt.where(ClassSchedule.course_offering_id == course_offering_id)
        if not include_archived:
            stmt = stmt.where(ClassSchedule.is_deleted == False)
        stmt = stmt.order_by(ClassSchedule.day_of_week, ClassSchedule.start_time)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def marked_schedule_ids(self, schedule_ids: Iterable[UUID], session_date: date) -> Set[UUID]:
        """Schedules among ``schedule_ids`` whose session on ``session_date`` is marked."""
        schedule_ids = list(schedule_ids)
        if not schedule_ids:
            return set()
        stmt = self.scoped(select(AttendanceSession.class_schedule_id), AttendanceSession).where(
            AttendanceSession.class_schedule_id.in_(schedule_ids),
            AttendanceSession.session_date == session_date,
        )
        return set((await self.db.execute(stmt)).scalars().all())

    async def _status_for(self, schedules: List[ClassSchedule]) -> SessionStatus:
        now = await self.local_now()
        today = DayOfWeek.from_date(now)
        slots = [ScheduleSlot.from_schedule(s) for s in schedules if s.day_of_week is today]
        marked = await self.marked_schedule_ids((s.schedule_id for s in slots), now.date())
        return evaluate_day(slots, now, marked)

    async def get_current_status(self, course_offering_id: UUID) -> SessionStatus:
        """Active, upcoming or no session for one offering right now."""
        await self.load_related(CourseOffering, course_offering_id, "Course offering")
        schedules = await self.list_schedules(course_offering_id)
        return await self._status_for(schedules)

    async def get_teacher_status(self, teacher_id: UUID) -> SessionStatus:
        """Dashboard status across every offering a teacher teaches."""
        stmt = (
            self.scoped()
            .join(CourseOffering, CourseOffering.id == ClassSchedule.course_offering_id)
            .where(
                CourseOffering.teacher_id == teacher_id,
                CourseOffering.tenant_id == self.tenant_id,
                ClassSchedule.is_deleted == False,
            )
        )
        schedules = list((await self.db.execute(stmt)).scalars().all())
        return await self._status_for(schedules)

    async def find_active_schedule_for_teacher(self, teacher_id: UUID) -> Optional[ClassSchedule]:
        status = await self.get_teacher_status(teacher_id)
        if not status.is_active:
            return None
        return await self.get(status.slot.schedule_id)
