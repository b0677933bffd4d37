# attendance_engine/services/attendance_service.py
"""Attendance ledger: time-locked batch submission and read-side summaries.

A batch covers exactly one session, i.e. one class schedule on one
institute-local date. The ``attendance_sessions`` row inserted first is the
unique marker for that session; a concurrent second writer fails on it and is
reported as ``AlreadyMarked`` with nothing persisted.
"""
from collections import Counter, defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    AlreadyMarked, IncompleteSubmission, ReferentialConflict, Unauthorized, WindowExpired,
)
from ..core.tenant_context import TenantContext
from ..models.base import utcnow
from ..models.shared.user import User
from ..models.tenant_specific.attendance import AttendanceRecord, AttendanceSession, AttendanceStatus
from ..models.tenant_specific.class_schedule import ClassSchedule
from ..models.tenant_specific.course_offering import CourseOffering
from ..models.tenant_specific.enrollment import StudentEnrollment
from ..schemas.attendance_schemas import (
    AttendanceCounts,
    AttendanceHistoryEntry,
    AttendanceSubmissionResult,
    EnrollmentAttendanceSummary,
    OfferingAttendanceSummary,
    StudentAttendanceCounts,
    StudentStatus,
)
from ..utils.time_lock import ScheduleSlot, assert_submission_allowed
from ..utils.timezones import Clock, utc_clock
from .base_service import violates_constraint
from .schedule_service import ScheduleService
from .tenant_scoped_service import TenantScopedService

logger = logging.getLogger(__name__)


def counts_from_tally(tally: Dict[AttendanceStatus, int]) -> AttendanceCounts:
    return AttendanceCounts(
        present=tally.get(AttendanceStatus.PRESENT, 0),
        absent=tally.get(AttendanceStatus.ABSENT, 0),
        leave=tally.get(AttendanceStatus.LEAVE, 0),
    )


def count_statuses(statuses: Iterable[AttendanceStatus]) -> AttendanceCounts:
    return counts_from_tally(Counter(statuses))


class AttendanceService(TenantScopedService[AttendanceRecord]):
    resource_name = "Attendance record"

    def __init__(self, db: AsyncSession, ctx: TenantContext, clock: Clock = utc_clock):
        super().__init__(AttendanceRecord, db, ctx)
        self.clock = clock
        self.schedules = ScheduleService(db, ctx, clock)

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        if (
            violates_constraint(error, AttendanceSession, "uq_attendance_session_schedule_date")
            or violates_constraint(error, AttendanceRecord, "uq_attendance_record_session_enrollment")
        ):
            logger.info("Concurrent attendance submission lost on the session constraint")
            return AlreadyMarked()
        logger.warning("Attendance submission rejected by the database: %s", error.orig)
        return ReferentialConflict(
            "The class roster changed while attendance was being saved; reload it and submit again."
        )

    async def _is_session_marked(self, class_schedule_id: UUID, session_date: date) -> bool:
        stmt = self.scoped(select(AttendanceSession.id), AttendanceSession).where(
            AttendanceSession.class_schedule_id == class_schedule_id,
            AttendanceSession.session_date == session_date,
        )
        return (await self.db.execute(stmt)).first() is not None

    async def _enrollment_ids(self, course_offering_id: UUID) -> List[UUID]:
        stmt = self.scoped(select(StudentEnrollment.id), StudentEnrollment).where(
            StudentEnrollment.course_offering_id == course_offering_id
        )
        return list((await self.db.execute(stmt)).scalars().all())

    def _check_roster(self, enrolled: List[UUID], submitted: List[UUID]) -> None:
        if not enrolled:
            raise IncompleteSubmission("No students are enrolled in this course offering")
        enrolled_set, submitted_set = set(enrolled), set(submitted)
        missing = [e for e in enrolled if e not in submitted_set]
        unknown = [s for s in submitted if s not in enrolled_set]
        if len(submitted) != len(submitted_set):
            raise IncompleteSubmission("Each enrolled student may appear only once in a submission")
        if missing or unknown:
            parts = []
            if missing:
                parts.append(f"{len(missing)} enrolled student(s) have no status")
            if unknown:
                parts.append(f"{len(unknown)} status(es) name students not enrolled in this course offering")
            raise IncompleteSubmission(
                "Attendance must cover every enrolled student exactly once: " + "; ".join(parts),
                missing_enrollment_ids=missing,
                unknown_enrollment_ids=unknown,
            )

    # SUBMISSION

    async def submit_attendance(
        self,
        class_schedule_id: UUID,
        teacher_id: UUID,
        statuses: List[StudentStatus],
        session_date: Optional[date] = None,
    ) -> AttendanceSubmissionResult:
        """Record one status per enrolled student for the schedule's session today.

        The time-lock is evaluated here against the clock, never trusted from
        the caller. ``session_date`` may be passed for clarity but must be the
        institute-local date of today.
        """
        schedule = await self.load_related(ClassSchedule, class_schedule_id, "Class schedule")
        offering = await self.load_related(CourseOffering, schedule.course_offering_id, "Course offering")
        if offering.teacher_id != teacher_id:
            raise Unauthorized("Only the teacher assigned to this course offering can mark its attendance")

        now = await self.schedules.local_now()
        today = now.date()
        if session_date is not None and session_date != today:
            raise WindowExpired(f"Attendance can only be marked for today's session ({today.isoformat()})")

        slot = ScheduleSlot.from_schedule(schedule)
        marked = await self._is_session_marked(schedule.id, today)
        assert_submission_allowed(slot, now, marked)

        enrolled = await self._enrollment_ids(offering.id)
        self._check_roster(enrolled, [s.enrollment_id for s in statuses])

        schedule_id, offering_id = schedule.id, offering.id
        marked_at = utcnow()
        try:
            session = AttendanceSession(
                tenant_id=self.tenant_id,
                class_schedule_id=schedule_id,
                course_offering_id=offering_id,
                marked_by_teacher_id=teacher_id,
                session_date=today,
                marked_at=marked_at,
            )
            self.db.add(session)
            await self.db.flush()

            self.db.add_all([
                AttendanceRecord(
                    tenant_id=self.tenant_id,
                    attendance_session_id=session.id,
                    enrollment_id=entry.enrollment_id,
                    course_offering_id=offering_id,
                    class_schedule_id=schedule_id,
                    marked_by_teacher_id=teacher_id,
                    attendance_date=today,
                    status=entry.status,
                    marked_at=marked_at,
                )
                for entry in statuses
            ])
            await self.db.flush()
            session_id = session.id
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise self.translate_integrity_error(e)

        counts = count_statuses(entry.status for entry in statuses)
        logger.info(
            "Attendance marked for schedule %s on %s by %s: %d present, %d absent, %d leave",
            schedule_id, today, teacher_id, counts.present, counts.absent, counts.leave,
        )
        return AttendanceSubmissionResult(
            attendance_session_id=session_id,
            class_schedule_id=schedule_id,
            course_offering_id=offering_id,
            session_date=today,
            marked_at=marked_at,
            counts=counts,
        )

    # READS

    async def get_session_records(self, class_schedule_id: UUID, session_date: date) -> List[AttendanceRecord]:
        """Records of one session, archived schedules included, by roll number."""
        await self.load_related(ClassSchedule, class_schedule_id, "Class schedule")
        stmt = (
            self.scoped()
            .join(StudentEnrollment, StudentEnrollment.id == AttendanceRecord.enrollment_id)
            .join(User, User.id == StudentEnrollment.student_id)
            .where(
                AttendanceRecord.class_schedule_id == class_schedule_id,
                AttendanceRecord.attendance_date == session_date,
            )
            .order_by(User.roll_number)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _status_counts(self, *criteria) -> AttendanceCounts:
        stmt = (
            self.scoped(select(AttendanceRecord.status, func.count()), AttendanceRecord)
            .where(*criteria)
            .group_by(AttendanceRecord.status)
        )
        return counts_from_tally({status: n for status, n in (await self.db.execute(stmt)).all()})

    async def get_offering_counts(
        self,
        course_offering_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> OfferingAttendanceSummary:
        await self.load_related(CourseOffering, course_offering_id, "Course offering")

        record_criteria = [AttendanceRecord.course_offering_id == course_offering_id]
        sessions = self.scoped(select(func.count()).select_from(AttendanceSession), AttendanceSession).where(
            AttendanceSession.course_offering_id == course_offering_id
        )
        if start_date is not None:
            record_criteria.append(AttendanceRecord.attendance_date >= start_date)
            sessions = sessions.where(AttendanceSession.session_date >= start_date)
        if end_date is not None:
            record_criteria.append(AttendanceRecord.attendance_date <= end_date)
            sessions = sessions.where(AttendanceSession.session_date <= end_date)

        return OfferingAttendanceSummary(
            course_offering_id=course_offering_id,
            sessions_held=(await self.db.execute(sessions)).scalar() or 0,
            counts=await self._status_counts(*record_criteria),
        )

    async def get_offering_roster_counts(
        self,
        course_offering_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[StudentAttendanceCounts]:
        """Raw present/absent/leave counts for every enrolled student, by roll number."""
        await self.load_related(CourseOffering, course_offering_id, "Course offering")

        tally_stmt = (
            self.scoped(select(AttendanceRecord.enrollment_id, AttendanceRecord.status, func.count()), AttendanceRecord)
            .where(AttendanceRecord.course_offering_id == course_offering_id)
            .group_by(AttendanceRecord.enrollment_id, AttendanceRecord.status)
        )
        if start_date is not None:
            tally_stmt = tally_stmt.where(AttendanceRecord.attendance_date >= start_date)
        if end_date is not None:
            tally_stmt = tally_stmt.where(AttendanceRecord.attendance_date <= end_date)
        tally: Dict[UUID, Dict[AttendanceStatus, int]] = defaultdict(dict)
        for enrollment_id, status, n in (await self.db.execute(tally_stmt)).all():
            tally[enrollment_id][status] = n

        roster_stmt = (
            self.scoped(
                select(StudentEnrollment.id, User.id, User.roll_number, User.full_name), StudentEnrollment
            )
            .join(User, User.id == StudentEnrollment.student_id)
            .where(StudentEnrollment.course_offering_id == course_offering_id)
            .order_by(User.roll_number, User.full_name)
        )
        return [
            StudentAttendanceCounts(
                enrollment_id=enrollment_id,
                student_id=student_id,
                roll_number=roll_number,
                full_name=full_name,
                counts=counts_from_tally(tally[enrollment_id]),
            )
            for enrollment_id, student_id, roll_number, full_name in (await self.db.execute(roster_stmt)).all()
        ]

    async def get_student_summary(self, student_id: UUID) -> List[EnrollmentAttendanceSummary]:
        """Per-enrollment counts and attendance percentage for one student.

        The percentage is present over every record marked for the enrollment;
        leave counts in the denominator.
        """
        await self.load_related(User, student_id, "Student")
        stmt = self.scoped(select(StudentEnrollment), StudentEnrollment).where(
            StudentEnrollment.student_id == student_id
        ).order_by(StudentEnrollment.enrolled_at)
        enrollments = (await self.db.execute(stmt)).scalars().all()

        summaries = []
        for enrollment in enrollments:
            counts = await self._status_counts(AttendanceRecord.enrollment_id == enrollment.id)
            total = counts.total
            summaries.append(EnrollmentAttendanceSummary(
                enrollment_id=enrollment.id,
                course_offering_id=enrollment.course_offering_id,
                sessions_marked=total,
                counts=counts,
                attendance_percentage=round(counts.present * 100.0 / total, 2) if total else 0.0,
            ))
        return summaries

    async def get_enrollment_history(self, enrollment_id: UUID) -> List[AttendanceHistoryEntry]:
        await self.load_related(StudentEnrollment, enrollment_id, "Enrollment")
        stmt = (
            self.scoped(select(AttendanceRecord, ClassSchedule.is_deleted), AttendanceRecord)
            .join(ClassSchedule, ClassSchedule.id == AttendanceRecord.class_schedule_id)
            .where(AttendanceRecord.enrollment_id == enrollment_id)
            .order_by(AttendanceRecord.attendance_date.desc(), AttendanceRecord.marked_at.desc())
        )
        rows = (await self.db.execute(stmt)).all()
        return [
            AttendanceHistoryEntry(
                record_id=record.id,
                attendance_date=record.attendance_date,
                status=record.status,
                class_schedule_id=record.class_schedule_id,
                schedule_archived=bool(archived),
            )
            for record, archived in rows
        ]

