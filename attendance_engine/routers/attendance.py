from typing import List, Optional
from uuid import UUID
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.tenant_context import TenantContext
from ..schemas.attendance_schemas import (
    AttendanceHistoryEntry,
    AttendanceRecord,
    AttendanceSubmission,
    AttendanceSubmissionResult,
    EnrollmentAttendanceSummary,
    OfferingAttendanceSummary,
    StudentAttendanceCounts,
)
from ..schemas.schedule_schemas import SessionStatusOut
from ..services.attendance_service import AttendanceService
from ..services.schedule_service import ScheduleService
from ..utils.timezones import Clock
from .deps import get_clock, get_tenant_context, require_user_id

router = APIRouter(prefix="/api/v1/attendance", tags=["Attendance"])


@router.get("/status", response_model=SessionStatusOut)
async def get_attendance_status(
    course_offering_id: Optional[UUID] = Query(None, description="Omit for the signed-in teacher's dashboard"),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
    clock: Clock = Depends(get_clock),
):
    """Active, upcoming or no attendance session right now"""
    service = ScheduleService(db, ctx, clock)
    if course_offering_id is not None:
        status = await service.get_current_status(course_offering_id)
    else:
        status = await service.get_teacher_status(require_user_id(ctx))
    return SessionStatusOut.from_status(status)


@router.post("/submit", response_model=AttendanceSubmissionResult, status_code=201)
async def submit_attendance(
    submission: AttendanceSubmission,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
    clock: Clock = Depends(get_clock),
):
    """Submit one status per enrolled student for the open session"""
    service = AttendanceService(db, ctx, clock)
    return await service.submit_attendance(
        submission.class_schedule_id,
        require_user_id(ctx),
        submission.students,
        session_date=submission.session_date,
    )


@router.get("/sessions/{class_schedule_id}/{session_date}", response_model=List[AttendanceRecord])
async def get_session_records(
    class_schedule_id: UUID,
    session_date: date,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    service = AttendanceService(db, ctx)
    return await service.get_session_records(class_schedule_id, session_date)


@router.get("/offerings/{course_offering_id}/summary", response_model=OfferingAttendanceSummary)
async def get_offering_summary(
    course_offering_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    """Present/absent/leave totals and sessions held for a course offering"""
    service = AttendanceService(db, ctx)
    return await service.get_offering_counts(course_offering_id, start_date, end_date)


@router.get("/offerings/{course_offering_id}/students", response_model=List[StudentAttendanceCounts])
async def get_offering_roster_counts(
    course_offering_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    """Per-student present/absent/leave counts for a course offering, by roll number"""
    service = AttendanceService(db, ctx)
    return await service.get_offering_roster_counts(course_offering_id, start_date, end_date)


@router.get("/students/{student_id}/summary", response_model=List[EnrollmentAttendanceSummary])
async def get_student_summary(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    service = AttendanceService(db, ctx)
    return await service.get_student_summary(student_id)


@router.get("/enrollments/{enrollment_id}/history", response_model=List[AttendanceHistoryEntry])
async def get_enrollment_history(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    service = AttendanceService(db, ctx)
    return await service.get_enrollment_history(enrollment_id)
