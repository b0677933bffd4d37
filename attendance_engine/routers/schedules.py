from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.tenant_context import TenantContext
from ..schemas.schedule_schemas import ClassSchedule, ClassScheduleCreate, ClassScheduleUpdate
from ..services.schedule_service import ScheduleService
from ..utils.timezones import Clock
from .deps import get_clock, get_tenant_context, require_admin, require_user_id

router = APIRouter(prefix="/api/v1/schedules", tags=["Class Schedules"])


@router.post("/", response_model=ClassSchedule, status_code=201, dependencies=[Depends(require_admin)])
async def create_schedule(
    schedule_data: ClassScheduleCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    """Add a weekly meeting to a course offering"""
    return await ScheduleService(db, ctx).create_schedule(schedule_data)


@router.get("/", response_model=List[ClassSchedule])
async def list_schedules(
    course_offering_id: Optional[UUID] = Query(None),
    include_archived: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return await ScheduleService(db, ctx).list_schedules(course_offering_id, include_archived)


@router.get("/active", response_model=Optional[ClassSchedule])
async def get_active_schedule(
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
    clock: Clock = Depends(get_clock),
):
    """The signed-in teacher's schedule whose attendance window is open now"""
    return await ScheduleService(db, ctx, clock).find_active_schedule_for_teacher(require_user_id(ctx))


@router.put("/{schedule_id}", response_model=ClassSchedule, dependencies=[Depends(require_admin)])
async def update_schedule(
    schedule_id: UUID,
    schedule_data: ClassScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return await ScheduleService(db, ctx).update_schedule(schedule_id, schedule_data)


@router.delete("/{schedule_id}", response_model=ClassSchedule, dependencies=[Depends(require_admin)])
async def archive_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    """Archive a schedule; its attendance history stays readable"""
    return await ScheduleService(db, ctx).archive_schedule(schedule_id)
