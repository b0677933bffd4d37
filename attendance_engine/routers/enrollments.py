from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.tenant_context import TenantContext
from ..schemas.enrollment_schemas import Enrollment, EnrollmentCreate
from ..services.enrollment_service import EnrollmentService
from .deps import get_tenant_context, require_admin

router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments"])


@router.post("/", response_model=Enrollment, status_code=201, dependencies=[Depends(require_admin)])
async def enroll_student(
    enrollment_data: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    """Enroll a student in a course offering outside their own section"""
    return await EnrollmentService(db, ctx).enroll_student(enrollment_data)


@router.get("/offering/{course_offering_id}", response_model=List[Enrollment])
async def list_offering_enrollments(
    course_offering_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return await EnrollmentService(db, ctx).list_for_offering(course_offering_id)


@router.get("/student/{student_id}", response_model=List[Enrollment])
async def list_student_enrollments(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return await EnrollmentService(db, ctx).list_for_student(student_id)


@router.delete("/{enrollment_id}", status_code=204, dependencies=[Depends(require_admin)])
async def unenroll(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
):
    await EnrollmentService(db, ctx).unenroll(enrollment_id)
