# attendance_engine/services/catalog_service.py
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DuplicateCatalogEntry, ReferentialConflict
from ..core.tenant_context import TenantContext
from ..models.shared.user import User
from ..models.tenant_specific.catalog import Cohort, Section, Subject, normalize_key
from ..models.tenant_specific.course_offering import CourseOffering
from ..schemas.catalog_schemas import (
    CohortCreate, CohortUpdate, SectionCreate, SectionUpdate, SubjectCreate, SubjectUpdate,
)
from .base_service import violates_constraint
from .tenant_scoped_service import TenantScopedService

logger = logging.getLogger(__name__)


class CatalogEntityService(TenantScopedService):
    """Shared behaviour for cohorts, sections and subjects.

    Subclasses name the user-facing field that must be unique per tenant
    (case-insensitive), its normalized key column, and the foreign key
    columns on other tables that block deletion.
    """
    unique_field: str = "name"
    key_field: str = "name_key"
    order_field: str = "name"
    unique_constraint: str = ""
    # (model, column name, description) triples that reference this entity
    referenced_by: tuple = ()

    async def find_by_key(self, value: str, exclude_id: Optional[UUID] = None):
        key_column = getattr(self.model, self.key_field)
        stmt = self.scoped().where(key_column == normalize_key(value))
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _ensure_unique(self, value: str, exclude_id: Optional[UUID] = None) -> None:
        if value and value.strip() and await self.find_by_key(value, exclude_id):
            raise DuplicateCatalogEntry(
                self.resource_name,
                f"A {self.resource_name.lower()} with this {self.unique_field} already exists in your institute.",
            )

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        if not violates_constraint(error, self.model, self.unique_constraint):
            logger.warning("%s change rejected by the database: %s", self.resource_name, error.orig)
            return ReferentialConflict(f"The {self.resource_name.lower()} is referenced by other records and was not changed.")
        logger.info("Concurrent duplicate %s insert rejected by constraint", self.resource_name)
        return DuplicateCatalogEntry(
            self.resource_name,
            f"A {self.resource_name.lower()} with this {self.unique_field} already exists in your institute.",
        )

    async def create_entry(self, data: dict):
        await self._ensure_unique(data.get(self.unique_field))
        return await self.create(data)

    async def update_entry(self, id: UUID, data: dict):
        if self.unique_field in data:
            await self._ensure_unique(data[self.unique_field], exclude_id=id)
        return await self.update(id, data)

    async def list_entries(self) -> List:
        stmt = self.scoped().order_by(getattr(self.model, self.order_field))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delete_entry(self, id: UUID) -> None:
        obj = await self.get_or_404(id)
        label = getattr(obj, self.unique_field)
        blockers = []
        for model, column, description in self.referenced_by:
            stmt = self.scoped(select(func.count()).select_from(model), model).where(getattr(model, column) == id)
            count = (await self.db.execute(stmt)).scalar() or 0
            if count:
                blockers.append(f"{count} {description}")
        if blockers:
            raise ReferentialConflict(
                f"Cannot delete {self.resource_name.lower()} '{label}' because it is referenced by "
                + ", ".join(blockers) + "."
            )
        await self.db.delete(obj)
        await self.commit()
        logger.info("Deleted %s %s for tenant %s", self.resource_name, id, self.tenant_id)


class CohortService(CatalogEntityService):
    resource_name = "Cohort"
    unique_constraint = "uq_cohort_tenant_name"
    referenced_by = (
        (CourseOffering, "cohort_id", "course offering(s)"),
        (User, "cohort_id", "student(s)"),
    )

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        super().__init__(Cohort, db, ctx)

    async def create_cohort(self, obj_in: CohortCreate) -> Cohort:
        return await self.create_entry(obj_in.model_dump())

    async def update_cohort(self, id: UUID, obj_in: CohortUpdate) -> Cohort:
        return await self.update_entry(id, obj_in.model_dump(exclude_unset=True))


class SectionService(CatalogEntityService):
    resource_name = "Section"
    unique_constraint = "uq_section_tenant_name"
    referenced_by = (
        (CourseOffering, "section_id", "course offering(s)"),
        (User, "section_id", "student(s)"),
    )

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        super().__init__(Section, db, ctx)

    async def create_section(self, obj_in: SectionCreate) -> Section:
        return await self.create_entry(obj_in.model_dump())

    async def update_section(self, id: UUID, obj_in: SectionUpdate) -> Section:
        return await self.update_entry(id, obj_in.model_dump(exclude_unset=True))


class SubjectService(CatalogEntityService):
    resource_name = "Subject"
    unique_field = "code"
    key_field = "code_key"
    order_field = "code"
    unique_constraint = "uq_subject_tenant_code"
    referenced_by = (
        (CourseOffering, "subject_id", "course offering(s)"),
    )

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        super().__init__(Subject, db, ctx)

    async def create_subject(self, obj_in: SubjectCreate) -> Subject:
        return await self.create_entry(obj_in.model_dump())

    async def update_subject(self, id: UUID, obj_in: SubjectUpdate) -> Subject:
        return await self.update_entry(id, obj_in.model_dump(exclude_unset=True))
