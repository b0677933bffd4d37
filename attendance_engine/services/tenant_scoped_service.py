# attendance_engine/services/tenant_scoped_service.py
"""CRUD base for rows that belong to a tenant.

Every statement built here carries ``tenant_id == <active tenant>`` in its
WHERE clause, so rows of other tenants never leave the database. When an id
is not visible under the active tenant, a narrow probe reads only the owning
tenant id of that row to tell "absent" apart from "someone else's"; the
latter is audited and raised as ``CrossTenantViolation``.
"""
import logging
from typing import Any, Dict, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import CrossTenantViolation, NotFoundError, ValidationException
from ..core.logging import AUDIT_LOGGER_NAME
from ..core.tenant_context import TenantContext
from .base_service import BaseService

T = TypeVar('T')

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


class TenantScopedService(BaseService[T]):
    resource_name: str = "Resource"

    def __init__(self, model: Type[T], db: AsyncSession, ctx: TenantContext):
        super().__init__(model, db)
        self.ctx = ctx

    @property
    def tenant_id(self) -> UUID:
        return self.ctx.require_tenant()

    def scoped(self, stmt=None, model=None):
        """Attach the tenant predicate for ``model`` to ``stmt``."""
        model = model or self.model
        if stmt is None:
            stmt = select(model)
        return stmt.where(model.tenant_id == self.tenant_id)

    async def get(self, id: Any, include_deleted: bool = True) -> Optional[T]:
        stmt = self.scoped().where(self.model.id == id)
        if not include_deleted and hasattr(self.model, 'is_deleted'):
            stmt = stmt.where(self.model.is_deleted == False)
        result = await self.db.execute(stmt)
        obj = result.scalar_one_or_none()
        if obj is None:
            await self._raise_if_foreign(self.model, id)
        return obj

    async def get_or_404(self, id: Any, include_deleted: bool = True) -> T:
        obj = await self.get(id, include_deleted=include_deleted)
        if obj is None:
            raise NotFoundError(self.resource_name, str(id))
        return obj

    async def load_related(self, model, id: Any, resource: str):
        """Load a row of another tenant-scoped model referenced by id."""
        stmt = self.scoped(select(model), model).where(model.id == id)
        result = await self.db.execute(stmt)
        obj = result.scalar_one_or_none()
        if obj is None:
            await self._raise_if_foreign(model, id, resource)
            raise NotFoundError(resource, str(id))
        return obj

    async def _raise_if_foreign(self, model, id: Any, resource: Optional[str] = None) -> None:
        probe = select(model.tenant_id).where(model.id == id)
        owner = (await self.db.execute(probe)).scalar_one_or_none()
        if owner is not None and owner != self.tenant_id:
            resource = resource or self.resource_name
            audit_logger.warning(
                "Cross-tenant access blocked: tenant=%s user=%s resource=%s id=%s owner=%s",
                self.tenant_id, self.ctx.user_id, resource, id, owner,
            )
            raise CrossTenantViolation(resource, str(id))

    def ensure_same_tenant(self, *entities) -> None:
        for entity in entities:
            if entity is not None and entity.tenant_id != self.tenant_id:
                resource = type(entity).__name__
                audit_logger.warning(
                    "Cross-tenant reference blocked: tenant=%s resource=%s id=%s owner=%s",
                    self.tenant_id, resource, entity.id, entity.tenant_id,
                )
                raise CrossTenantViolation(resource, str(entity.id))

    async def add(self, obj_in: Dict) -> T:
        if obj_in.get('tenant_id') not in (None, self.tenant_id):
            raise CrossTenantViolation(self.resource_name)
        try:
            return await super().add({**obj_in, 'tenant_id': self.tenant_id})
        except ValueError as e:
            # Raised by model @validates hooks
            raise ValidationException(str(e))

    async def update(self, id: Any, obj_in: Dict) -> T:
        if 'tenant_id' in obj_in:
            raise ValidationException("tenant_id cannot be changed", field="tenant_id")
        obj = await self.get_or_404(id)
        try:
            for key, value in obj_in.items():
                setattr(obj, key, value)
        except ValueError as e:
            await self.db.rollback()
            raise ValidationException(str(e))
        await self.commit()
        return obj
