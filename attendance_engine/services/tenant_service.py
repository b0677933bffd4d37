# attendance_engine/services/tenant_service.py
from typing import Optional, Tuple
from uuid import UUID
import logging
import random
import string

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import DuplicateCatalogEntry, ValidationException, NotFoundError
from ..core.tenant_context import BypassReason, TenantContext
from ..models.shared.tenant import Tenant
from ..models.shared.user import Role, User
from ..schemas.tenant_schemas import TenantRegistration
from ..utils.timezones import lookup_zone
from .base_service import BaseService
from .user_service import UserService

logger = logging.getLogger(__name__)


def tenant_code_prefix(name: str) -> str:
    """First three ASCII letters of ``name``, upper-cased and padded with X."""
    letters = [c for c in (name or "") if c in string.ascii_letters]
    return "".join(letters[:3]).upper().ljust(3, "X")


class TenantService(BaseService[Tenant]):
    """Institute registration and settings.

    Tenants are the root of the tenancy tree, so this service is not scoped;
    the one cross-tenant read it makes (code uniqueness) runs under an
    explicit bypass context.
    """

    def __init__(self, db: AsyncSession, rng: Optional[random.Random] = None):
        super().__init__(Tenant, db)
        self.rng = rng or random.SystemRandom()

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        return DuplicateCatalogEntry("Institute", "An institute with this code already exists")

    async def _code_exists(self, code: str) -> bool:
        stmt = select(Tenant.id).where(Tenant.code == code)
        return (await self.db.execute(stmt)).first() is not None

    async def generate_tenant_code(self, name: str, ctx: Optional[TenantContext] = None) -> str:
        """Issue a code like ``PUN-9021`` that no tenant holds yet."""
        ctx = ctx or TenantContext.bypass(BypassReason.TENANT_CODE_UNIQUENESS)
        ctx.require_bypass(BypassReason.TENANT_CODE_UNIQUENESS)

        prefix = tenant_code_prefix(name)
        for _ in range(settings.tenant_code_max_attempts):
            code = f"{prefix}-{self.rng.randint(1000, 9999)}"
            if not await self._code_exists(code):
                return code
        logger.error("Could not find a free tenant code for prefix %s", prefix)
        raise ValidationException(f"Could not generate a unique institute code for '{name}'")

    async def register_tenant(self, obj_in: TenantRegistration) -> Tuple[Tenant, User]:
        """Create an institute and its first administrator in one transaction."""
        if obj_in.time_zone_id and lookup_zone(obj_in.time_zone_id) is None:
            raise ValidationException(f"Unknown time zone '{obj_in.time_zone_id}'", field="time_zone_id")

        code = await self.generate_tenant_code(obj_in.institute_name)
        try:
            tenant = await self.add({
                "code": code,
                "name": obj_in.institute_name.strip(),
                "admin_email": obj_in.admin_email,
                "time_zone_id": obj_in.time_zone_id,
            })
        except ValueError as e:
            raise ValidationException(str(e))

        users = UserService(self.db, TenantContext.for_tenant(tenant.id))
        admin = await users.add_user(obj_in.admin_full_name, obj_in.admin_email, {Role.ADMIN})
        await self.commit()

        logger.info("Registered institute %s (%s) with admin %s", tenant.name, code, admin.id)
        return tenant, admin

    async def get_by_code(self, code: str) -> Optional[Tenant]:
        if not code or not code.strip():
            raise ValidationException("Institute code cannot be empty", field="code")
        stmt = select(Tenant).where(Tenant.code == code.strip().upper())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_time_zone(self, tenant_id: UUID, time_zone_id: str) -> Tenant:
        if lookup_zone(time_zone_id) is None:
            raise ValidationException(f"Unknown time zone '{time_zone_id}'", field="time_zone_id")
        tenant = await self.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Institute", str(tenant_id))
        tenant.time_zone_id = time_zone_id.strip()
        await self.commit()
        logger.info("Institute %s time zone set to %s", tenant.code, tenant.time_zone_id)
        return tenant
