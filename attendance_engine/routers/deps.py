"""Shared request dependencies.

Authentication happens upstream; the gateway forwards the signed-in user's
tenant and user ids as headers and this module turns them into the
``TenantContext`` every service receives.
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import TenantNotResolved, Unauthorized, ValidationException
from ..core.tenant_context import TenantContext
from ..models.shared.user import Role, User
from ..services.user_service import UserService, has_role
from ..utils.timezones import Clock, utc_clock


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise ValidationException(f"Malformed {header} header", field=header)


async def get_tenant_context(
    x_tenant_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> TenantContext:
    if not x_tenant_id:
        raise TenantNotResolved("Missing X-Tenant-Id header")
    tenant_id = _parse_uuid(x_tenant_id, "X-Tenant-Id")
    user_id = _parse_uuid(x_user_id, "X-User-Id") if x_user_id else None
    return TenantContext.for_tenant(tenant_id, user_id)


def get_clock() -> Clock:
    return utc_clock


def require_user_id(ctx: TenantContext) -> UUID:
    """The signed-in user's id; user-facing endpoints cannot run without it."""
    if ctx.user_id is None:
        raise Unauthorized("A signed-in user is required")
    return ctx.user_id


def require_role(role: Role):
    """Dependency that admits only signed-in users holding ``role``."""

    async def check_role(
        db: AsyncSession = Depends(get_db),
        ctx: TenantContext = Depends(get_tenant_context),
    ) -> User:
        user = await UserService(db, ctx).find_user_by_id(require_user_id(ctx))
        if user is None or not has_role(user, role):
            raise Unauthorized(f"Only users with the {role.value} role can do this")
        return user

    return check_role


require_admin = require_role(Role.ADMIN)
