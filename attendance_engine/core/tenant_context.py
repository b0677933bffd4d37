# attendance_engine/core/tenant_context.py
"""Request-scoped tenant context.

A ``TenantContext`` is built once per request (or background operation) and
handed to every service that touches tenant-scoped rows. It is immutable and
never stored on a module or class, so concurrent requests for different
tenants cannot observe each other's tenant id.

Two operations legitimately need to look across tenants before a tenant is
known: checking a freshly generated tenant code for uniqueness, and locating a
user by login identifier during sign-in. They get a bypass context carrying the
reason, and each of them asserts the exact reason it expects.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from .exceptions import TenantNotResolved
from .logging import AUDIT_LOGGER_NAME

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


class BypassReason(enum.Enum):
    TENANT_CODE_UNIQUENESS = "tenant_code_uniqueness"
    LOGIN_LOOKUP = "login_lookup"


@dataclass(frozen=True)
class TenantContext:
    tenant_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    bypass_reason: Optional[BypassReason] = None

    @classmethod
    def for_tenant(cls, tenant_id: UUID, user_id: Optional[UUID] = None) -> "TenantContext":
        if tenant_id is None:
            raise TenantNotResolved()
        return cls(tenant_id=tenant_id, user_id=user_id)

    @classmethod
    def bypass(cls, reason: BypassReason) -> "TenantContext":
        if not isinstance(reason, BypassReason):
            raise ValueError("bypass requires a BypassReason")
        return cls(bypass_reason=reason)

    @property
    def is_bypass(self) -> bool:
        return self.bypass_reason is not None

    def require_tenant(self) -> UUID:
        """Return the active tenant id for a scoped operation."""
        if self.is_bypass:
            raise TenantNotResolved(
                f"A bypass context ({self.bypass_reason.value}) cannot be used for tenant-scoped access"
            )
        if self.tenant_id is None:
            raise TenantNotResolved()
        return self.tenant_id

    def require_bypass(self, reason: BypassReason) -> None:
        """Assert that this context is a bypass issued for ``reason``."""
        if self.bypass_reason is not reason:
            raise TenantNotResolved(f"Operation requires a {reason.value} bypass context")
        audit_logger.info("Tenant filter bypassed for %s", reason.value)
