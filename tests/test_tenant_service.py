import logging
import re
import uuid

import pytest

from attendance_engine.core.config import settings
from attendance_engine.core.exceptions import (
    CrossTenantViolation, NotFoundError, TenantNotResolved, ValidationException,
)
from attendance_engine.core.tenant_context import BypassReason, TenantContext
from attendance_engine.models import Role
from attendance_engine.schemas.tenant_schemas import TenantRegistration
from attendance_engine.services.catalog_service import CohortService
from attendance_engine.services.tenant_service import TenantService, tenant_code_prefix
from attendance_engine.services.user_service import UserService, has_role, roles_of


class ScriptedRandom:
    """Returns the given numbers from randint, in order."""

    def __init__(self, *numbers):
        self.numbers = list(numbers)

    def randint(self, a, b):
        return self.numbers.pop(0)


def registration(name="Punjab College", **overrides):
    data = {
        "institute_name": name,
        "admin_full_name": "Imran Ali",
        "admin_email": f"admin.{uuid.uuid4().hex[:6]}@school.edu",
    }
    data.update(overrides)
    return TenantRegistration(**data)


@pytest.mark.parametrize("name,prefix", [
    ("Punjab College", "PUN"),
    ("AB", "ABX"),
    ("9 to 5 Academy", "TOA"),
    ("", "XXX"),
])
def test_tenant_code_prefix(name, prefix):
    assert tenant_code_prefix(name) == prefix


async def test_register_tenant_issues_code_and_admin(session_factory):
    async with session_factory() as db:
        tenant, admin = await TenantService(db).register_tenant(registration(time_zone_id="Asia/Karachi"))

    assert re.match(r"^PUN-\d{4}$", tenant.code)
    assert 1000 <= int(tenant.code[4:]) <= 9999
    assert admin.tenant_id == tenant.id
    assert has_role(admin, Role.ADMIN)
    assert tenant.time_zone_id == "Asia/Karachi"


async def test_generated_code_skips_codes_in_use(session_factory):
    async with session_factory() as db:
        first, _ = await TenantService(db, rng=ScriptedRandom(1234)).register_tenant(registration())
    async with session_factory() as db:
        code = await TenantService(db, rng=ScriptedRandom(1234, 5678)).generate_tenant_code("Punjab Group")

    assert first.code == "PUN-1234"
    assert code == "PUN-5678"


async def test_code_generation_gives_up_after_max_attempts(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "tenant_code_max_attempts", 2)
    async with session_factory() as db:
        await TenantService(db, rng=ScriptedRandom(1234)).register_tenant(registration())
    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await TenantService(db, rng=ScriptedRandom(1234, 1234)).generate_tenant_code("Punjab")


async def test_code_generation_requires_its_bypass_reason(session_factory):
    async with session_factory() as db:
        service = TenantService(db)
        with pytest.raises(TenantNotResolved):
            await service.generate_tenant_code("Punjab", TenantContext.for_tenant(uuid.uuid4()))
        with pytest.raises(TenantNotResolved):
            await service.generate_tenant_code("Punjab", TenantContext.bypass(BypassReason.LOGIN_LOOKUP))


async def test_bypass_is_audited(session_factory, caplog):
    caplog.set_level(logging.INFO, logger="attendance_engine.audit")
    async with session_factory() as db:
        await TenantService(db).generate_tenant_code("Punjab")
    assert "tenant_code_uniqueness" in caplog.text


async def test_unknown_time_zone_is_rejected_on_registration(session_factory):
    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await TenantService(db).register_tenant(registration(time_zone_id="Mars/Olympus"))


async def test_update_time_zone_accepts_windows_ids(session_factory, institute):
    async with session_factory() as db:
        tenant = await TenantService(db).update_time_zone(institute.tenant_id, "Pakistan Standard Time")
    assert tenant.time_zone_id == "Pakistan Standard Time"

    async with session_factory() as db:
        with pytest.raises(ValidationException):
            await TenantService(db).update_time_zone(institute.tenant_id, "Nowhere/Special")
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await TenantService(db).update_time_zone(uuid.uuid4(), "UTC")


async def test_get_by_code_is_case_insensitive(session_factory):
    async with session_factory() as db:
        tenant, _ = await TenantService(db, rng=ScriptedRandom(4321)).register_tenant(registration())
    async with session_factory() as db:
        found = await TenantService(db).get_by_code(" pun-4321 ")
    assert found.id == tenant.id


async def test_login_lookup_requires_bypass(session_factory):
    async with session_factory() as db:
        tenant, admin = await TenantService(db).register_tenant(registration(admin_email="Principal@School.edu"))

    async with session_factory() as db:
        with pytest.raises(TenantNotResolved):
            await UserService(db, TenantContext.for_tenant(tenant.id)).find_user_by_login_identifier("principal@school.edu")

    async with session_factory() as db:
        service = UserService(db, TenantContext.bypass(BypassReason.LOGIN_LOOKUP))
        user = await service.find_user_by_login_identifier("  PRINCIPAL@school.edu ")
        ctx = UserService.context_for_user(user)

    assert user.id == admin.id
    assert ctx.tenant_id == tenant.id
    assert ctx.user_id == admin.id


async def test_bypass_context_cannot_read_scoped_data(session_factory, institute):
    async with session_factory() as db:
        with pytest.raises(TenantNotResolved):
            await CohortService(db, TenantContext.bypass(BypassReason.LOGIN_LOOKUP)).list_entries()


def test_context_without_tenant_is_rejected():
    with pytest.raises(TenantNotResolved):
        TenantContext.for_tenant(None)


async def test_find_user_by_id_stays_inside_tenant(school, session_factory, institute):
    rival = await school.institute("Lahore Grammar")

    async with session_factory() as db:
        teacher = await UserService(db, institute.ctx).find_user_by_id(institute.teacher_id)
        assert roles_of(teacher) == {Role.TEACHER}
        assert await UserService(db, institute.ctx).find_user_by_id(uuid.uuid4()) is None

    async with session_factory() as db:
        with pytest.raises(CrossTenantViolation):
            await UserService(db, rival.ctx).find_user_by_id(institute.teacher_id)
