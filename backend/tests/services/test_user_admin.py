"""User Administration — suspension, reactivation and verification."""

from uuid import uuid4

import pytest

from gigboard.core import cache_keys as ck
from gigboard.core.domain_types import AdminPermission, UserRole
from gigboard.core.errors import PermissionDeniedError, ResourceNotFoundError
from gigboard.services.user_admin import UserAdminService

from tests.seed import make_user


@pytest.fixture
def service(test_db, invalidator):
    return UserAdminService(test_db, invalidator)


async def test_toggle_suspends_then_reactivates(service, admin_actor, freelancer_actor, cache):
    profile_key = ck.PUBLIC_FREELANCER_PROFILE.key(freelancer_actor.user_id)
    await cache.set(profile_key, {"name": "Ada"}, 60)

    suspended = await service.toggle_user_status(admin_actor.admin, freelancer_actor.user_id)
    assert suspended.is_active is False
    assert await cache.get(profile_key) is None

    reactivated = await service.toggle_user_status(admin_actor.admin, freelancer_actor.user_id)
    assert reactivated.is_active is True


async def test_moderator_cannot_suspend_admin(service, test_db, admin_actor):
    other_admin = await make_user(
        test_db, UserRole.ADMIN, "ops@example.com",
        permissions=[AdminPermission.SUPPORT.value],
    )
    with pytest.raises(PermissionDeniedError, match="admin"):
        await service.toggle_user_status(admin_actor.admin, other_admin.user_id)


async def test_super_admin_can_suspend_admin(service, super_admin, admin_actor):
    user = await service.toggle_user_status(super_admin.admin, admin_actor.user_id)
    assert user.is_active is False


async def test_support_admin_cannot_moderate(service, test_db, client_actor):
    support = await make_user(
        test_db, UserRole.ADMIN, "help@example.com",
        permissions=[AdminPermission.SUPPORT.value],
    )
    with pytest.raises(PermissionDeniedError):
        await service.toggle_user_status(support.admin, client_actor.user_id)


async def test_toggle_verified(service, admin_actor, client_actor):
    assert (await service.toggle_user_verified(admin_actor.admin, client_actor.user_id)).is_verified
    assert not (
        await service.toggle_user_verified(admin_actor.admin, client_actor.user_id)
    ).is_verified


async def test_unknown_user_is_not_found(service, admin_actor):
    with pytest.raises(ResourceNotFoundError):
        await service.toggle_user_status(admin_actor.admin, uuid4())
