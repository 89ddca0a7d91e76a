"""User Administration — suspend/reactivate and verify accounts.

Invariants:
    - Requires MODERATOR (or SUPER_ADMIN)
    - Only SUPER_ADMIN may suspend or reactivate another admin
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import AdminPermission, UserRole
from gigboard.core.errors import PermissionDeniedError, ResourceNotFoundError
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.core.project_lifecycle import MODERATION_PERMISSIONS, require_permission
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Admin, User
from gigboard.services.cache_invalidator import CacheInvalidator

logger = logging.getLogger(__name__)


class UserAdminService:
    def __init__(self, db: AsyncSession, invalidator: CacheInvalidator):
        self.db = db
        self.repo = EntityRepository(db)
        self.invalidator = invalidator

    async def toggle_user_status(self, admin: Admin, user_id: UUID) -> User:
        require_permission(admin.permissions, MODERATION_PERMISSIONS)
        async with transaction(self.db):
            user = await self._user_or_404(user_id)
            if (
                user.role == UserRole.ADMIN.value
                and AdminPermission.SUPER_ADMIN.value not in admin.permissions
            ):
                raise PermissionDeniedError("Cannot suspend admin users")
            await self.repo.set_user_active(user.id, not user.is_active)
        user = await self.repo.find_user(user_id)
        await self.invalidator.invalidate(
            MutationKind.USER_STATUS_TOGGLED, MutationContext(subject_user_id=user.id),
        )
        logger.info(
            f"User {'activated' if user.is_active else 'suspended'}",
            extra={"admin_id": str(admin.id), "user_id": str(user.id)},
        )
        return user

    async def toggle_user_verified(self, admin: Admin, user_id: UUID) -> User:
        require_permission(admin.permissions, MODERATION_PERMISSIONS)
        async with transaction(self.db):
            user = await self._user_or_404(user_id)
            user.is_verified = not user.is_verified
        await self.invalidator.invalidate(
            MutationKind.USER_VERIFIED, MutationContext(subject_user_id=user.id),
        )
        return user

    async def _user_or_404(self, user_id: UUID) -> User:
        user = await self.repo.find_user(user_id)
        if user is None:
            raise ResourceNotFoundError("User", str(user_id))
        return user
