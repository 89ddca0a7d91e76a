"""Profile Service — self-service edits of client and freelancer profiles.

Invariants:
    - Only the listed fields are writable; ratings, counters and featured flags are not
    - Account fields (name, bio, location) and profile fields change in one transaction
    - The projects and counterparts whose cached views embed the profile are collected in
      the same transaction and invalidated after commit
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.errors import InputValidationError
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Client, Freelancer
from gigboard.services.cache_invalidator import CacheInvalidator

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = frozenset({"name", "bio", "location"})
CLIENT_FIELDS = frozenset({"company_name", "industry", "website"})
FREELANCER_FIELDS = frozenset({"title", "skills", "hourly_rate", "availability"})


def _clean(changes: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    unknown = set(changes) - allowed
    if unknown:
        raise InputValidationError(f"Unknown profile field: {sorted(unknown)[0]}", "profile")
    cleaned = dict(changes)
    if "name" in cleaned:
        cleaned["name"] = (cleaned["name"] or "").strip()
        if not cleaned["name"]:
            raise InputValidationError("Name cannot be empty", "name")
    if "skills" in cleaned:
        cleaned["skills"] = [s.strip() for s in cleaned["skills"] or [] if s and s.strip()]
    if cleaned.get("hourly_rate") is not None and cleaned["hourly_rate"] < 0:
        raise InputValidationError("Hourly rate cannot be negative", "hourly_rate")
    if "availability" in cleaned and cleaned["availability"] is None:
        raise InputValidationError("Availability status is required", "availability")
    return cleaned


def _apply(target, changes: dict[str, Any], fields: frozenset[str]) -> None:
    for name, value in changes.items():
        if name in fields:
            setattr(target, name, value)


class ProfileService:
    def __init__(self, db: AsyncSession, invalidator: CacheInvalidator):
        self.db = db
        self.repo = EntityRepository(db)
        self.invalidator = invalidator

    async def update_client_profile(self, client: Client, **changes) -> Client:
        changes = _clean(changes, ACCOUNT_FIELDS | CLIENT_FIELDS)
        async with transaction(self.db):
            current = await self.repo.find_client(client.id)
            _apply(current.user, changes, ACCOUNT_FIELDS)
            _apply(current, changes, CLIENT_FIELDS)
            projects, assignees = await self.repo.client_project_engagements(current.id)
        await self.invalidator.invalidate(
            MutationKind.CLIENT_PROFILE_UPDATED,
            MutationContext(
                client_user_id=current.user_id,
                related_project_ids=tuple(projects),
                related_freelancer_user_ids=tuple(assignees),
            ),
        )
        logger.info(
            "Client profile updated",
            extra={"user_id": str(current.user_id), "fields": sorted(changes)},
        )
        return await self.repo.find_client(client.id)

    async def update_freelancer_profile(self, freelancer: Freelancer, **changes) -> Freelancer:
        changes = _clean(changes, ACCOUNT_FIELDS | FREELANCER_FIELDS)
        return await self._update_freelancer(
            freelancer, changes, MutationKind.FREELANCER_PROFILE_UPDATED,
        )

    async def update_availability(self, freelancer: Freelancer, availability: bool) -> Freelancer:
        changes = _clean({"availability": availability}, FREELANCER_FIELDS)
        return await self._update_freelancer(
            freelancer, changes, MutationKind.AVAILABILITY_CHANGED,
        )

    async def _update_freelancer(
        self, freelancer: Freelancer, changes: dict[str, Any], kind: MutationKind,
    ) -> Freelancer:
        async with transaction(self.db):
            current = await self.repo.find_freelancer(freelancer.id)
            _apply(current.user, changes, ACCOUNT_FIELDS)
            _apply(current, changes, FREELANCER_FIELDS)
            projects, clients = await self.repo.applied_project_engagements(current.id)
        await self.invalidator.invalidate(
            kind,
            MutationContext(
                freelancer_user_id=current.user_id,
                related_project_ids=tuple(projects),
                related_client_user_ids=tuple(clients),
            ),
        )
        logger.info(
            "Freelancer profile updated",
            extra={"user_id": str(current.user_id), "fields": sorted(changes)},
        )
        return await self.repo.find_freelancer(freelancer.id)
