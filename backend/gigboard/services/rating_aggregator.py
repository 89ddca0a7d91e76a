"""Recomputing Rating Aggregator — O(n) mean over the rated user's ratings.

Invariants:
    - Runs inside the caller's transaction, after the rating row was written
    - The target profile row is locked (SELECT ... FOR UPDATE) before the row set is read,
      so two concurrent ratings of the same user serialize and the last writer sees both
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import RatingDirection
from gigboard.core.errors import ResourceNotFoundError
from gigboard.core.rating_aggregate import mean_rating
from gigboard.infrastructure.repository import EntityRepository


class RecomputingRatingAggregator:
    """RatingAggregator implementation (core/rating_aggregate.py)."""

    async def refresh(
        self, db: AsyncSession, rated_user_id: UUID, direction: RatingDirection,
    ) -> float:
        repo = EntityRepository(db)
        profile = await repo.lock_profile(direction, rated_user_id)
        if profile is None:
            raise ResourceNotFoundError("Rated profile", str(rated_user_id))
        mean = mean_rating(await repo.rating_values_for(rated_user_id, direction))
        await repo.store_rating_aggregate(profile, mean)
        return mean
