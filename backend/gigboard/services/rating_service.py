"""Rating Service — rate the counterpart of a completed project, or revise a rating.

Invariants:
    - Only the two participants of a COMPLETED project can rate, each the other party
    - The rating row write and the aggregate recompute share one transaction
    - One rating per (project, rater, rated): pre-check plus unique constraint backstop
    - A rating of a freelancer invalidates the application lists of every project they
      applied to (and those projects' clients), collected inside the transaction
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import ProjectStatus, RatingDirection, UserRole
from gigboard.core.errors import (
    DuplicateRatingError, ResourceNotFoundError, TransitionConflictError,
)
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.core.rating_aggregate import (
    RatingAggregator, direction_for_rater, validate_rating_value,
)
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Project, Rating
from gigboard.services.actors import Actor
from gigboard.services.cache_invalidator import CacheInvalidator

logger = logging.getLogger(__name__)


@dataclass
class RatingOutcome:
    rating: Rating
    new_average: float


class RatingService:
    def __init__(
        self,
        db: AsyncSession,
        invalidator: CacheInvalidator,
        aggregator: RatingAggregator,
    ):
        self.db = db
        self.repo = EntityRepository(db)
        self.invalidator = invalidator
        self.aggregator = aggregator

    async def rate_counterpart(
        self,
        actor: Actor,
        project_id: UUID,
        rating: int,
        review: str | None = None,
    ) -> RatingOutcome:
        direction = direction_for_rater(actor.role)
        value = validate_rating_value(rating)
        try:
            async with transaction(self.db):
                project = await self.repo.find_project(project_id)
                client_user_id, freelancer_user_id = await self._participants(
                    actor, project, project_id,
                )
                if project.status != ProjectStatus.COMPLETED.value:
                    raise TransitionConflictError("Project", project.status, "rate")
                rated_id = (
                    freelancer_user_id
                    if direction == RatingDirection.CLIENT_TO_FREELANCER
                    else client_user_id
                )
                if await self.repo.find_rating_by_triple(project.id, actor.user_id, rated_id):
                    raise DuplicateRatingError()
                row = Rating(
                    project_id=project.id,
                    rater_id=actor.user_id,
                    rated_id=rated_id,
                    rater_type=direction.value,
                    rating=value,
                    review=review,
                )
                self.db.add(row)
                await self.db.flush()
                average = await self.aggregator.refresh(self.db, rated_id, direction)
                context = await self._context(
                    project, client_user_id, freelancer_user_id, direction,
                )
        except IntegrityError as e:
            raise DuplicateRatingError() from e
        await self.invalidator.invalidate(MutationKind.RATING_RECORDED, context)
        return RatingOutcome(rating=row, new_average=average)

    async def update_rating(
        self,
        actor: Actor,
        rating_id: UUID,
        rating: int | None = None,
        review: str | None = None,
    ) -> RatingOutcome:
        value = validate_rating_value(rating) if rating is not None else None
        async with transaction(self.db):
            row = await self.repo.find_rating(rating_id)
            if row is None or row.rater_id != actor.user_id:
                raise ResourceNotFoundError("Rating", str(rating_id))
            if value is not None:
                row.rating = value
            if review is not None:
                row.review = review
            await self.db.flush()
            direction = RatingDirection(row.rater_type)
            average = await self.aggregator.refresh(self.db, row.rated_id, direction)
            project = await self.repo.find_project(row.project_id)
            freelancer = await self.repo.find_freelancer(project.assigned_to)
            context = await self._context(
                project, project.client.user_id, freelancer.user_id, direction,
            )
        await self.invalidator.invalidate(MutationKind.RATING_RECORDED, context)
        return RatingOutcome(rating=row, new_average=average)

    async def _participants(
        self, actor: Actor, project: Project | None, project_id: UUID,
    ) -> tuple[UUID, UUID]:
        """(client user id, freelancer user id) when actor took part, else NOT_FOUND."""
        if project is None or project.assigned_to is None:
            raise ResourceNotFoundError("Project", str(project_id))
        if actor.role == UserRole.CLIENT and project.client_id != actor.client.id:
            raise ResourceNotFoundError("Project", str(project_id))
        if actor.role == UserRole.FREELANCER and project.assigned_to != actor.freelancer.id:
            raise ResourceNotFoundError("Project", str(project_id))
        freelancer = await self.repo.find_freelancer(project.assigned_to)
        return project.client.user_id, freelancer.user_id

    async def _context(
        self,
        project: Project,
        client_user_id: UUID,
        freelancer_user_id: UUID,
        direction: RatingDirection,
    ) -> MutationContext:
        """A freelancer's new average shows in every application list they appear in."""
        related_projects: list[UUID] = []
        related_clients: list[UUID] = []
        if direction == RatingDirection.CLIENT_TO_FREELANCER:
            related_projects, related_clients = (
                await self.repo.applied_project_engagements(project.assigned_to)
            )
        return MutationContext(
            client_user_id=client_user_id,
            freelancer_user_id=freelancer_user_id,
            project_id=project.id,
            related_project_ids=tuple(related_projects),
            related_client_user_ids=tuple(related_clients),
        )
