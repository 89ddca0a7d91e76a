"""Rating Routes — rate the other party of a completed project, revise, list."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import get_actor, get_rating_service, get_read_views
from gigboard.core.errors import PermissionDeniedError
from gigboard.core.domain_types import UserRole
from gigboard.schemas.projects import RatingCreate, RatingUpdate
from gigboard.services.actors import Actor
from gigboard.services.rating_service import RatingService
from gigboard.services.read_views import ReadViews, rating_dict

router = APIRouter(prefix="/api/v1/ratings", tags=["ratings"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def rate(
    body: RatingCreate,
    actor: Actor = Depends(get_actor),
    service: RatingService = Depends(get_rating_service),
):
    outcome = await service.rate_counterpart(
        actor, body.project_id, body.rating, body.review,
    )
    return {
        "message": "Rating submitted successfully",
        "rating": rating_dict(outcome.rating),
        "new_average": outcome.new_average,
    }


@router.patch("/{rating_id}")
async def update_rating(
    rating_id: UUID,
    body: RatingUpdate,
    actor: Actor = Depends(get_actor),
    service: RatingService = Depends(get_rating_service),
):
    outcome = await service.update_rating(actor, rating_id, body.rating, body.review)
    return {
        "message": "Rating updated successfully",
        "rating": rating_dict(outcome.rating),
        "new_average": outcome.new_average,
    }


@router.get("")
async def list_ratings(
    kind: str | None = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    views: ReadViews = Depends(get_read_views),
):
    """Ratings given, received, or both (type=all) for the calling user."""
    if actor.role == UserRole.ADMIN:
        raise PermissionDeniedError("Only clients and freelancers have ratings")
    read = await views.ratings(actor, kind, page, limit)
    return {**read.data, "cached": read.cached}
