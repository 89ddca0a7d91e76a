"""Rating Service — counterpart ratings on completed projects and aggregate upkeep."""

import pytest

from gigboard.core import cache_keys as ck
from gigboard.core.domain_types import ProjectStatus, RatingDirection, UserRole
from gigboard.core.errors import (
    DuplicateRatingError, InputValidationError, PermissionDeniedError,
    ResourceNotFoundError, TransitionConflictError,
)
from gigboard.infrastructure.repository import EntityRepository
from gigboard.services.rating_aggregator import RecomputingRatingAggregator
from gigboard.services.rating_service import RatingService

from tests.seed import make_project, make_user


@pytest.fixture
def service(test_db, invalidator):
    return RatingService(test_db, invalidator, RecomputingRatingAggregator())


@pytest.fixture
async def completed_project(test_db, client_actor, freelancer_actor):
    return await make_project(
        test_db, client_actor.client, ProjectStatus.COMPLETED,
        assigned_to=freelancer_actor.freelancer.id,
    )


async def test_client_rates_freelancer(
    service, test_db, completed_project, client_actor, freelancer_actor,
):
    outcome = await service.rate_counterpart(
        client_actor, completed_project.id, 5, "Great work",
    )

    assert outcome.rating.rated_id == freelancer_actor.user_id
    assert outcome.rating.rater_type == RatingDirection.CLIENT_TO_FREELANCER.value
    assert outcome.new_average == 5.0
    profile = await EntityRepository(test_db).find_freelancer(freelancer_actor.freelancer.id)
    assert profile.ratings == 5.0


async def test_freelancer_rates_client(
    service, test_db, completed_project, client_actor, freelancer_actor,
):
    outcome = await service.rate_counterpart(freelancer_actor, completed_project.id, 3)

    assert outcome.rating.rated_id == client_actor.user_id
    assert outcome.rating.rater_type == RatingDirection.FREELANCER_TO_CLIENT.value
    profile = await EntityRepository(test_db).find_client(client_actor.client.id)
    assert profile.ratings == 3.0


async def test_average_spans_projects(
    service, test_db, completed_project, client_actor, freelancer_actor,
):
    second = await make_project(
        test_db, client_actor.client, ProjectStatus.COMPLETED,
        assigned_to=freelancer_actor.freelancer.id, title="Second project",
    )
    await service.rate_counterpart(client_actor, completed_project.id, 5)
    outcome = await service.rate_counterpart(client_actor, second.id, 2)

    assert outcome.new_average == 3.5


async def test_rating_twice_is_duplicate(service, completed_project, client_actor):
    await service.rate_counterpart(client_actor, completed_project.id, 4)
    with pytest.raises(DuplicateRatingError):
        await service.rate_counterpart(client_actor, completed_project.id, 1)


async def test_rating_requires_completed_project(service, engaged_project, client_actor):
    with pytest.raises(TransitionConflictError):
        await service.rate_counterpart(client_actor, engaged_project.id, 4)


async def test_non_participant_sees_not_found(
    service, completed_project, other_freelancer,
):
    with pytest.raises(ResourceNotFoundError):
        await service.rate_counterpart(other_freelancer, completed_project.id, 4)


async def test_admin_cannot_rate(service, completed_project, admin_actor):
    with pytest.raises(PermissionDeniedError):
        await service.rate_counterpart(admin_actor, completed_project.id, 4)


@pytest.mark.parametrize("stars", [0, 6])
async def test_rating_out_of_range(service, completed_project, client_actor, stars):
    with pytest.raises(InputValidationError):
        await service.rate_counterpart(client_actor, completed_project.id, stars)


async def test_rating_invalidates_public_summary(
    service, completed_project, client_actor, freelancer_actor, cache,
):
    key = ck.PUBLIC_USER_RATING_SUMMARY.key(freelancer_actor.user_id)
    await cache.set(key, {"average": 0}, 60)

    await service.rate_counterpart(client_actor, completed_project.id, 4)

    assert await cache.get(key) is None


async def test_update_rating_recomputes_average(
    service, test_db, completed_project, client_actor, freelancer_actor,
):
    outcome = await service.rate_counterpart(client_actor, completed_project.id, 2)

    updated = await service.update_rating(
        client_actor, outcome.rating.id, rating=4, review="Fixed everything",
    )

    assert updated.rating.rating == 4
    assert updated.rating.review == "Fixed everything"
    assert updated.new_average == 4.0


async def test_only_author_can_update(
    service, test_db, completed_project, client_actor,
):
    outcome = await service.rate_counterpart(client_actor, completed_project.id, 2)
    intruder = await make_user(test_db, UserRole.CLIENT, "intruder@example.com")

    with pytest.raises(ResourceNotFoundError):
        await service.update_rating(intruder, outcome.rating.id, rating=5)
