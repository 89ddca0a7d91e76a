"""View freshness — a cached view read after a mutation shows the mutation.

Each test warms the views that embed the changed row, runs one mutation and reads
them again: the read must miss the cache and carry the new value.
"""

import pytest

from gigboard.core.domain_types import ApplicationStatus, ProjectStatus, UserRole
from gigboard.services.application_service import ApplicationService
from gigboard.services.project_service import ProjectService
from gigboard.services.rating_aggregator import RecomputingRatingAggregator
from gigboard.services.rating_service import RatingService
from gigboard.services.read_views import ReadViews

from tests.seed import make_application, make_project, make_user


@pytest.fixture
def views(test_db, cache, grid):
    return ReadViews(test_db, cache, grid)


def _project_status(read) -> list[str]:
    return [item["project"]["status"] for item in read.data["items"]]


@pytest.mark.parametrize("status_filter", [None, ApplicationStatus.APPROVED.value])
async def test_completion_request_refreshes_freelancer_applications(
    views, test_db, invalidator, engaged_project, freelancer_actor, status_filter,
):
    warm = await views.freelancer_applications(
        freelancer_actor.freelancer, status_filter, 1, 10,
    )
    assert _project_status(warm) == [ProjectStatus.ASSIGNED.value]

    await ProjectService(test_db, invalidator).request_completion(
        freelancer_actor.freelancer, engaged_project.id,
    )

    fresh = await views.freelancer_applications(
        freelancer_actor.freelancer, status_filter, 1, 10,
    )
    assert fresh.cached is False
    assert _project_status(fresh) == [ProjectStatus.PENDING_COMPLETION.value]


async def test_completion_approval_refreshes_freelancer_applications(
    views, test_db, invalidator, client_actor, freelancer_actor,
):
    project = await make_project(
        test_db, client_actor.client, ProjectStatus.PENDING_COMPLETION,
        assigned_to=freelancer_actor.freelancer.id,
    )
    await make_application(
        test_db, project, freelancer_actor.freelancer, ApplicationStatus.APPROVED,
    )
    await views.freelancer_applications(freelancer_actor.freelancer, None, 1, 10)

    await ProjectService(test_db, invalidator).approve_completion(
        client_actor.client, project.id,
    )

    fresh = await views.freelancer_applications(freelancer_actor.freelancer, None, 1, 10)
    assert _project_status(fresh) == [ProjectStatus.COMPLETED.value]


async def test_approval_refreshes_previously_rejected_applicant(
    views, test_db, invalidator, client_actor, freelancer_actor, other_freelancer,
):
    project = await make_project(test_db, client_actor.client)
    chosen = await make_application(test_db, project, freelancer_actor.freelancer)
    await make_application(
        test_db, project, other_freelancer.freelancer, ApplicationStatus.REJECTED,
    )
    for status_filter in (None, ApplicationStatus.REJECTED.value):
        warm = await views.freelancer_applications(
            other_freelancer.freelancer, status_filter, 1, 10,
        )
        assert _project_status(warm) == [ProjectStatus.OPEN.value]

    await ApplicationService(test_db, invalidator).approve_application(
        client_actor.client, project.id, chosen.id,
    )

    for status_filter in (None, ApplicationStatus.REJECTED.value):
        fresh = await views.freelancer_applications(
            other_freelancer.freelancer, status_filter, 1, 10,
        )
        assert fresh.cached is False
        assert _project_status(fresh) == [ProjectStatus.ASSIGNED.value]


async def test_rating_refreshes_other_clients_application_lists(
    views, test_db, invalidator, client_actor, freelancer_actor,
):
    finished = await make_project(
        test_db, client_actor.client, ProjectStatus.COMPLETED,
        assigned_to=freelancer_actor.freelancer.id,
    )
    globex = await make_user(test_db, UserRole.CLIENT, "globex@example.com")
    elsewhere = await make_project(test_db, globex.client, title="Inventory tool")
    await make_application(test_db, elsewhere, freelancer_actor.freelancer)
    await views.project_applications(globex.client, elsewhere.id, None, 1, 10)
    await views.client_applications(globex.client, None, 1, 10)

    await RatingService(test_db, invalidator, RecomputingRatingAggregator()).rate_counterpart(
        client_actor, finished.id, 4,
    )

    listing = await views.project_applications(globex.client, elsewhere.id, None, 1, 10)
    inbox = await views.client_applications(globex.client, None, 1, 10)
    assert listing.cached is False and inbox.cached is False
    assert listing.data["items"][0]["freelancer"]["ratings"] == 4.0
    assert inbox.data["items"][0]["freelancer"]["ratings"] == 4.0
