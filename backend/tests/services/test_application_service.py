"""Application Service — apply, approve-with-sibling-rejection and reject."""

import pytest

from gigboard.core import cache_keys as ck
from gigboard.core.domain_types import ApplicationStatus, ProjectStatus, UserRole
from gigboard.core.errors import (
    BusinessRuleError, DuplicateApplicationError, InputValidationError,
    ResourceNotFoundError, TransitionConflictError,
)
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Freelancer
from gigboard.services.application_service import ApplicationService

from tests.seed import make_application, make_project, make_user


@pytest.fixture
def service(test_db, invalidator):
    return ApplicationService(test_db, invalidator)


@pytest.fixture
async def open_project(test_db, client_actor):
    return await make_project(test_db, client_actor.client, ProjectStatus.OPEN)


# ─── Apply ───────────────────────────────────────────────────────

async def test_apply_creates_pending_application(
    service, open_project, freelancer_actor, cache,
):
    stale_key = ck.FREELANCER_APPLICATIONS.key(
        freelancer_actor.user_id, filter_value=None, page=1, limit=10,
    )
    await cache.set(stale_key, {"items": []}, 60)

    application = await service.apply(
        freelancer_actor.freelancer, open_project.id, "  I can do this in a week.  ",
    )

    assert application.status == ApplicationStatus.PENDING.value
    assert application.proposal == "I can do this in a week."
    assert await cache.get(stale_key) is None


async def test_apply_twice_is_duplicate(service, open_project, freelancer_actor):
    await service.apply(freelancer_actor.freelancer, open_project.id, "First proposal")
    with pytest.raises(DuplicateApplicationError):
        await service.apply(freelancer_actor.freelancer, open_project.id, "Second proposal")


async def test_apply_requires_proposal(service, open_project, freelancer_actor):
    with pytest.raises(InputValidationError):
        await service.apply(freelancer_actor.freelancer, open_project.id, "   ")


async def test_unavailable_freelancer_cannot_apply(
    service, test_db, open_project, freelancer_actor,
):
    profile = await test_db.get(Freelancer, freelancer_actor.freelancer.id)
    profile.availability = False
    await test_db.commit()

    with pytest.raises(BusinessRuleError) as exc_info:
        await service.apply(freelancer_actor.freelancer, open_project.id, "Proposal")
    assert exc_info.value.code == "FREELANCER_UNAVAILABLE"


async def test_cannot_apply_to_project_under_review(
    service, test_db, client_actor, freelancer_actor,
):
    project = await make_project(test_db, client_actor.client, ProjectStatus.ADMIN_VERIFICATION)
    with pytest.raises(TransitionConflictError):
        await service.apply(freelancer_actor.freelancer, project.id, "Proposal")


async def test_cannot_apply_when_client_suspended(
    service, test_db, open_project, client_actor, freelancer_actor,
):
    await EntityRepository(test_db).set_user_active(client_actor.user_id, False)
    await test_db.commit()

    with pytest.raises(BusinessRuleError) as exc_info:
        await service.apply(freelancer_actor.freelancer, open_project.id, "Proposal")
    assert exc_info.value.code == "CLIENT_INACTIVE"


# ─── Approve ─────────────────────────────────────────────────────

async def test_approval_assigns_project_and_rejects_siblings(
    service, test_db, open_project, client_actor, freelancer_actor, other_freelancer,
):
    chosen = await make_application(test_db, open_project, freelancer_actor.freelancer)
    sibling = await make_application(test_db, open_project, other_freelancer.freelancer)

    result = await service.approve_application(
        client_actor.client, open_project.id, chosen.id,
    )

    assert result.application.status == ApplicationStatus.APPROVED.value
    assert result.project.status == ProjectStatus.ASSIGNED.value
    assert result.project.assigned_to == freelancer_actor.freelancer.id
    assert result.rejected_siblings == 1
    refreshed = await EntityRepository(test_db).find_application(sibling.id)
    assert refreshed.status == ApplicationStatus.REJECTED.value


async def test_sibling_freelancer_views_are_invalidated(
    service, test_db, open_project, client_actor, freelancer_actor, other_freelancer, cache,
):
    chosen = await make_application(test_db, open_project, freelancer_actor.freelancer)
    await make_application(test_db, open_project, other_freelancer.freelancer)
    sibling_dashboard = ck.FREELANCER_DASHBOARD.key(other_freelancer.user_id)
    await cache.set(sibling_dashboard, {"pending": 1}, 60)

    await service.approve_application(client_actor.client, open_project.id, chosen.id)

    assert await cache.get(sibling_dashboard) is None


async def test_rejected_sibling_cannot_be_approved_afterwards(
    service, test_db, open_project, client_actor, freelancer_actor, other_freelancer,
):
    chosen = await make_application(test_db, open_project, freelancer_actor.freelancer)
    sibling = await make_application(test_db, open_project, other_freelancer.freelancer)
    await service.approve_application(client_actor.client, open_project.id, chosen.id)

    with pytest.raises(TransitionConflictError) as exc_info:
        await service.approve_application(client_actor.client, open_project.id, sibling.id)
    assert exc_info.value.context.current_status == ApplicationStatus.REJECTED.value


async def test_second_approval_on_assigned_project_conflicts(
    service, test_db, open_project, client_actor, freelancer_actor, other_freelancer,
):
    chosen = await make_application(test_db, open_project, freelancer_actor.freelancer)
    await service.approve_application(client_actor.client, open_project.id, chosen.id)
    late = await make_application(test_db, open_project, other_freelancer.freelancer)

    with pytest.raises(TransitionConflictError) as exc_info:
        await service.approve_application(client_actor.client, open_project.id, late.id)
    assert exc_info.value.context.current_status == ProjectStatus.ASSIGNED.value


async def test_approval_by_other_client_is_not_found(
    service, test_db, open_project, freelancer_actor,
):
    stranger = await make_user(test_db, UserRole.CLIENT, "globex@example.com")
    application = await make_application(test_db, open_project, freelancer_actor.freelancer)

    with pytest.raises(ResourceNotFoundError):
        await service.approve_application(
            stranger.client, open_project.id, application.id,
        )


# ─── Reject ──────────────────────────────────────────────────────

async def test_reject_leaves_project_open(
    service, test_db, open_project, client_actor, freelancer_actor,
):
    application = await make_application(test_db, open_project, freelancer_actor.freelancer)

    rejected = await service.reject_application(
        client_actor.client, open_project.id, application.id,
    )

    assert rejected.status == ApplicationStatus.REJECTED.value
    project = await EntityRepository(test_db).find_project(open_project.id)
    assert project.status == ProjectStatus.OPEN.value
    assert project.assigned_to is None


async def test_application_from_other_project_is_not_found(
    service, test_db, open_project, client_actor, freelancer_actor,
):
    elsewhere = await make_project(test_db, client_actor.client, title="Another project")
    application = await make_application(test_db, elsewhere, freelancer_actor.freelancer)

    with pytest.raises(ResourceNotFoundError):
        await service.reject_application(
            client_actor.client, open_project.id, application.id,
        )
