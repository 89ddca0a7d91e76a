"""Service test fixtures — engagements built on the root actors."""

import pytest

from gigboard.core.domain_types import ApplicationStatus, ProjectStatus

from tests.seed import make_application, make_project


@pytest.fixture
async def engaged_project(test_db, client_actor, freelancer_actor):
    """ASSIGNED project with an APPROVED application for freelancer_actor."""
    project = await make_project(
        test_db, client_actor.client, ProjectStatus.ASSIGNED,
        assigned_to=freelancer_actor.freelancer.id,
    )
    await make_application(
        test_db, project, freelancer_actor.freelancer, ApplicationStatus.APPROVED,
    )
    return project
