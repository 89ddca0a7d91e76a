"""Meeting Service — scheduled meetings, their lifecycle and answered-once requests."""

from datetime import datetime, timedelta, timezone

import pytest

from gigboard.core.domain_types import (
    MeetingRequestStatus, MeetingStatus, ProjectStatus, UserRole,
)
from gigboard.core.errors import (
    AccountInactiveError, InputValidationError, ResourceNotFoundError,
    TransitionConflictError,
)
from gigboard.infrastructure.repository import EntityRepository
from gigboard.services.meetings import MeetingService
from gigboard.services.read_views import ReadViews

from tests.seed import future, make_project, make_user

LINK = "https://meet.example.com/abc-defg-hij"


@pytest.fixture
def service(test_db, invalidator):
    return MeetingService(test_db, invalidator)


@pytest.fixture
async def meeting_request(service, engaged_project, freelancer_actor):
    return await service.request_meeting(
        freelancer_actor.freelancer, engaged_project.id, reason="Clarify the scope",
    )


# ─── Scheduling ──────────────────────────────────────────────────

async def test_client_schedules_meeting(service, engaged_project, client_actor, freelancer_actor):
    meeting = await service.schedule_meeting(
        client_actor.client, engaged_project.id, meeting_link=LINK, scheduled_at=future(),
    )

    assert meeting.status == MeetingStatus.SCHEDULED.value
    assert meeting.freelancer_id == freelancer_actor.freelancer.id
    assert meeting.title == f"Meeting: {engaged_project.title}"
    assert meeting.duration_minutes == 60


async def test_meeting_in_the_past_is_rejected(service, engaged_project, client_actor):
    with pytest.raises(InputValidationError):
        await service.schedule_meeting(
            client_actor.client, engaged_project.id, meeting_link=LINK,
            scheduled_at=datetime.now(timezone.utc) - timedelta(minutes=5),
        )


async def test_meeting_link_must_be_a_url(service, engaged_project, client_actor):
    with pytest.raises(InputValidationError):
        await service.schedule_meeting(
            client_actor.client, engaged_project.id, meeting_link="zoom room 4",
            scheduled_at=future(),
        )


async def test_no_meetings_before_assignment(service, test_db, client_actor):
    project = await make_project(test_db, client_actor.client, ProjectStatus.OPEN)
    with pytest.raises(TransitionConflictError):
        await service.schedule_meeting(
            client_actor.client, project.id, meeting_link=LINK, scheduled_at=future(),
        )


async def test_no_meeting_with_suspended_freelancer(
    service, test_db, engaged_project, client_actor, freelancer_actor,
):
    await EntityRepository(test_db).set_user_active(freelancer_actor.user_id, False)
    await test_db.commit()

    with pytest.raises(AccountInactiveError):
        await service.schedule_meeting(
            client_actor.client, engaged_project.id, meeting_link=LINK,
            scheduled_at=future(),
        )


# ─── Requests ────────────────────────────────────────────────────

async def test_request_starts_pending(meeting_request, client_actor):
    assert meeting_request.status == MeetingRequestStatus.PENDING.value
    assert meeting_request.client_id == client_actor.client.id
    assert meeting_request.preferred_duration == 30


async def test_only_assigned_freelancer_can_request(
    service, engaged_project, other_freelancer,
):
    with pytest.raises(ResourceNotFoundError):
        await service.request_meeting(
            other_freelancer.freelancer, engaged_project.id, reason="Hello",
        )


async def test_approval_creates_linked_meeting(service, meeting_request, client_actor):
    answered, meeting = await service.approve_meeting_request(
        client_actor.client, meeting_request.id,
        meeting_link=LINK, scheduled_at=future(48), response_note="See you then",
    )

    assert answered.status == MeetingRequestStatus.APPROVED.value
    assert answered.created_meeting_id == meeting.id
    assert answered.responded_at is not None
    assert meeting.duration_minutes == meeting_request.preferred_duration
    assert meeting.description == "Requested: Clarify the scope"


async def test_request_is_answered_once(service, meeting_request, client_actor):
    await service.reject_meeting_request(
        client_actor.client, meeting_request.id, "Not needed yet",
    )

    with pytest.raises(TransitionConflictError) as exc_info:
        await service.approve_meeting_request(
            client_actor.client, meeting_request.id, meeting_link=LINK,
            scheduled_at=future(),
        )
    assert exc_info.value.context.current_status == MeetingRequestStatus.REJECTED.value


async def test_rejection_needs_note(service, meeting_request, client_actor):
    with pytest.raises(InputValidationError):
        await service.reject_meeting_request(client_actor.client, meeting_request.id, " ")


async def test_other_client_cannot_answer(service, test_db, meeting_request):
    stranger = await make_user(test_db, UserRole.CLIENT, "globex@example.com")
    with pytest.raises(ResourceNotFoundError):
        await service.reject_meeting_request(stranger.client, meeting_request.id, "No")


# ─── Lifecycle ───────────────────────────────────────────────────

@pytest.fixture
async def meeting(service, engaged_project, client_actor):
    return await service.schedule_meeting(
        client_actor.client, engaged_project.id, meeting_link=LINK, scheduled_at=future(),
    )


async def test_reschedule_records_reason_and_time(service, meeting, client_actor):
    moved = await service.reschedule_meeting(
        client_actor.client, meeting.id,
        scheduled_at=future(72), reason="Client travelling", duration_minutes=45,
    )

    assert moved.status == MeetingStatus.RESCHEDULED.value
    assert moved.reschedule_reason == "Client travelling"
    assert moved.duration_minutes == 45


async def test_reschedule_needs_reason(service, meeting, client_actor):
    with pytest.raises(InputValidationError) as exc_info:
        await service.reschedule_meeting(
            client_actor.client, meeting.id, scheduled_at=future(), reason="  ",
        )
    assert exc_info.value.field == "reason"


async def test_rescheduled_meeting_can_move_again(service, meeting, client_actor):
    await service.reschedule_meeting(
        client_actor.client, meeting.id, scheduled_at=future(48), reason="Clash",
    )
    again = await service.reschedule_meeting(
        client_actor.client, meeting.id, scheduled_at=future(96), reason="Another clash",
    )
    assert again.reschedule_reason == "Another clash"


async def test_cancelled_meeting_is_final(service, test_db, meeting, client_actor):
    meeting_id = meeting.id
    cancelled = await service.cancel_meeting(client_actor.client, meeting_id, "No longer needed")
    assert cancelled.status == MeetingStatus.CANCELLED.value
    assert cancelled.notes == "Cancellation Reason: No longer needed"

    with pytest.raises(TransitionConflictError) as exc_info:
        await service.complete_meeting(client_actor.client, meeting_id)
    assert exc_info.value.context.current_status == MeetingStatus.CANCELLED.value

    stored = await EntityRepository(test_db).find_meeting(meeting_id)
    assert stored.status == MeetingStatus.CANCELLED.value


async def test_completed_meeting_cannot_be_rescheduled(service, meeting, client_actor):
    done = await service.complete_meeting(
        client_actor.client, meeting.id, notes="Scope agreed", next_steps="Send wireframes",
    )
    assert done.status == MeetingStatus.COMPLETED.value
    assert done.notes == "Meeting Notes: Scope agreed"
    assert done.description.endswith("Next Steps: Send wireframes")

    with pytest.raises(TransitionConflictError):
        await service.reschedule_meeting(
            client_actor.client, done.id, scheduled_at=future(), reason="Too late",
        )


async def test_meeting_action_dispatches(service, meeting, client_actor):
    done = await service.meeting_action(
        client_actor.client, meeting.id, "complete", notes="Went well",
    )
    assert done.status == MeetingStatus.COMPLETED.value


async def test_unknown_meeting_action_is_rejected(service, meeting, client_actor):
    with pytest.raises(InputValidationError) as exc_info:
        await service.meeting_action(client_actor.client, meeting.id, "archive")
    assert exc_info.value.field == "action"


async def test_other_client_cannot_cancel(service, test_db, meeting):
    stranger = await make_user(test_db, UserRole.CLIENT, "globex@example.com")
    with pytest.raises(ResourceNotFoundError):
        await service.cancel_meeting(stranger.client, meeting.id, "Mine now")


async def test_freelancer_reschedule_request_only_adds_notes(
    service, meeting, freelancer_actor,
):
    updated = await service.request_reschedule(
        freelancer_actor.freelancer, meeting.id, "Doctor appointment",
        suggested_dates="Friday or Monday",
    )

    assert updated.status == MeetingStatus.SCHEDULED.value
    assert updated.notes == (
        "Freelancer Reschedule Request: Doctor appointment\nSuggested Dates: Friday or Monday"
    )


async def test_no_reschedule_request_on_closed_meeting(
    service, meeting, client_actor, freelancer_actor,
):
    await service.cancel_meeting(client_actor.client, meeting.id, "Dropped")
    with pytest.raises(TransitionConflictError):
        await service.request_reschedule(freelancer_actor.freelancer, meeting.id, "Please")


async def test_cancellation_refreshes_both_meeting_lists(
    service, test_db, cache, grid, meeting, client_actor, freelancer_actor,
):
    views = ReadViews(test_db, cache, grid)
    for actor in (client_actor, freelancer_actor):
        read = await views.meetings(actor, MeetingStatus.SCHEDULED.value, 1, 10)
        assert read.data["total"] == 1
        assert (await views.meetings(actor, None, 1, 10)).data["total"] == 1

    await service.cancel_meeting(client_actor.client, meeting.id, "Dropped")

    for actor in (client_actor, freelancer_actor):
        scheduled = await views.meetings(actor, MeetingStatus.SCHEDULED.value, 1, 10)
        everything = await views.meetings(actor, None, 1, 10)
        assert scheduled.cached is False and scheduled.data["total"] == 0
        assert everything.data["items"][0]["status"] == MeetingStatus.CANCELLED.value
