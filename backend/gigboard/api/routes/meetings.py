"""Meeting Routes — client-scheduled meetings, their lifecycle and freelancer requests."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import (
    get_actor, get_client, get_freelancer, get_meeting_service, get_read_views,
)
from gigboard.core.domain_types import UserRole
from gigboard.core.errors import PermissionDeniedError
from gigboard.models import Client, Freelancer
from gigboard.schemas.meetings import (
    MeetingAction, MeetingCancel, MeetingComplete, MeetingCreate, MeetingRequestApproval,
    MeetingRequestCreate, MeetingRequestRejection, MeetingReschedule, RescheduleRequest,
)
from gigboard.services.actors import Actor
from gigboard.services.meetings import MeetingService
from gigboard.services.read_views import ReadViews, meeting_dict, meeting_request_dict

router = APIRouter(prefix="/api/v1/meetings", tags=["meetings"])


def _participant(actor: Actor) -> Actor:
    if actor.role == UserRole.ADMIN:
        raise PermissionDeniedError("Meetings are between clients and freelancers")
    return actor


@router.post("", status_code=status.HTTP_201_CREATED)
async def schedule_meeting(
    body: MeetingCreate,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = await service.schedule_meeting(
        client,
        body.project_id,
        meeting_link=body.meeting_link,
        scheduled_at=body.scheduled_at,
        title=body.title,
        description=body.description,
        duration_minutes=body.duration_minutes,
    )
    return {"message": "Meeting scheduled", "meeting": meeting_dict(meeting)}


@router.get("")
async def list_meetings(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.meetings(_participant(actor), status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/projects/{project_id}")
async def list_project_meetings(
    project_id: UUID,
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.project_meetings(
        _participant(actor), project_id, status_filter, page, limit,
    )
    return {**read.data, "cached": read.cached}


@router.put("/{meeting_id}/reschedule")
async def reschedule_meeting(
    meeting_id: UUID,
    body: MeetingReschedule,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = await service.reschedule_meeting(client, meeting_id, **body.model_dump())
    return {"message": "Meeting rescheduled", "meeting": meeting_dict(meeting)}


@router.put("/{meeting_id}/cancel")
async def cancel_meeting(
    meeting_id: UUID,
    body: MeetingCancel,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = await service.cancel_meeting(client, meeting_id, body.reason)
    return {"message": "Meeting cancelled", "meeting": meeting_dict(meeting)}


@router.put("/{meeting_id}/complete")
async def complete_meeting(
    meeting_id: UUID,
    body: MeetingComplete,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = await service.complete_meeting(client, meeting_id, **body.model_dump())
    return {"message": "Meeting marked as completed", "meeting": meeting_dict(meeting)}


@router.put("/{meeting_id}/action")
async def meeting_action(
    meeting_id: UUID,
    body: MeetingAction,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    fields = body.model_dump(exclude={"action"})
    meeting = await service.meeting_action(client, meeting_id, body.action, **fields)
    return {"action": body.action, "meeting": meeting_dict(meeting)}


@router.put("/{meeting_id}/request-reschedule")
async def request_reschedule(
    meeting_id: UUID,
    body: RescheduleRequest,
    freelancer: Freelancer = Depends(get_freelancer),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = await service.request_reschedule(
        freelancer, meeting_id, body.reason, body.suggested_dates,
    )
    return {"message": "Reschedule request sent", "meeting": meeting_dict(meeting)}


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def request_meeting(
    body: MeetingRequestCreate,
    freelancer: Freelancer = Depends(get_freelancer),
    service: MeetingService = Depends(get_meeting_service),
):
    request = await service.request_meeting(
        freelancer, body.project_id,
        reason=body.reason, preferred_duration=body.preferred_duration,
    )
    return {"message": "Meeting request sent", "request": meeting_request_dict(request)}


@router.get("/requests")
async def list_meeting_requests(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.meeting_requests(_participant(actor), status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.post("/requests/{request_id}/approve")
async def approve_meeting_request(
    request_id: UUID,
    body: MeetingRequestApproval,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    request, meeting = await service.approve_meeting_request(
        client, request_id, **body.model_dump(),
    )
    return {
        "message": "Meeting request approved",
        "request": meeting_request_dict(request),
        "meeting": meeting_dict(meeting),
    }


@router.post("/requests/{request_id}/reject")
async def reject_meeting_request(
    request_id: UUID,
    body: MeetingRequestRejection,
    client: Client = Depends(get_client),
    service: MeetingService = Depends(get_meeting_service),
):
    request = await service.reject_meeting_request(client, request_id, body.response_note)
    return {"message": "Meeting request rejected", "request": meeting_request_dict(request)}
