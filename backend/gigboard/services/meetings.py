"""Meeting Service — client-scheduled meetings and freelancer meeting requests.

Invariants:
    - Meetings exist only for ASSIGNED or PENDING_COMPLETION projects with an APPROVED
      application; both parties must be active
    - A meeting request is answered once (compare-and-set on PENDING); approval creates
      the meeting in the same transaction and links it via created_meeting_id
    - A meeting leaves SCHEDULED or RESCHEDULED once: reschedule, cancel and complete are
      compare-and-set on the open statuses, so COMPLETED and CANCELLED are final
    - A freelancer reschedule request only appends to the notes; the client decides
    - Invalidation after commit, same as every other mutation
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import (
    MeetingRequestStatus, MeetingStatus, ProjectStatus,
)
from gigboard.core.errors import (
    AccountInactiveError, BusinessRuleError, InputValidationError,
    ResourceNotFoundError, TransitionConflictError,
)
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Application, Client, Freelancer, Meeting, MeetingRequest, Project
from gigboard.services.cache_invalidator import CacheInvalidator

logger = logging.getLogger(__name__)

MEETING_STATUSES = frozenset({ProjectStatus.ASSIGNED, ProjectStatus.PENDING_COMPLETION})
OPEN_MEETING_STATUSES = (MeetingStatus.SCHEDULED, MeetingStatus.RESCHEDULED)
MEETING_ACTIONS = ("reschedule", "complete")


def _future(scheduled_at: datetime) -> datetime:
    if scheduled_at.tzinfo is None:
        scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
    if scheduled_at <= datetime.now(timezone.utc):
        raise InputValidationError(
            "Meeting must be scheduled for a future date and time", "scheduled_at",
        )
    return scheduled_at


def _meeting_link(link: str | None) -> str:
    cleaned = (link or "").strip()
    if not cleaned.startswith(("https://", "http://")):
        raise InputValidationError("Please provide a valid meeting link", "meeting_link")
    return cleaned


def _required(value: str | None, message: str, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InputValidationError(message, field)
    return cleaned


def _append(existing: str | None, label: str, text: str) -> str:
    entry = f"{label}: {text}"
    return f"{existing}\n\n{entry}" if existing else entry


class MeetingService:
    def __init__(self, db: AsyncSession, invalidator: CacheInvalidator):
        self.db = db
        self.repo = EntityRepository(db)
        self.invalidator = invalidator

    async def schedule_meeting(
        self,
        client: Client,
        project_id: UUID,
        *,
        meeting_link: str,
        scheduled_at: datetime,
        title: str | None = None,
        description: str | None = None,
        duration_minutes: int = 60,
    ) -> Meeting:
        link = _meeting_link(meeting_link)
        when = _future(scheduled_at)
        async with transaction(self.db):
            project = await self._project_or_404(project_id)
            if project.client_id != client.id:
                raise ResourceNotFoundError("Project", str(project_id))
            application, freelancer = await self._engagement(project, "schedule meeting")
            if not freelancer.user.is_active:
                raise AccountInactiveError(
                    "Cannot create meeting. Freelancer account is inactive.",
                )
            meeting = Meeting(
                project_id=project.id,
                application_id=application.id,
                client_id=client.id,
                freelancer_id=freelancer.id,
                title=title or f"Meeting: {project.title}",
                description=description,
                meeting_link=link,
                scheduled_at=when,
                duration_minutes=duration_minutes,
                status=MeetingStatus.SCHEDULED.value,
            )
            self.db.add(meeting)
            await self.db.flush()
        await self.invalidator.invalidate(
            MutationKind.MEETING_SCHEDULED,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=project.id,
            ),
        )
        return meeting

    async def request_meeting(
        self,
        freelancer: Freelancer,
        project_id: UUID,
        *,
        reason: str,
        preferred_duration: int = 30,
    ) -> MeetingRequest:
        if not reason or not reason.strip():
            raise InputValidationError("Meeting request reason is required", "reason")
        async with transaction(self.db):
            project = await self._project_or_404(project_id)
            if project.assigned_to != freelancer.id:
                raise ResourceNotFoundError("Project", str(project_id))
            if not project.client.user.is_active:
                raise AccountInactiveError(
                    "Cannot request meeting. Client account is inactive.",
                )
            application, _ = await self._engagement(project, "request meeting")
            request = MeetingRequest(
                project_id=project.id,
                application_id=application.id,
                client_id=project.client_id,
                freelancer_id=freelancer.id,
                reason=reason.strip(),
                preferred_duration=preferred_duration,
                status=MeetingRequestStatus.PENDING.value,
            )
            self.db.add(request)
            await self.db.flush()
        await self.invalidator.invalidate(
            MutationKind.MEETING_REQUESTED,
            MutationContext(
                client_user_id=project.client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=project.id,
            ),
        )
        return request

    async def approve_meeting_request(
        self,
        client: Client,
        request_id: UUID,
        *,
        meeting_link: str,
        scheduled_at: datetime,
        title: str | None = None,
        duration_minutes: int | None = None,
        response_note: str | None = None,
    ) -> tuple[MeetingRequest, Meeting]:
        link = _meeting_link(meeting_link)
        when = _future(scheduled_at)
        async with transaction(self.db):
            request = await self._owned_request(client, request_id)
            project = await self._project_or_404(request.project_id)
            meeting = Meeting(
                project_id=request.project_id,
                application_id=request.application_id,
                client_id=client.id,
                freelancer_id=request.freelancer_id,
                title=title or f"Meeting: {project.title}",
                description=f"Requested: {request.reason}",
                meeting_link=link,
                scheduled_at=when,
                duration_minutes=duration_minutes or request.preferred_duration,
                status=MeetingStatus.SCHEDULED.value,
            )
            self.db.add(meeting)
            await self.db.flush()
            await self._answer(
                request, MeetingRequestStatus.APPROVED,
                response_note=response_note, created_meeting_id=meeting.id,
            )
            freelancer = await self.repo.find_freelancer(request.freelancer_id)
        await self.invalidator.invalidate(
            MutationKind.MEETING_REQUEST_APPROVED,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=request.project_id,
            ),
        )
        return await self.repo.find_meeting_request(request_id), meeting

    async def reject_meeting_request(
        self, client: Client, request_id: UUID, response_note: str | None,
    ) -> MeetingRequest:
        note = (response_note or "").strip()
        if not note:
            raise InputValidationError(
                "Response note is required when rejecting a meeting request",
                "response_note",
            )
        async with transaction(self.db):
            request = await self._owned_request(client, request_id)
            await self._answer(request, MeetingRequestStatus.REJECTED, response_note=note)
            freelancer = await self.repo.find_freelancer(request.freelancer_id)
        await self.invalidator.invalidate(
            MutationKind.MEETING_REQUEST_REJECTED,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=request.project_id,
            ),
        )
        return await self.repo.find_meeting_request(request_id)

    # ─── Meeting lifecycle ───────────────────────────────────────

    async def reschedule_meeting(
        self,
        client: Client,
        meeting_id: UUID,
        *,
        scheduled_at: datetime,
        reason: str,
        duration_minutes: int | None = None,
        meeting_link: str | None = None,
    ) -> Meeting:
        if scheduled_at is None:
            raise InputValidationError("New date and time are required", "scheduled_at")
        reason = _required(reason, "Reschedule reason is required", "reason")
        values = {"scheduled_at": _future(scheduled_at), "reschedule_reason": reason}
        if duration_minutes is not None:
            values["duration_minutes"] = duration_minutes
        if meeting_link is not None:
            values["meeting_link"] = _meeting_link(meeting_link)
        return await self._transition(
            client, meeting_id, MeetingStatus.RESCHEDULED, "reschedule meeting",
            MutationKind.MEETING_RESCHEDULED, lambda meeting: values,
        )

    async def cancel_meeting(self, client: Client, meeting_id: UUID, reason: str) -> Meeting:
        reason = _required(reason, "Cancellation reason is required", "reason")
        return await self._transition(
            client, meeting_id, MeetingStatus.CANCELLED, "cancel meeting",
            MutationKind.MEETING_CANCELLED,
            lambda meeting: {"notes": _append(meeting.notes, "Cancellation Reason", reason)},
        )

    async def complete_meeting(
        self,
        client: Client,
        meeting_id: UUID,
        *,
        notes: str | None = None,
        next_steps: str | None = None,
    ) -> Meeting:
        notes = (notes or "").strip()
        next_steps = (next_steps or "").strip()

        def closing_values(meeting: Meeting) -> dict:
            values = {}
            if notes:
                values["notes"] = _append(meeting.notes, "Meeting Notes", notes)
            if next_steps:
                values["description"] = _append(meeting.description, "Next Steps", next_steps)
            return values

        return await self._transition(
            client, meeting_id, MeetingStatus.COMPLETED, "complete meeting",
            MutationKind.MEETING_COMPLETED, closing_values,
        )

    async def meeting_action(
        self, client: Client, meeting_id: UUID, action: str, **fields,
    ) -> Meeting:
        """One entry point for the client's reschedule and complete buttons."""
        if action == "reschedule":
            return await self.reschedule_meeting(
                client, meeting_id,
                scheduled_at=fields.get("scheduled_at"),
                reason=fields.get("reason"),
                duration_minutes=fields.get("duration_minutes"),
                meeting_link=fields.get("meeting_link"),
            )
        if action == "complete":
            return await self.complete_meeting(
                client, meeting_id,
                notes=fields.get("notes"), next_steps=fields.get("next_steps"),
            )
        raise InputValidationError(
            f"Action must be one of: {', '.join(MEETING_ACTIONS)}", "action",
        )

    async def request_reschedule(
        self,
        freelancer: Freelancer,
        meeting_id: UUID,
        reason: str,
        suggested_dates: str | None = None,
    ) -> Meeting:
        reason = _required(reason, "Reschedule reason is required", "reason")
        text = f"{reason}\nSuggested Dates: {suggested_dates}" if suggested_dates else reason
        async with transaction(self.db):
            meeting = await self.repo.find_meeting(meeting_id)
            if meeting is None or meeting.freelancer_id != freelancer.id:
                raise ResourceNotFoundError("Meeting", str(meeting_id))
            current = MeetingStatus(meeting.status)
            # status unchanged; the guard fails if the client closed the meeting meanwhile
            if current not in OPEN_MEETING_STATUSES or not (
                await self.repo.compare_and_set_meeting_status(
                    meeting.id, (current,), current,
                    notes=_append(meeting.notes, "Freelancer Reschedule Request", text),
                )
            ):
                raise TransitionConflictError("Meeting", meeting.status, "request reschedule")
            client = await self.repo.find_client(meeting.client_id)
        await self.invalidator.invalidate(
            MutationKind.MEETING_NOTES_UPDATED,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=meeting.project_id,
            ),
        )
        return await self.repo.find_meeting(meeting_id)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _client_meeting(self, client: Client, meeting_id: UUID) -> Meeting:
        meeting = await self.repo.find_meeting(meeting_id)
        if meeting is None or meeting.client_id != client.id:
            raise ResourceNotFoundError("Meeting", str(meeting_id))
        return meeting

    async def _transition(
        self,
        client: Client,
        meeting_id: UUID,
        new: MeetingStatus,
        action: str,
        kind: MutationKind,
        values_for: Callable[[Meeting], dict],
    ) -> Meeting:
        async with transaction(self.db):
            meeting = await self._client_meeting(client, meeting_id)
            if not await self.repo.compare_and_set_meeting_status(
                meeting.id, OPEN_MEETING_STATUSES, new, **values_for(meeting),
            ):
                raise TransitionConflictError("Meeting", meeting.status, action)
            freelancer = await self.repo.find_freelancer(meeting.freelancer_id)
        await self.invalidator.invalidate(
            kind,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=meeting.project_id,
            ),
        )
        logger.info(
            f"Meeting {new.value.lower()}",
            extra={"meeting_id": str(meeting_id), "client_id": str(client.id)},
        )
        return await self.repo.find_meeting(meeting_id)

    async def _project_or_404(self, project_id: UUID) -> Project:
        project = await self.repo.find_project(project_id)
        if project is None:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _engagement(
        self, project: Project, action: str,
    ) -> tuple[Application, Freelancer]:
        if ProjectStatus(project.status) not in MEETING_STATUSES:
            raise TransitionConflictError("Project", project.status, action)
        application = await self.repo.find_approved_application(project.id)
        if application is None:
            raise BusinessRuleError(
                "No approved application found for this project",
                "NO_APPROVED_APPLICATION",
            )
        freelancer = await self.repo.find_freelancer(application.freelancer_id)
        return application, freelancer

    async def _owned_request(self, client: Client, request_id: UUID) -> MeetingRequest:
        request = await self.repo.find_meeting_request(request_id)
        if request is None or request.client_id != client.id:
            raise ResourceNotFoundError("Meeting request", str(request_id))
        return request

    async def _answer(
        self, request: MeetingRequest, status: MeetingRequestStatus, **values,
    ) -> None:
        if not await self.repo.compare_and_set_meeting_request_status(
            request.id, MeetingRequestStatus.PENDING, status,
            responded_at=datetime.now(timezone.utc), **values,
        ):
            raise TransitionConflictError(
                "Meeting request", request.status, "answer meeting request",
            )
