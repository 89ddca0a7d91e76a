"""Meeting Schemas — scheduling, lifecycle and meeting-request bodies.

Invariants:
    - scheduled_at must be in the future; checked by the service (clock-dependent)
    - response_note is required on rejection; checked by the service
    - A reschedule or cancellation carries a non-empty reason
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class MeetingCreate(BaseModel):
    project_id: UUID
    meeting_link: str = Field(min_length=8, max_length=2000)
    scheduled_at: datetime
    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=2000)
    duration_minutes: int = Field(60, ge=15, le=480)


class MeetingRequestCreate(BaseModel):
    project_id: UUID
    reason: str = Field(min_length=1, max_length=2000)
    preferred_duration: int = Field(30, ge=15, le=480)


class MeetingRequestApproval(BaseModel):
    meeting_link: str = Field(min_length=8, max_length=2000)
    scheduled_at: datetime
    title: str | None = Field(None, max_length=200)
    duration_minutes: int | None = Field(None, ge=15, le=480)
    response_note: str | None = Field(None, max_length=2000)


class MeetingRequestRejection(BaseModel):
    response_note: str | None = Field(None, max_length=2000)


class MeetingReschedule(BaseModel):
    scheduled_at: datetime
    reason: str = Field(min_length=1, max_length=2000)
    duration_minutes: int | None = Field(None, ge=15, le=480)
    meeting_link: str | None = Field(None, min_length=8, max_length=2000)


class MeetingCancel(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


class MeetingComplete(BaseModel):
    notes: str | None = Field(None, max_length=5000)
    next_steps: str | None = Field(None, max_length=5000)


class MeetingAction(BaseModel):
    """Either a reschedule (scheduled_at, reason) or a completion (notes, next_steps)."""
    action: str = Field(pattern=r"^(reschedule|complete)$")
    scheduled_at: datetime | None = None
    reason: str | None = Field(None, max_length=2000)
    duration_minutes: int | None = Field(None, ge=15, le=480)
    meeting_link: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=5000)
    next_steps: str | None = Field(None, max_length=5000)


class RescheduleRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)
    suggested_dates: str | None = Field(None, max_length=1000)
