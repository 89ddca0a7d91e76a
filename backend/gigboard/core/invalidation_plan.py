"""Invalidation Planner — mutation kind -> closed set of stale cache keys.

Invariants:
    - INVALIDATION_RULES is the only place that decides which views a mutation touches
    - For every rule, the key set covers each listed filter value (old and new states plus
      "all") across every cell of the PaginationGrid
    - A rule whose context field is missing (None / empty) contributes no keys
    - plan_invalidation is PURE and returns a sorted, de-duplicated list
    - Over-deletion is acceptable; a view missing from a rule is a correctness bug
    - A view that embeds another entity's fields is stale whenever those fields change:
      application lists embed the freelancer card (ratings, projects_completed,
      availability, name), freelancer application lists embed the project status,
      project payloads embed the client name

Design Decisions:
    - Enumerate rather than query: the cache backend has no pattern or tag delete, so
      every key that could exist is named from the key grammar in cache_keys.py
    - Context fields may hold one id or a collection of ids; the related_* fields carry
      the other projects and users whose cached views embed the mutated entity, collected
      by the service inside the mutating transaction
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Iterable
from uuid import UUID

from gigboard.core import cache_keys as ck
from gigboard.core.cache_keys import CacheKeyShape, PaginationGrid
from gigboard.core.domain_types import (
    ALL_FILTER, ApplicationStatus, MeetingRequestStatus, MeetingStatus,
    ProjectStatus, RatingListKind,
)


class MutationKind(str, Enum):
    USER_REGISTERED = "user_registered"
    CLIENT_PROFILE_UPDATED = "client_profile_updated"
    FREELANCER_PROFILE_UPDATED = "freelancer_profile_updated"
    AVAILABILITY_CHANGED = "availability_changed"
    PROJECT_CREATED = "project_created"
    PROJECT_REVIEWED = "project_reviewed"
    PROJECT_FEATURE_TOGGLED = "project_feature_toggled"
    APPLICATION_CREATED = "application_created"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    COMPLETION_REQUESTED = "completion_requested"
    COMPLETION_APPROVED = "completion_approved"
    COMPLETION_REJECTED = "completion_rejected"
    RATING_RECORDED = "rating_recorded"
    USER_STATUS_TOGGLED = "user_status_toggled"
    USER_VERIFIED = "user_verified"
    PASSWORD_CHANGED = "password_changed"
    MEETING_SCHEDULED = "meeting_scheduled"
    MEETING_RESCHEDULED = "meeting_rescheduled"
    MEETING_CANCELLED = "meeting_cancelled"
    MEETING_COMPLETED = "meeting_completed"
    MEETING_NOTES_UPDATED = "meeting_notes_updated"
    MEETING_REQUESTED = "meeting_requested"
    MEETING_REQUEST_APPROVED = "meeting_request_approved"
    MEETING_REQUEST_REJECTED = "meeting_request_rejected"


@dataclass(frozen=True)
class MutationContext:
    """Identifiers touched by a committed mutation."""
    client_user_id: UUID | None = None
    freelancer_user_id: UUID | None = None
    project_id: UUID | None = None
    subject_user_id: UUID | None = None
    sibling_freelancer_user_ids: tuple[UUID, ...] = field(default_factory=tuple)
    related_project_ids: tuple[UUID, ...] = field(default_factory=tuple)
    related_client_user_ids: tuple[UUID, ...] = field(default_factory=tuple)
    related_freelancer_user_ids: tuple[UUID, ...] = field(default_factory=tuple)


_CONTEXT_FIELDS = {f.name for f in fields(MutationContext)}


@dataclass(frozen=True)
class KeyRule:
    """One view family to delete: shape x subject ids x filter values x grid."""
    shape: CacheKeyShape
    subject: str | None = None
    filters: tuple[str, ...] = ()

    def __post_init__(self):
        if self.subject is not None and self.subject not in _CONTEXT_FIELDS:
            raise ValueError(f"Unknown context field: {self.subject}")
        if self.shape.filter_dim and not self.filters:
            raise ValueError(f"{self.shape.name} needs filter values")
        if not self.shape.filter_dim and self.filters:
            raise ValueError(f"{self.shape.name} has no filter dimension")

    def keys(self, context: MutationContext, grid: PaginationGrid) -> list[str]:
        idents = self._idents(context)
        filter_values = self.filters or (None,)
        cells = grid.cells() if self.shape.paginated else [(None, None)]
        return [
            self.shape.key(ident, filter_value=value, page=page, limit=limit)
            for ident in idents
            for value in filter_values
            for page, limit in cells
        ]

    def _idents(self, context: MutationContext) -> list:
        if self.subject is None:
            return [ck.SHARED_IDENT]
        value = getattr(context, self.subject)
        if value is None:
            return []
        if isinstance(value, (tuple, list, set, frozenset)):
            return list(value)
        return [value]


def _with_all(*values: Enum) -> tuple[str, ...]:
    return (ALL_FILTER, *(v.value for v in values))


ALL_PROJECT_FILTERS = _with_all(*ProjectStatus)
ALL_RATING_FILTERS = tuple(kind.value for kind in RatingListKind)
ALL_APPLICATION_FILTERS = _with_all(*ApplicationStatus)

_CLIENT = "client_user_id"
_FREELANCER = "freelancer_user_id"
_PROJECT = "project_id"
_SUBJECT = "subject_user_id"
_SIBLINGS = "sibling_freelancer_user_ids"
_RELATED_PROJECTS = "related_project_ids"
_RELATED_CLIENTS = "related_client_user_ids"
_RELATED_FREELANCERS = "related_freelancer_user_ids"


def _project_progress_rules(*statuses: ProjectStatus) -> tuple[KeyRule, ...]:
    """Status change on an engaged project: both parties' project views."""
    return (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT, _with_all(*statuses)),
        KeyRule(ck.FREELANCER_PROJECTS, _FREELANCER, _with_all(*statuses)),
        KeyRule(ck.FREELANCER_APPLICATIONS, _FREELANCER, ALL_APPLICATION_FILTERS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    )


def _freelancer_card_rules() -> tuple[KeyRule, ...]:
    """The freelancer card changed: every view embedding freelancer_dict."""
    return (
        KeyRule(ck.FREELANCER_PROFILE, _FREELANCER),
        KeyRule(ck.PUBLIC_FREELANCER_PROFILE, _FREELANCER),
        KeyRule(ck.PUBLIC_FEATURED_FREELANCERS),
        KeyRule(ck.PROJECT_APPLICATIONS, _PROJECT, ALL_APPLICATION_FILTERS),
        KeyRule(ck.CLIENT_APPLICATIONS, _CLIENT, ALL_APPLICATION_FILTERS),
        KeyRule(ck.PROJECT_APPLICATIONS, _RELATED_PROJECTS, ALL_APPLICATION_FILTERS),
        KeyRule(ck.CLIENT_APPLICATIONS, _RELATED_CLIENTS, ALL_APPLICATION_FILTERS),
    )


def _meeting_rules(*statuses: MeetingStatus) -> tuple[KeyRule, ...]:
    """A meeting moved between statuses: both parties' and the project's lists."""
    filters = _with_all(*statuses)
    return (
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.CLIENT_MEETINGS, _CLIENT, filters),
        KeyRule(ck.FREELANCER_MEETINGS, _FREELANCER, filters),
        KeyRule(ck.PROJECT_MEETINGS, _PROJECT, filters),
    )


_OPEN_MEETING_STATUSES = (MeetingStatus.SCHEDULED, MeetingStatus.RESCHEDULED)


def _rating_rules() -> tuple[KeyRule, ...]:
    return _freelancer_card_rules() + (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.FREELANCER_PROFILE, _FREELANCER),
        KeyRule(ck.CLIENT_RATINGS, _CLIENT, ALL_RATING_FILTERS),
        KeyRule(ck.FREELANCER_RATINGS, _FREELANCER, ALL_RATING_FILTERS),
        KeyRule(ck.FREELANCER_RATING_STATS, _FREELANCER),
        KeyRule(ck.PUBLIC_USER_RATINGS, _CLIENT),
        KeyRule(ck.PUBLIC_USER_RATINGS, _FREELANCER),
        KeyRule(ck.PUBLIC_USER_RATING_SUMMARY, _CLIENT),
        KeyRule(ck.PUBLIC_USER_RATING_SUMMARY, _FREELANCER),
        KeyRule(ck.PUBLIC_CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_FREELANCER_PROFILE, _FREELANCER),
        KeyRule(ck.PUBLIC_FEATURED_FREELANCERS),
        KeyRule(ck.PUBLIC_FEATURED_CLIENTS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    )


def _account_rules() -> tuple[KeyRule, ...]:
    """Account flag change: every view that embeds or filters on the user."""
    return (
        KeyRule(ck.USER_ACCOUNT, _SUBJECT),
        KeyRule(ck.CLIENT_PROFILE, _SUBJECT),
        KeyRule(ck.CLIENT_DASHBOARD, _SUBJECT),
        KeyRule(ck.FREELANCER_PROFILE, _SUBJECT),
        KeyRule(ck.FREELANCER_DASHBOARD, _SUBJECT),
        KeyRule(ck.PUBLIC_CLIENT_PROFILE, _SUBJECT),
        KeyRule(ck.PUBLIC_FREELANCER_PROFILE, _SUBJECT),
        KeyRule(ck.PUBLIC_FEATURED_FREELANCERS),
        KeyRule(ck.PUBLIC_FEATURED_CLIENTS),
        KeyRule(ck.PUBLIC_FEATURED_PROJECTS),
        KeyRule(ck.PUBLIC_AVAILABLE_PROJECTS),
        KeyRule(ck.PUBLIC_RECENT_PROJECTS),
        KeyRule(ck.PUBLIC_STATS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    )


INVALIDATION_RULES: dict[MutationKind, tuple[KeyRule, ...]] = {
    MutationKind.USER_REGISTERED: (
        KeyRule(ck.PUBLIC_STATS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.CLIENT_PROFILE_UPDATED: (
        KeyRule(ck.USER_ACCOUNT, _CLIENT),
        KeyRule(ck.CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_FEATURED_CLIENTS),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT, ALL_PROJECT_FILTERS),
        KeyRule(ck.CLIENT_RATINGS, _CLIENT, ALL_RATING_FILTERS),
        KeyRule(ck.PROJECT_DETAIL, _RELATED_PROJECTS),
        KeyRule(ck.FREELANCER_PROJECTS, _RELATED_FREELANCERS, ALL_PROJECT_FILTERS),
        KeyRule(ck.FREELANCER_RATINGS, _RELATED_FREELANCERS, ALL_RATING_FILTERS),
        KeyRule(ck.PUBLIC_USER_RATINGS, _RELATED_FREELANCERS),
        KeyRule(ck.PUBLIC_AVAILABLE_PROJECTS),
        KeyRule(ck.PUBLIC_RECENT_PROJECTS),
        KeyRule(ck.PUBLIC_FEATURED_PROJECTS),
        KeyRule(ck.ADMIN_PENDING_PROJECTS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.FREELANCER_PROFILE_UPDATED: _freelancer_card_rules() + (
        KeyRule(ck.USER_ACCOUNT, _FREELANCER),
        KeyRule(ck.FREELANCER_RATINGS, _FREELANCER, ALL_RATING_FILTERS),
        KeyRule(ck.CLIENT_RATINGS, _RELATED_CLIENTS, ALL_RATING_FILTERS),
        KeyRule(ck.PUBLIC_USER_RATINGS, _RELATED_CLIENTS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.AVAILABILITY_CHANGED: _freelancer_card_rules(),
    MutationKind.PROJECT_CREATED: (
        KeyRule(ck.CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT,
                _with_all(ProjectStatus.ADMIN_VERIFICATION)),
        KeyRule(ck.PUBLIC_CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_FEATURED_CLIENTS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
        KeyRule(ck.ADMIN_PENDING_PROJECTS),
        KeyRule(ck.PUBLIC_STATS),
    ),
    MutationKind.PROJECT_REVIEWED: (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT, _with_all(
            ProjectStatus.ADMIN_VERIFICATION, ProjectStatus.OPEN,
            ProjectStatus.CANCELLED,
        )),
        KeyRule(ck.PUBLIC_CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_AVAILABLE_PROJECTS),
        KeyRule(ck.PUBLIC_RECENT_PROJECTS),
        KeyRule(ck.PUBLIC_FEATURED_PROJECTS),
        KeyRule(ck.PUBLIC_STATS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
        KeyRule(ck.ADMIN_PENDING_PROJECTS),
    ),
    MutationKind.PROJECT_FEATURE_TOGGLED: (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT, ALL_PROJECT_FILTERS),
        KeyRule(ck.FREELANCER_PROJECTS, _FREELANCER, ALL_PROJECT_FILTERS),
        KeyRule(ck.PUBLIC_AVAILABLE_PROJECTS),
        KeyRule(ck.PUBLIC_RECENT_PROJECTS),
        KeyRule(ck.PUBLIC_FEATURED_PROJECTS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.APPLICATION_CREATED: (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.PROJECT_APPLICATIONS, _PROJECT,
                _with_all(ApplicationStatus.PENDING)),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.FREELANCER_APPLICATIONS, _FREELANCER,
                _with_all(ApplicationStatus.PENDING)),
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT, _with_all(ProjectStatus.OPEN)),
        KeyRule(ck.CLIENT_APPLICATIONS, _CLIENT,
                _with_all(ApplicationStatus.PENDING)),
        KeyRule(ck.PUBLIC_AVAILABLE_PROJECTS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.APPLICATION_APPROVED: (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.PROJECT_APPLICATIONS, _PROJECT, _with_all(*ApplicationStatus)),
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.CLIENT_PROJECTS, _CLIENT,
                _with_all(ProjectStatus.OPEN, ProjectStatus.ASSIGNED)),
        KeyRule(ck.CLIENT_APPLICATIONS, _CLIENT, _with_all(*ApplicationStatus)),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.FREELANCER_APPLICATIONS, _FREELANCER, ALL_APPLICATION_FILTERS),
        KeyRule(ck.FREELANCER_PROJECTS, _FREELANCER,
                _with_all(ProjectStatus.ASSIGNED)),
        # every other applicant, whatever their status: their rows embed the project
        KeyRule(ck.FREELANCER_DASHBOARD, _SIBLINGS),
        KeyRule(ck.FREELANCER_APPLICATIONS, _SIBLINGS, ALL_APPLICATION_FILTERS),
        KeyRule(ck.PUBLIC_AVAILABLE_PROJECTS),
        KeyRule(ck.PUBLIC_RECENT_PROJECTS),
        KeyRule(ck.PUBLIC_FEATURED_PROJECTS),
        KeyRule(ck.PUBLIC_STATS),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.APPLICATION_REJECTED: (
        KeyRule(ck.PROJECT_DETAIL, _PROJECT),
        KeyRule(ck.PROJECT_APPLICATIONS, _PROJECT, _with_all(
            ApplicationStatus.PENDING, ApplicationStatus.REJECTED,
        )),
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.CLIENT_APPLICATIONS, _CLIENT, _with_all(
            ApplicationStatus.PENDING, ApplicationStatus.REJECTED,
        )),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.FREELANCER_APPLICATIONS, _FREELANCER, _with_all(
            ApplicationStatus.PENDING, ApplicationStatus.REJECTED,
        )),
        KeyRule(ck.ADMIN_DASHBOARD_STATS),
    ),
    MutationKind.COMPLETION_REQUESTED: _project_progress_rules(
        ProjectStatus.ASSIGNED, ProjectStatus.PENDING_COMPLETION,
    ),
    MutationKind.COMPLETION_REJECTED: _project_progress_rules(
        ProjectStatus.PENDING_COMPLETION, ProjectStatus.ASSIGNED,
    ),
    MutationKind.COMPLETION_APPROVED: _project_progress_rules(
        ProjectStatus.ASSIGNED, ProjectStatus.PENDING_COMPLETION,
        ProjectStatus.COMPLETED,
    ) + _freelancer_card_rules() + (
        KeyRule(ck.CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_CLIENT_PROFILE, _CLIENT),
        KeyRule(ck.PUBLIC_STATS),
    ),
    MutationKind.RATING_RECORDED: _rating_rules(),
    MutationKind.USER_STATUS_TOGGLED: _account_rules(),
    MutationKind.USER_VERIFIED: _account_rules(),
    MutationKind.PASSWORD_CHANGED: (
        KeyRule(ck.USER_ACCOUNT, _SUBJECT),
    ),
    MutationKind.MEETING_SCHEDULED: _meeting_rules(MeetingStatus.SCHEDULED),
    MutationKind.MEETING_RESCHEDULED: _meeting_rules(*_OPEN_MEETING_STATUSES),
    MutationKind.MEETING_CANCELLED: _meeting_rules(
        *_OPEN_MEETING_STATUSES, MeetingStatus.CANCELLED,
    ),
    MutationKind.MEETING_COMPLETED: _meeting_rules(
        *_OPEN_MEETING_STATUSES, MeetingStatus.COMPLETED,
    ),
    MutationKind.MEETING_NOTES_UPDATED: _meeting_rules(*MeetingStatus),
    MutationKind.MEETING_REQUESTED: (
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.CLIENT_MEETING_REQUESTS, _CLIENT,
                _with_all(MeetingRequestStatus.PENDING)),
        KeyRule(ck.FREELANCER_MEETING_REQUESTS, _FREELANCER,
                _with_all(MeetingRequestStatus.PENDING)),
    ),
    MutationKind.MEETING_REQUEST_APPROVED: (
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.CLIENT_MEETING_REQUESTS, _CLIENT, _with_all(
            MeetingRequestStatus.PENDING, MeetingRequestStatus.APPROVED,
        )),
        KeyRule(ck.FREELANCER_MEETING_REQUESTS, _FREELANCER, _with_all(
            MeetingRequestStatus.PENDING, MeetingRequestStatus.APPROVED,
        )),
        KeyRule(ck.CLIENT_MEETINGS, _CLIENT, _with_all(MeetingStatus.SCHEDULED)),
        KeyRule(ck.FREELANCER_MEETINGS, _FREELANCER,
                _with_all(MeetingStatus.SCHEDULED)),
        KeyRule(ck.PROJECT_MEETINGS, _PROJECT, _with_all(MeetingStatus.SCHEDULED)),
    ),
    MutationKind.MEETING_REQUEST_REJECTED: (
        KeyRule(ck.CLIENT_DASHBOARD, _CLIENT),
        KeyRule(ck.FREELANCER_DASHBOARD, _FREELANCER),
        KeyRule(ck.CLIENT_MEETING_REQUESTS, _CLIENT, _with_all(
            MeetingRequestStatus.PENDING, MeetingRequestStatus.REJECTED,
        )),
        KeyRule(ck.FREELANCER_MEETING_REQUESTS, _FREELANCER, _with_all(
            MeetingRequestStatus.PENDING, MeetingRequestStatus.REJECTED,
        )),
    ),
}


def plan_invalidation(
    kind: MutationKind,
    contexts: MutationContext | Iterable[MutationContext],
    grid: PaginationGrid,
) -> list[str]:
    """Closed set of keys made stale by `kind` over one or many contexts."""
    if isinstance(contexts, MutationContext):
        contexts = [contexts]
    keys: set[str] = set()
    for context in contexts:
        for rule in INVALIDATION_RULES[kind]:
            keys.update(rule.keys(context, grid))
    return sorted(keys)
