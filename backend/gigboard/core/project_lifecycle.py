"""Project Lifecycle — the single transition table for Project.status.

Invariants:
    - PROJECT_TRANSITIONS is the only place project edges are defined
    - COMPLETED and CANCELLED are terminal: no (terminal, trigger) key exists
    - assigned_to is None iff status in UNASSIGNED_STATUSES
    - All functions are PURE: they raise on a failed guard, never mutate

Design Decisions:
    - Guards that only need the request payload (rejection reasons, permissions) live here;
      guards that need rows (ownership, account activity) are checked by the services
"""

from enum import Enum

from gigboard.core.domain_types import AdminPermission, ProjectStatus
from gigboard.core.errors import (
    InputValidationError, PermissionDeniedError, TransitionConflictError,
)


class ProjectTrigger(str, Enum):
    ADMIN_APPROVE = "admin_approve"
    ADMIN_REJECT = "admin_reject"
    ASSIGN = "assign"
    REQUEST_COMPLETION = "request_completion"
    APPROVE_COMPLETION = "approve_completion"
    REJECT_COMPLETION = "reject_completion"


PROJECT_TRANSITIONS: dict[tuple[ProjectStatus, ProjectTrigger], ProjectStatus] = {
    (ProjectStatus.ADMIN_VERIFICATION, ProjectTrigger.ADMIN_APPROVE): ProjectStatus.OPEN,
    (ProjectStatus.ADMIN_VERIFICATION, ProjectTrigger.ADMIN_REJECT): ProjectStatus.CANCELLED,
    (ProjectStatus.OPEN, ProjectTrigger.ASSIGN): ProjectStatus.ASSIGNED,
    (ProjectStatus.ASSIGNED, ProjectTrigger.REQUEST_COMPLETION): ProjectStatus.PENDING_COMPLETION,
    (ProjectStatus.PENDING_COMPLETION, ProjectTrigger.APPROVE_COMPLETION): ProjectStatus.COMPLETED,
    (ProjectStatus.PENDING_COMPLETION, ProjectTrigger.REJECT_COMPLETION): ProjectStatus.ASSIGNED,
}

INITIAL_STATUS = ProjectStatus.ADMIN_VERIFICATION
TERMINAL_STATUSES = frozenset({ProjectStatus.COMPLETED, ProjectStatus.CANCELLED})
UNASSIGNED_STATUSES = frozenset({
    ProjectStatus.ADMIN_VERIFICATION, ProjectStatus.OPEN, ProjectStatus.CANCELLED,
})
# Statuses in which a project has a freelancer and an APPROVED application.
ENGAGED_STATUSES = frozenset({
    ProjectStatus.ASSIGNED, ProjectStatus.PENDING_COMPLETION, ProjectStatus.COMPLETED,
})

MIN_ADMIN_REJECTION_REASON = 10
MODERATION_PERMISSIONS = frozenset({AdminPermission.MODERATOR})
VIEW_PERMISSIONS = frozenset({AdminPermission.MODERATOR, AdminPermission.SUPPORT})


def is_terminal(status: ProjectStatus) -> bool:
    return status in TERMINAL_STATUSES


def allowed_triggers(status: ProjectStatus) -> list[ProjectTrigger]:
    return [trigger for (src, trigger) in PROJECT_TRANSITIONS if src == status]


def next_project_status(
    current: ProjectStatus | str, trigger: ProjectTrigger,
) -> ProjectStatus:
    """Resolve the target status or raise TransitionConflictError."""
    current = ProjectStatus(current)
    target = PROJECT_TRANSITIONS.get((current, trigger))
    if target is None:
        raise TransitionConflictError(
            "Project", current.value, trigger.value.replace("_", " "),
        )
    return target


def assignment_consistent(status: ProjectStatus | str, assigned_to: object) -> bool:
    """assigned_to is set exactly when the project is engaged."""
    return (assigned_to is None) == (ProjectStatus(status) in UNASSIGNED_STATUSES)


def normalize_admin_rejection_reason(reason: str | None) -> str:
    """Rule: an admin rejection carries a reason of at least 10 characters."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise InputValidationError(
            "Rejection reason is required when rejecting a project",
            "rejected_reason",
        )
    if len(cleaned) < MIN_ADMIN_REJECTION_REASON:
        raise InputValidationError(
            f"Rejection reason must be at least {MIN_ADMIN_REJECTION_REASON} "
            f"characters long",
            "rejected_reason",
        )
    return cleaned


def normalize_completion_rejection_reason(reason: str | None) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise InputValidationError(
            "Rejection reason is required", "rejection_reason",
        )
    return cleaned


def validate_budget(budget_min: float | None, budget_max: float | None) -> None:
    if budget_min is not None and budget_min < 0:
        raise InputValidationError("budget_min cannot be negative", "budget_min")
    if (
        budget_min is not None and budget_max is not None
        and budget_max < budget_min
    ):
        raise InputValidationError(
            "budget_max must be greater than or equal to budget_min",
            "budget_max",
        )


def require_permission(
    granted: list[str] | set[str], required: frozenset[AdminPermission],
) -> None:
    """SUPER_ADMIN passes every check; otherwise any overlap with `required` passes."""
    granted_set = {AdminPermission(p) for p in granted}
    if AdminPermission.SUPER_ADMIN in granted_set:
        return
    if not granted_set & required:
        raise PermissionDeniedError()
