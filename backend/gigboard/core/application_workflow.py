"""Application Workflow — transition table and apply preconditions.

Invariants:
    - PENDING is the only non-terminal application status
    - At most one application per (project, freelancer); the DB unique constraint is
      the source of truth, check_can_apply is a courtesy pre-check
    - Approval of one application rejects every PENDING sibling in the same transaction
"""

from enum import Enum

from gigboard.core.domain_types import ApplicationStatus, ProjectStatus
from gigboard.core.errors import BusinessRuleError, TransitionConflictError


class ApplicationTrigger(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REJECT_AS_SIBLING = "reject_as_sibling"


APPLICATION_TRANSITIONS: dict[
    tuple[ApplicationStatus, ApplicationTrigger], ApplicationStatus,
] = {
    (ApplicationStatus.PENDING, ApplicationTrigger.APPROVE): ApplicationStatus.APPROVED,
    (ApplicationStatus.PENDING, ApplicationTrigger.REJECT): ApplicationStatus.REJECTED,
    (ApplicationStatus.PENDING, ApplicationTrigger.REJECT_AS_SIBLING): ApplicationStatus.REJECTED,
}


def next_application_status(
    current: ApplicationStatus | str, trigger: ApplicationTrigger,
) -> ApplicationStatus:
    current = ApplicationStatus(current)
    target = APPLICATION_TRANSITIONS.get((current, trigger))
    if target is None:
        raise TransitionConflictError(
            "Application", current.value, f"{trigger.value} application",
        )
    return target


def check_can_apply(
    *,
    freelancer_available: bool,
    project_status: ProjectStatus | str,
    project_assigned_to: object,
    client_active: bool,
) -> None:
    """Apply preconditions, first failure wins."""
    if not freelancer_available:
        raise BusinessRuleError(
            "You must be available to apply for projects",
            "FREELANCER_UNAVAILABLE",
        )
    if not client_active:
        raise BusinessRuleError(
            "This project is no longer available", "CLIENT_INACTIVE",
        )
    if ProjectStatus(project_status) != ProjectStatus.OPEN:
        raise TransitionConflictError(
            "Project", ProjectStatus(project_status).value, "apply",
        )
    if project_assigned_to is not None:
        raise BusinessRuleError(
            "Project is already assigned", "PROJECT_ALREADY_ASSIGNED",
        )
