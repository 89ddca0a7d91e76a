"""Project Service — creation, admin review and the completion handshake.

Invariants:
    - Every status change goes through next_project_status + a compare-and-set write
      inside one transaction; a lost race surfaces as TransitionConflictError
    - Ownership failures read as NOT_FOUND (a caller never learns about other users' projects)
    - Cache invalidation runs only after commit, with every party of the project in context

Design Decisions:
    - Bulk review skips (and reports) projects not awaiting verification instead of
      failing the whole batch; an empty effective batch is a validation error
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import ProjectStatus, ReviewAction
from gigboard.core.errors import (
    AccountInactiveError, InputValidationError, ResourceNotFoundError,
    TransitionConflictError,
)
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.core.project_lifecycle import (
    INITIAL_STATUS, MODERATION_PERMISSIONS, ProjectTrigger, next_project_status,
    normalize_admin_rejection_reason, normalize_completion_rejection_reason,
    require_permission, validate_budget,
)
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Admin, Client, Freelancer, Project
from gigboard.services.cache_invalidator import CacheInvalidator

logger = logging.getLogger(__name__)

MAX_BULK_REVIEW = 50


@dataclass
class BulkReviewResult:
    action: ReviewAction
    status: ProjectStatus
    updated: list[Project] = field(default_factory=list)
    skipped_ids: list[UUID] = field(default_factory=list)
    rejected_reason: str | None = None


class ProjectService:
    def __init__(self, db: AsyncSession, invalidator: CacheInvalidator):
        self.db = db
        self.repo = EntityRepository(db)
        self.invalidator = invalidator

    async def create_project(
        self,
        client: Client,
        *,
        title: str,
        description: str,
        skills_required: list[str] | None = None,
        budget_min: float | None = None,
        budget_max: float | None = None,
        duration: int | None = None,
    ) -> Project:
        validate_budget(budget_min, budget_max)
        async with transaction(self.db):
            project = Project(
                client_id=client.id,
                title=title.strip(),
                description=description.strip(),
                skills_required=list(skills_required or []),
                budget_min=budget_min,
                budget_max=budget_max,
                duration=duration,
                status=INITIAL_STATUS.value,
            )
            self.db.add(project)
            await self.db.flush()
            await self.repo.increment_projects_posted(client.id)
        await self.invalidator.invalidate(
            MutationKind.PROJECT_CREATED,
            MutationContext(client_user_id=client.user_id, project_id=project.id),
        )
        return await self.repo.find_project(project.id)

    # ─── Admin review ────────────────────────────────────────────

    async def review_project(
        self,
        admin: Admin,
        project_id: UUID,
        action: ReviewAction,
        rejected_reason: str | None = None,
    ) -> Project:
        require_permission(admin.permissions, MODERATION_PERMISSIONS)
        trigger, values = self._review_trigger(action, rejected_reason)
        async with transaction(self.db):
            project = await self._project_or_404(project_id)
            await self._transition(project, trigger, **values)
        project = await self.repo.find_project(project_id)
        await self.invalidator.invalidate(
            MutationKind.PROJECT_REVIEWED, self._context(project),
        )
        logger.info(
            f"Project review: {action.value}",
            extra={"admin_id": str(admin.id), "project_id": str(project_id)},
        )
        return project

    async def bulk_review_projects(
        self,
        admin: Admin,
        project_ids: list[UUID],
        action: ReviewAction,
        rejected_reason: str | None = None,
    ) -> BulkReviewResult:
        require_permission(admin.permissions, MODERATION_PERMISSIONS)
        if not project_ids:
            raise InputValidationError(
                "Project IDs array is required and cannot be empty", "project_ids",
            )
        if len(project_ids) > MAX_BULK_REVIEW:
            raise InputValidationError(
                f"Cannot update more than {MAX_BULK_REVIEW} projects at once",
                "project_ids",
            )
        trigger, values = self._review_trigger(action, rejected_reason)
        requested = list(dict.fromkeys(project_ids))
        updated_ids: list[UUID] = []
        async with transaction(self.db):
            for project in await self.repo.find_projects(requested):
                if project.status != ProjectStatus.ADMIN_VERIFICATION.value:
                    continue
                target = next_project_status(project.status, trigger)
                if await self.repo.compare_and_set_project_status(
                    project.id, ProjectStatus.ADMIN_VERIFICATION, target, **values,
                ):
                    updated_ids.append(project.id)
            if not updated_ids:
                raise InputValidationError(
                    "No projects found in ADMIN_VERIFICATION status", "project_ids",
                )
        updated = await self.repo.find_projects(updated_ids)
        done = set(updated_ids)
        await self.invalidator.invalidate(
            MutationKind.PROJECT_REVIEWED, *(self._context(p) for p in updated),
        )
        logger.info(
            f"Bulk project review: {action.value} x{len(updated)}",
            extra={"admin_id": str(admin.id)},
        )
        return BulkReviewResult(
            action=action,
            status=next_project_status(ProjectStatus.ADMIN_VERIFICATION, trigger),
            updated=updated,
            skipped_ids=[pid for pid in requested if pid not in done],
            rejected_reason=values.get("rejected_reason"),
        )

    async def toggle_featured(self, admin: Admin, project_id: UUID) -> Project:
        require_permission(admin.permissions, MODERATION_PERMISSIONS)
        async with transaction(self.db):
            project = await self._project_or_404(project_id)
            await self.repo.set_project_featured(project.id, not project.is_featured)
        project = await self.repo.find_project(project_id)
        freelancer = (
            await self.repo.find_freelancer(project.assigned_to)
            if project.assigned_to else None
        )
        await self.invalidator.invalidate(
            MutationKind.PROJECT_FEATURE_TOGGLED,
            self._context(
                project, freelancer_user_id=freelancer.user_id if freelancer else None,
            ),
        )
        return project

    # ─── Completion handshake ────────────────────────────────────

    async def request_completion(
        self, freelancer: Freelancer, project_id: UUID,
    ) -> Project:
        async with transaction(self.db):
            project = await self._project_or_404(project_id)
            if project.assigned_to != freelancer.id:
                raise ResourceNotFoundError("Project", str(project_id))
            if not project.client.user.is_active:
                raise AccountInactiveError(
                    "Cannot request completion. Client account is inactive.",
                )
            await self._transition(project, ProjectTrigger.REQUEST_COMPLETION)
        project = await self.repo.find_project(project_id)
        await self.invalidator.invalidate(
            MutationKind.COMPLETION_REQUESTED,
            self._context(project, freelancer_user_id=freelancer.user_id),
        )
        return project

    async def approve_completion(self, client: Client, project_id: UUID) -> Project:
        async with transaction(self.db):
            project = await self._owned_project(client, project_id)
            await self._transition(project, ProjectTrigger.APPROVE_COMPLETION)
            await self.repo.increment_projects_completed(project.assigned_to)
            freelancer = await self.repo.find_freelancer(project.assigned_to)
            applied_to, their_clients = await self.repo.applied_project_engagements(
                freelancer.id,
            )
        project = await self.repo.find_project(project_id)
        await self.invalidator.invalidate(
            MutationKind.COMPLETION_APPROVED,
            self._context(
                project,
                freelancer_user_id=freelancer.user_id,
                related_project_ids=tuple(applied_to),
                related_client_user_ids=tuple(their_clients),
            ),
        )
        return project

    async def reject_completion(
        self, client: Client, project_id: UUID, rejection_reason: str | None,
    ) -> tuple[Project, str]:
        reason = normalize_completion_rejection_reason(rejection_reason)
        async with transaction(self.db):
            project = await self._owned_project(client, project_id)
            await self._transition(project, ProjectTrigger.REJECT_COMPLETION)
            freelancer = await self.repo.find_freelancer(project.assigned_to)
        project = await self.repo.find_project(project_id)
        await self.invalidator.invalidate(
            MutationKind.COMPLETION_REJECTED,
            self._context(project, freelancer_user_id=freelancer.user_id),
        )
        return project, reason

    # ─── Helpers ─────────────────────────────────────────────────

    @staticmethod
    def _review_trigger(
        action: ReviewAction, rejected_reason: str | None,
    ) -> tuple[ProjectTrigger, dict]:
        action = ReviewAction(action)
        if action == ReviewAction.APPROVE:
            return ProjectTrigger.ADMIN_APPROVE, {"rejected_reason": None}
        reason = normalize_admin_rejection_reason(rejected_reason)
        return ProjectTrigger.ADMIN_REJECT, {"rejected_reason": reason}

    async def _project_or_404(self, project_id: UUID) -> Project:
        project = await self.repo.find_project(project_id)
        if project is None:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _owned_project(self, client: Client, project_id: UUID) -> Project:
        project = await self._project_or_404(project_id)
        if project.client_id != client.id:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _transition(
        self, project: Project, trigger: ProjectTrigger, **values,
    ) -> ProjectStatus:
        current = ProjectStatus(project.status)
        target = next_project_status(current, trigger)
        if not await self.repo.compare_and_set_project_status(
            project.id, current, target, **values,
        ):
            latest = await self.repo.find_project(project.id)
            raise TransitionConflictError(
                "Project",
                latest.status if latest else "deleted",
                trigger.value.replace("_", " "),
            )
        return target

    @staticmethod
    def _context(project: Project, **extra) -> MutationContext:
        return MutationContext(
            client_user_id=project.client.user_id, project_id=project.id, **extra,
        )
