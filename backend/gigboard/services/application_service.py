"""Application Service — apply, approve (assign) and reject.

Invariants:
    - approve_application is one transaction: project OPEN -> ASSIGNED with assigned_to,
      application PENDING -> APPROVED, every other PENDING sibling -> REJECTED
    - apply and approve_application read the project with SELECT ... FOR UPDATE, so they
      serialize on the project row; the compare-and-set still guards backends without row
      locks: of two concurrent approvals exactly one commits, the other gets
      TransitionConflictError
    - Duplicate applies are rejected by the pre-check or, under a race, by the unique
      constraint (IntegrityError -> DuplicateApplicationError)
    - Every other applicant of an approved project (any status) is part of the
      invalidation context: their application rows embed the project status
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.application_workflow import (
    ApplicationTrigger, check_can_apply, next_application_status,
)
from gigboard.core.domain_types import ApplicationStatus, ProjectStatus
from gigboard.core.errors import (
    DuplicateApplicationError, InputValidationError, ResourceNotFoundError,
    TransitionConflictError,
)
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.core.project_lifecycle import ProjectTrigger, next_project_status
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Application, Client, Freelancer, Project
from gigboard.services.cache_invalidator import CacheInvalidator

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    application: Application
    project: Project
    rejected_siblings: int


class ApplicationService:
    def __init__(self, db: AsyncSession, invalidator: CacheInvalidator):
        self.db = db
        self.repo = EntityRepository(db)
        self.invalidator = invalidator

    async def apply(
        self,
        freelancer: Freelancer,
        project_id: UUID,
        proposal: str,
        cover_letter: str | None = None,
    ) -> Application:
        if not proposal or not proposal.strip():
            raise InputValidationError("Proposal is required", "proposal")
        try:
            async with transaction(self.db):
                project = await self._project_or_404(project_id, lock=True)
                current = await self.repo.find_freelancer(freelancer.id)
                check_can_apply(
                    freelancer_available=current.availability,
                    project_status=project.status,
                    project_assigned_to=project.assigned_to,
                    client_active=project.client.user.is_active,
                )
                if await self.repo.find_application_by_pair(project.id, freelancer.id):
                    raise DuplicateApplicationError()
                application = Application(
                    project_id=project.id,
                    freelancer_id=freelancer.id,
                    proposal=proposal.strip(),
                    cover_letter=cover_letter,
                    status=ApplicationStatus.PENDING.value,
                )
                self.db.add(application)
                await self.db.flush()
        except IntegrityError as e:
            logger.warning(
                f"Duplicate application rejected by constraint: {e.orig}",
                extra={"project_id": str(project_id)},
            )
            raise DuplicateApplicationError() from e
        await self.invalidator.invalidate(
            MutationKind.APPLICATION_CREATED,
            MutationContext(
                client_user_id=project.client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=project.id,
            ),
        )
        return application

    async def approve_application(
        self, client: Client, project_id: UUID, application_id: UUID,
    ) -> ApprovalResult:
        async with transaction(self.db):
            project = await self._owned_project(client, project_id, lock=True)
            application = await self._application_in(project, application_id)
            next_application_status(application.status, ApplicationTrigger.APPROVE)
            target = next_project_status(project.status, ProjectTrigger.ASSIGN)
            siblings = await self.repo.other_applicant_user_ids(
                project.id, application.id,
            )
            if not await self.repo.compare_and_set_project_status(
                project.id, ProjectStatus.OPEN, target,
                assigned_to=application.freelancer_id,
            ):
                raise await self._project_conflict(project.id, "approve application")
            if not await self.repo.compare_and_set_application_status(
                application.id, ApplicationStatus.PENDING, ApplicationStatus.APPROVED,
            ):
                raise TransitionConflictError(
                    "Application", application.status, "approve application",
                )
            rejected = await self.repo.reject_pending_siblings(project.id, application.id)
            freelancer = await self.repo.find_freelancer(application.freelancer_id)
        await self.invalidator.invalidate(
            MutationKind.APPLICATION_APPROVED,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=project.id,
                sibling_freelancer_user_ids=tuple(siblings),
            ),
        )
        logger.info(
            f"Application approved, {rejected} sibling(s) rejected",
            extra={"project_id": str(project_id), "application_id": str(application_id)},
        )
        return ApprovalResult(
            application=await self.repo.find_application(application_id),
            project=await self.repo.find_project(project_id),
            rejected_siblings=rejected,
        )

    async def reject_application(
        self, client: Client, project_id: UUID, application_id: UUID,
    ) -> Application:
        async with transaction(self.db):
            project = await self._owned_project(client, project_id)
            application = await self._application_in(project, application_id)
            target = next_application_status(
                application.status, ApplicationTrigger.REJECT,
            )
            if not await self.repo.compare_and_set_application_status(
                application.id, ApplicationStatus.PENDING, target,
            ):
                latest = await self.repo.find_application(application.id)
                raise TransitionConflictError(
                    "Application", latest.status, "reject application",
                )
            freelancer = await self.repo.find_freelancer(application.freelancer_id)
        await self.invalidator.invalidate(
            MutationKind.APPLICATION_REJECTED,
            MutationContext(
                client_user_id=client.user_id,
                freelancer_user_id=freelancer.user_id,
                project_id=project.id,
            ),
        )
        return await self.repo.find_application(application_id)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _project_or_404(self, project_id: UUID, lock: bool = False) -> Project:
        if lock:
            project = await self.repo.lock_project(project_id)
        else:
            project = await self.repo.find_project(project_id)
        if project is None:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _owned_project(
        self, client: Client, project_id: UUID, lock: bool = False,
    ) -> Project:
        project = await self._project_or_404(project_id, lock)
        if project.client_id != client.id:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _application_in(self, project: Project, application_id: UUID) -> Application:
        application = await self.repo.find_application(application_id)
        if application is None or application.project_id != project.id:
            raise ResourceNotFoundError("Application", str(application_id))
        return application

    async def _project_conflict(self, project_id: UUID, action: str) -> TransitionConflictError:
        latest = await self.repo.find_project(project_id)
        return TransitionConflictError(
            "Project", latest.status if latest else "deleted", action,
        )
