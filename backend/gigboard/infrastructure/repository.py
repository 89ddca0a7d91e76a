"""Entity Repository — relational reads and the conditional writes mutations rely on.

Invariants:
    - Status writes are compare-and-set: UPDATE ... WHERE id = :id AND status = :expected;
      the returned bool is False when another writer got there first
    - Counter co-updates are single UPDATE statements (col = col + 1), never read-modify-write
    - find_* loads refresh identity-map instances (populate_existing) so a session that
      already holds a row sees the committed status, not a stale copy
    - Nothing here commits: callers own the unit of work (infrastructure/database.transaction)

Design Decisions:
    - One repository over the whole schema: the marketplace mutations span projects,
      applications and profiles in a single transaction, so splitting per table would
      only move the joins into the services
"""

from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import (
    ApplicationStatus, MeetingRequestStatus, MeetingStatus, ProjectStatus, RatingDirection,
)
from gigboard.models import (
    Admin, Application, Client, Freelancer, Meeting, MeetingRequest, Project, Rating, User,
)


class EntityRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _one(self, stmt):
        result = await self.db.execute(
            stmt.execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    # ─── Users and profiles ──────────────────────────────────────

    async def find_user(self, user_id: UUID) -> User | None:
        return await self._one(select(User).where(User.id == user_id))

    async def find_user_by_email(self, email: str) -> User | None:
        return await self._one(select(User).where(User.email == email.lower()))

    async def find_client(self, client_id: UUID) -> Client | None:
        return await self._one(select(Client).where(Client.id == client_id))

    async def find_client_by_user(self, user_id: UUID) -> Client | None:
        return await self._one(select(Client).where(Client.user_id == user_id))

    async def find_freelancer(self, freelancer_id: UUID) -> Freelancer | None:
        return await self._one(select(Freelancer).where(Freelancer.id == freelancer_id))

    async def find_freelancer_by_user(self, user_id: UUID) -> Freelancer | None:
        return await self._one(select(Freelancer).where(Freelancer.user_id == user_id))

    async def find_admin_by_user(self, user_id: UUID) -> Admin | None:
        return await self._one(select(Admin).where(Admin.user_id == user_id))

    async def lock_profile(
        self, direction: RatingDirection, rated_user_id: UUID,
    ) -> Client | Freelancer | None:
        """SELECT ... FOR UPDATE on the profile whose aggregate is about to change."""
        model = (
            Freelancer if direction == RatingDirection.CLIENT_TO_FREELANCER else Client
        )
        return await self._one(
            select(model).where(model.user_id == rated_user_id).with_for_update(),
        )

    async def set_user_active(self, user_id: UUID, is_active: bool) -> None:
        await self.db.execute(
            update(User).where(User.id == user_id).values(is_active=is_active),
        )

    async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
        await self.db.execute(
            update(User).where(User.id == user_id).values(password_hash=password_hash),
        )

    async def increment_projects_posted(self, client_id: UUID) -> None:
        await self.db.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(projects_posted=Client.projects_posted + 1),
        )

    async def increment_projects_completed(self, freelancer_id: UUID) -> None:
        await self.db.execute(
            update(Freelancer)
            .where(Freelancer.id == freelancer_id)
            .values(projects_completed=Freelancer.projects_completed + 1),
        )

    # ─── Projects ────────────────────────────────────────────────

    async def find_project(self, project_id: UUID) -> Project | None:
        return await self._one(select(Project).where(Project.id == project_id))

    async def find_projects(self, project_ids: list[UUID]) -> list[Project]:
        result = await self.db.execute(
            select(Project)
            .where(Project.id.in_(project_ids))
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def lock_project(self, project_id: UUID) -> Project | None:
        """SELECT ... FOR UPDATE: serializes apply/approve on one project."""
        return await self._one(
            select(Project).where(Project.id == project_id).with_for_update(),
        )

    async def client_project_engagements(
        self, client_id: UUID,
    ) -> tuple[list[UUID], list[UUID]]:
        """(project ids, assigned freelancers' user ids) of every project of the client."""
        result = await self.db.execute(
            select(Project.id, Freelancer.user_id)
            .outerjoin(Freelancer, Project.assigned_to == Freelancer.id)
            .where(Project.client_id == client_id),
        )
        rows = result.all()
        return (
            [project_id for project_id, _ in rows],
            sorted({user_id for _, user_id in rows if user_id is not None}),
        )

    async def compare_and_set_project_status(
        self,
        project_id: UUID,
        expected: ProjectStatus,
        new: ProjectStatus,
        **values,
    ) -> bool:
        result = await self.db.execute(
            update(Project)
            .where(Project.id == project_id, Project.status == expected.value)
            .values(status=new.value, **values)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def set_project_featured(self, project_id: UUID, is_featured: bool) -> None:
        await self.db.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(is_featured=is_featured)
            .execution_options(synchronize_session=False),
        )

    # ─── Applications ────────────────────────────────────────────

    async def find_application(self, application_id: UUID) -> Application | None:
        return await self._one(select(Application).where(Application.id == application_id))

    async def find_application_by_pair(
        self, project_id: UUID, freelancer_id: UUID,
    ) -> Application | None:
        return await self._one(
            select(Application).where(
                Application.project_id == project_id,
                Application.freelancer_id == freelancer_id,
            ),
        )

    async def find_approved_application(self, project_id: UUID) -> Application | None:
        return await self._one(
            select(Application).where(
                Application.project_id == project_id,
                Application.status == ApplicationStatus.APPROVED.value,
            ),
        )

    async def compare_and_set_application_status(
        self,
        application_id: UUID,
        expected: ApplicationStatus,
        new: ApplicationStatus,
    ) -> bool:
        result = await self.db.execute(
            update(Application)
            .where(
                Application.id == application_id,
                Application.status == expected.value,
            )
            .values(status=new.value)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def other_applicant_user_ids(
        self, project_id: UUID, exclude_application_id: UUID,
    ) -> list[UUID]:
        """User ids of every other applicant of the project, whatever their status."""
        result = await self.db.execute(
            select(Freelancer.user_id)
            .join(Application, Application.freelancer_id == Freelancer.id)
            .where(
                Application.project_id == project_id,
                Application.id != exclude_application_id,
            ),
        )
        return list(result.scalars().all())

    async def applied_project_engagements(
        self, freelancer_id: UUID,
    ) -> tuple[list[UUID], list[UUID]]:
        """(project ids, client user ids) of every project the freelancer applied to."""
        result = await self.db.execute(
            select(Project.id, Client.user_id)
            .join(Application, Application.project_id == Project.id)
            .join(Client, Project.client_id == Client.id)
            .where(Application.freelancer_id == freelancer_id),
        )
        rows = result.all()
        return (
            [project_id for project_id, _ in rows],
            sorted({user_id for _, user_id in rows}),
        )

    async def reject_pending_siblings(
        self, project_id: UUID, exclude_application_id: UUID,
    ) -> int:
        """Single UPDATE rejecting every other PENDING application of the project."""
        result = await self.db.execute(
            update(Application)
            .where(
                Application.project_id == project_id,
                Application.id != exclude_application_id,
                Application.status == ApplicationStatus.PENDING.value,
            )
            .values(status=ApplicationStatus.REJECTED.value)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount

    # ─── Ratings ─────────────────────────────────────────────────

    async def find_rating(self, rating_id: UUID) -> Rating | None:
        return await self._one(select(Rating).where(Rating.id == rating_id))

    async def find_rating_by_triple(
        self, project_id: UUID, rater_id: UUID, rated_id: UUID,
    ) -> Rating | None:
        return await self._one(
            select(Rating).where(
                Rating.project_id == project_id,
                Rating.rater_id == rater_id,
                Rating.rated_id == rated_id,
            ),
        )

    async def rating_values_for(
        self, rated_user_id: UUID, direction: RatingDirection,
    ) -> list[int]:
        result = await self.db.execute(
            select(Rating.rating).where(
                Rating.rated_id == rated_user_id,
                Rating.rater_type == direction.value,
            ),
        )
        return list(result.scalars().all())

    async def store_rating_aggregate(
        self, profile: Client | Freelancer, mean: float,
    ) -> None:
        await self.db.execute(
            update(type(profile))
            .where(type(profile).id == profile.id)
            .values(ratings=mean)
            .execution_options(synchronize_session=False),
        )

    # ─── Meetings ────────────────────────────────────────────────

    async def find_meeting(self, meeting_id: UUID) -> Meeting | None:
        return await self._one(select(Meeting).where(Meeting.id == meeting_id))

    async def compare_and_set_meeting_status(
        self,
        meeting_id: UUID,
        expected: tuple[MeetingStatus, ...],
        new: MeetingStatus,
        **values,
    ) -> bool:
        result = await self.db.execute(
            update(Meeting)
            .where(
                Meeting.id == meeting_id,
                Meeting.status.in_([status.value for status in expected]),
            )
            .values(status=new.value, **values)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    # ─── Meeting requests ────────────────────────────────────────

    async def find_meeting_request(self, request_id: UUID) -> MeetingRequest | None:
        return await self._one(select(MeetingRequest).where(MeetingRequest.id == request_id))

    async def compare_and_set_meeting_request_status(
        self,
        request_id: UUID,
        expected: MeetingRequestStatus,
        new: MeetingRequestStatus,
        **values,
    ) -> bool:
        result = await self.db.execute(
            update(MeetingRequest)
            .where(
                MeetingRequest.id == request_id,
                MeetingRequest.status == expected.value,
            )
            .values(status=new.value, **values)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    # ─── Counting ────────────────────────────────────────────────

    async def count(self, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())
