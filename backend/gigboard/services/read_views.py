"""Read Views — cached read paths for dashboards, lists, profiles and public pages.

Invariants:
    - Every cached payload is JSON-safe (ids as str, datetimes ISO) so a hit and a miss
      return the same shape
    - Keys come from the shapes in core/cache_keys.py; a page outside the PaginationGrid
      is served straight from the database and never written to the cache
    - Filter values are checked against their enum before a key is built, so only keys
      the invalidation planner can name are ever written
    - Ownership is checked before the cache is consulted

Design Decisions:
    - Views read with plain SELECTs (no locking); staleness is bounded by invalidation
      on write and by the per-shape TTL
    - Profile search and the admin user list are never cached: their free-text filters
      make the key space open-ended. The admin review pages read live rows
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core import cache_keys as ck
from gigboard.core.cache_keys import CacheKeyShape, PaginationGrid
from gigboard.core.domain_types import (
    ALL_FILTER, ApplicationStatus, MeetingRequestStatus, MeetingStatus,
    ProjectStatus, RatingDirection, RatingListKind, UserRole,
)
from gigboard.core.errors import InputValidationError, ResourceNotFoundError
from gigboard.core.project_review import review_flags, waiting_time
from gigboard.core.rating_aggregate import mean_rating
from gigboard.core.repository_protocols import CacheStore
from gigboard.models import (
    Admin, Application, Client, Freelancer, Meeting, MeetingRequest, Project, Rating, User,
)
from gigboard.services.actors import Actor

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 8
RECENT_LIMIT = 6
CLIENT_HISTORY_LIMIT = 10
SEARCH_PAGE_SIZE = 12
SEARCH_PREVIEW_SIZE = 6
SEARCH_TYPES = ("all", "freelancer", "client")

# Statuses a project page is visible in; under-review and cancelled projects are not public.
PUBLIC_PROJECT_STATUSES = frozenset({
    ProjectStatus.OPEN, ProjectStatus.ASSIGNED,
    ProjectStatus.PENDING_COMPLETION, ProjectStatus.COMPLETED,
})


@dataclass
class CachedRead:
    data: Any
    cached: bool


async def read_through(
    store: CacheStore,
    key: str,
    ttl: int,
    loader: Callable[[], Awaitable[Any]],
) -> CachedRead:
    """Return the cached payload under key, or load, store and return it."""
    hit = await store.get(key)
    if hit is not None:
        return CachedRead(data=hit, cached=True)
    data = await loader()
    await store.set(key, data, ttl)
    return CachedRead(data=data, cached=False)


def parse_filter(value: str | None, enum_cls: type[Enum], field: str = "status") -> str:
    if value is None or value == ALL_FILTER:
        return ALL_FILTER
    try:
        return enum_cls(value).value
    except ValueError:
        raise InputValidationError(f"Unknown {field} filter: {value}", field)


# ─── Serializers ─────────────────────────────────────────────────

def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _id(value: UUID | None) -> str | None:
    return str(value) if value else None


def user_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "is_active": user.is_active,
        "is_verified": user.is_verified,
        "bio": user.bio,
        "location": user.location,
        "created_at": _iso(user.created_at),
    }


def client_dict(client: Client) -> dict:
    return {
        "id": str(client.id),
        "user_id": str(client.user_id),
        "name": client.user.name,
        "company_name": client.company_name,
        "industry": client.industry,
        "website": client.website,
        "location": client.user.location,
        "ratings": client.ratings,
        "projects_posted": client.projects_posted,
        "is_featured": client.is_featured,
    }


def freelancer_dict(freelancer: Freelancer) -> dict:
    return {
        "id": str(freelancer.id),
        "user_id": str(freelancer.user_id),
        "name": freelancer.user.name,
        "title": freelancer.title,
        "skills": list(freelancer.skills or []),
        "availability": freelancer.availability,
        "hourly_rate": freelancer.hourly_rate,
        "bio": freelancer.user.bio,
        "location": freelancer.user.location,
        "ratings": freelancer.ratings,
        "projects_completed": freelancer.projects_completed,
        "is_featured": freelancer.is_featured,
    }


def project_dict(project: Project) -> dict:
    return {
        "id": str(project.id),
        "client_id": str(project.client_id),
        "client_name": project.client.user.name,
        "assigned_to": _id(project.assigned_to),
        "title": project.title,
        "description": project.description,
        "skills_required": list(project.skills_required or []),
        "budget_min": project.budget_min,
        "budget_max": project.budget_max,
        "duration": project.duration,
        "status": project.status,
        "rejected_reason": project.rejected_reason,
        "is_featured": project.is_featured,
        "created_at": _iso(project.created_at),
        "updated_at": _iso(project.updated_at),
    }


def application_dict(application: Application, freelancer: Freelancer | None = None) -> dict:
    data = {
        "id": str(application.id),
        "project_id": str(application.project_id),
        "freelancer_id": str(application.freelancer_id),
        "proposal": application.proposal,
        "cover_letter": application.cover_letter,
        "status": application.status,
        "created_at": _iso(application.created_at),
    }
    if freelancer is not None:
        data["freelancer"] = freelancer_dict(freelancer)
    return data


def rating_dict(rating: Rating, rater_name: str | None = None) -> dict:
    return {
        "id": str(rating.id),
        "project_id": str(rating.project_id),
        "rater_id": str(rating.rater_id),
        "rated_id": str(rating.rated_id),
        "rater_type": rating.rater_type,
        "rater_name": rater_name,
        "rating": rating.rating,
        "review": rating.review,
        "created_at": _iso(rating.created_at),
    }


def meeting_dict(meeting: Meeting) -> dict:
    return {
        "id": str(meeting.id),
        "project_id": str(meeting.project_id),
        "client_id": str(meeting.client_id),
        "freelancer_id": str(meeting.freelancer_id),
        "title": meeting.title,
        "description": meeting.description,
        "meeting_link": meeting.meeting_link,
        "scheduled_at": _iso(meeting.scheduled_at),
        "duration_minutes": meeting.duration_minutes,
        "status": meeting.status,
        "notes": meeting.notes,
        "reschedule_reason": meeting.reschedule_reason,
    }


def meeting_request_dict(request: MeetingRequest) -> dict:
    return {
        "id": str(request.id),
        "project_id": str(request.project_id),
        "client_id": str(request.client_id),
        "freelancer_id": str(request.freelancer_id),
        "reason": request.reason,
        "preferred_duration": request.preferred_duration,
        "status": request.status,
        "response_note": request.response_note,
        "created_meeting_id": _id(request.created_meeting_id),
        "created_at": _iso(request.created_at),
        "responded_at": _iso(request.responded_at),
    }


# ─── Views ───────────────────────────────────────────────────────

class ReadViews:
    def __init__(self, db: AsyncSession, store: CacheStore, grid: PaginationGrid):
        self.db = db
        self.store = store
        self.grid = grid

    async def _cached(
        self, shape: CacheKeyShape, ident, loader, filter_value: str | None = None,
    ) -> CachedRead:
        key = shape.key(ident, filter_value=filter_value)
        return await read_through(self.store, key, shape.ttl, loader)

    async def _cached_page(
        self,
        shape: CacheKeyShape,
        ident,
        page: int,
        limit: int,
        loader,
        filter_value: str | None = None,
    ) -> CachedRead:
        if not self.grid.contains(page, limit):
            return CachedRead(data=await loader(), cached=False)
        key = shape.key(ident, filter_value=filter_value, page=page, limit=limit)
        return await read_through(self.store, key, shape.ttl, loader)

    async def _page(self, stmt, page: int, limit: int, serialize) -> dict:
        total = await self.db.scalar(
            select(func.count()).select_from(stmt.order_by(None).subquery()),
        )
        result = await self.db.execute(
            stmt.offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True),
        )
        return {
            "items": [serialize(*row) for row in result.all()],
            "page": page,
            "limit": limit,
            "total": int(total or 0),
        }

    async def _all(self, stmt) -> list:
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def _count(self, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int(await self.db.scalar(stmt) or 0)

    async def _status_counts(self, column, *criteria) -> dict[str, int]:
        result = await self.db.execute(
            select(column, func.count()).where(*criteria).group_by(column),
        )
        return {status: count for status, count in result.all()}

    # ─── Account ─────────────────────────────────────────────────

    async def account(self, actor: Actor) -> CachedRead:
        async def load():
            return user_dict(actor.user)
        return await self._cached(ck.USER_ACCOUNT, actor.user_id, load)

    # ─── Client ──────────────────────────────────────────────────

    async def client_profile(self, client: Client) -> CachedRead:
        async def load():
            return {"user": user_dict(client.user), "client": client_dict(client)}
        return await self._cached(ck.CLIENT_PROFILE, client.user_id, load)

    async def client_dashboard(self, client: Client) -> CachedRead:
        async def load():
            projects = await self._status_counts(
                Project.status, Project.client_id == client.id,
            )
            applications = await self._status_counts(
                Application.status,
                Application.project_id.in_(
                    select(Project.id).where(Project.client_id == client.id),
                ),
            )
            return {
                "projects": projects,
                "total_projects": sum(projects.values()),
                "applications": applications,
                "upcoming_meetings": await self._count(
                    Meeting,
                    Meeting.client_id == client.id,
                    Meeting.status == MeetingStatus.SCHEDULED.value,
                ),
                "pending_meeting_requests": await self._count(
                    MeetingRequest,
                    MeetingRequest.client_id == client.id,
                    MeetingRequest.status == MeetingRequestStatus.PENDING.value,
                ),
            }
        return await self._cached(ck.CLIENT_DASHBOARD, client.user_id, load)

    async def client_projects(
        self, client: Client, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, ProjectStatus)

        async def load():
            stmt = select(Project).where(Project.client_id == client.id)
            if status != ALL_FILTER:
                stmt = stmt.where(Project.status == status)
            stmt = stmt.order_by(Project.created_at.desc())
            return await self._page(stmt, page, limit, project_dict)
        return await self._cached_page(
            ck.CLIENT_PROJECTS, client.user_id, page, limit, load, status,
        )

    async def client_applications(
        self, client: Client, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, ApplicationStatus)

        async def load():
            stmt = (
                select(Application, Freelancer)
                .join(Freelancer, Application.freelancer_id == Freelancer.id)
                .join(Project, Application.project_id == Project.id)
                .where(Project.client_id == client.id)
            )
            if status != ALL_FILTER:
                stmt = stmt.where(Application.status == status)
            stmt = stmt.order_by(Application.created_at.desc())
            return await self._page(stmt, page, limit, application_dict)
        return await self._cached_page(
            ck.CLIENT_APPLICATIONS, client.user_id, page, limit, load, status,
        )

    async def project_applications(
        self, client: Client, project_id: UUID, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, ApplicationStatus)
        project = await self._project_or_404(project_id)
        if project.client_id != client.id:
            raise ResourceNotFoundError("Project", str(project_id))

        async def load():
            stmt = (
                select(Application, Freelancer)
                .join(Freelancer, Application.freelancer_id == Freelancer.id)
                .where(Application.project_id == project_id)
            )
            if status != ALL_FILTER:
                stmt = stmt.where(Application.status == status)
            stmt = stmt.order_by(Application.created_at.desc())
            return await self._page(stmt, page, limit, application_dict)
        return await self._cached_page(
            ck.PROJECT_APPLICATIONS, project_id, page, limit, load, status,
        )

    # ─── Freelancer ──────────────────────────────────────────────

    async def freelancer_profile(self, freelancer: Freelancer) -> CachedRead:
        async def load():
            return {
                "user": user_dict(freelancer.user),
                "freelancer": freelancer_dict(freelancer),
            }
        return await self._cached(ck.FREELANCER_PROFILE, freelancer.user_id, load)

    async def freelancer_dashboard(self, freelancer: Freelancer) -> CachedRead:
        async def load():
            applications = await self._status_counts(
                Application.status, Application.freelancer_id == freelancer.id,
            )
            projects = await self._status_counts(
                Project.status, Project.assigned_to == freelancer.id,
            )
            return {
                "applications": applications,
                "total_applications": sum(applications.values()),
                "projects": projects,
                "upcoming_meetings": await self._count(
                    Meeting,
                    Meeting.freelancer_id == freelancer.id,
                    Meeting.status == MeetingStatus.SCHEDULED.value,
                ),
                "pending_meeting_requests": await self._count(
                    MeetingRequest,
                    MeetingRequest.freelancer_id == freelancer.id,
                    MeetingRequest.status == MeetingRequestStatus.PENDING.value,
                ),
            }
        return await self._cached(ck.FREELANCER_DASHBOARD, freelancer.user_id, load)

    async def freelancer_projects(
        self, freelancer: Freelancer, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, ProjectStatus)

        async def load():
            stmt = select(Project).where(Project.assigned_to == freelancer.id)
            if status != ALL_FILTER:
                stmt = stmt.where(Project.status == status)
            stmt = stmt.order_by(Project.updated_at.desc())
            return await self._page(stmt, page, limit, project_dict)
        return await self._cached_page(
            ck.FREELANCER_PROJECTS, freelancer.user_id, page, limit, load, status,
        )

    async def freelancer_applications(
        self, freelancer: Freelancer, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, ApplicationStatus)

        def serialize(application: Application, project: Project) -> dict:
            data = application_dict(application)
            data["project"] = {
                "id": str(project.id), "title": project.title, "status": project.status,
            }
            return data

        async def load():
            stmt = (
                select(Application, Project)
                .join(Project, Application.project_id == Project.id)
                .where(Application.freelancer_id == freelancer.id)
            )
            if status != ALL_FILTER:
                stmt = stmt.where(Application.status == status)
            stmt = stmt.order_by(Application.created_at.desc())
            return await self._page(stmt, page, limit, serialize)
        return await self._cached_page(
            ck.FREELANCER_APPLICATIONS, freelancer.user_id, page, limit, load, status,
        )

    async def freelancer_rating_stats(self, freelancer: Freelancer) -> CachedRead:
        async def load():
            result = await self.db.execute(
                select(Rating.rating, func.count())
                .where(
                    Rating.rated_id == freelancer.user_id,
                    Rating.rater_type == RatingDirection.CLIENT_TO_FREELANCER.value,
                )
                .group_by(Rating.rating),
            )
            counts = dict(result.all())
            return {
                "average": mean_rating(
                    star for star, count in counts.items() for _ in range(count)
                ),
                "total": sum(counts.values()),
                "distribution": {str(star): counts.get(star, 0) for star in range(1, 6)},
            }
        return await self._cached(ck.FREELANCER_RATING_STATS, freelancer.user_id, load)

    # ─── Shared participant views ────────────────────────────────

    async def ratings(
        self, actor: Actor, kind: str | None, page: int, limit: int,
    ) -> CachedRead:
        """Ratings given by, received by, or involving the acting client or freelancer."""
        kind = parse_filter(kind, RatingListKind, "type")
        shape = ck.CLIENT_RATINGS if actor.role == UserRole.CLIENT else ck.FREELANCER_RATINGS

        async def load():
            stmt = select(Rating, User.name).join(User, Rating.rater_id == User.id)
            if kind == RatingListKind.GIVEN.value:
                stmt = stmt.where(Rating.rater_id == actor.user_id)
            elif kind == RatingListKind.RECEIVED.value:
                stmt = stmt.where(Rating.rated_id == actor.user_id)
            else:
                stmt = stmt.where(or_(
                    Rating.rater_id == actor.user_id, Rating.rated_id == actor.user_id,
                ))
            stmt = stmt.order_by(Rating.created_at.desc())
            return await self._page(stmt, page, limit, rating_dict)
        return await self._cached_page(shape, actor.user_id, page, limit, load, kind)

    async def meetings(
        self, actor: Actor, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, MeetingStatus)
        if actor.role == UserRole.CLIENT:
            shape, criterion = ck.CLIENT_MEETINGS, Meeting.client_id == actor.client.id
        else:
            shape, criterion = (
                ck.FREELANCER_MEETINGS, Meeting.freelancer_id == actor.freelancer.id,
            )

        async def load():
            stmt = select(Meeting).where(criterion)
            if status != ALL_FILTER:
                stmt = stmt.where(Meeting.status == status)
            stmt = stmt.order_by(Meeting.scheduled_at.asc())
            return await self._page(stmt, page, limit, meeting_dict)
        return await self._cached_page(shape, actor.user_id, page, limit, load, status)

    async def meeting_requests(
        self, actor: Actor, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, MeetingRequestStatus)
        if actor.role == UserRole.CLIENT:
            shape = ck.CLIENT_MEETING_REQUESTS
            criterion = MeetingRequest.client_id == actor.client.id
        else:
            shape = ck.FREELANCER_MEETING_REQUESTS
            criterion = MeetingRequest.freelancer_id == actor.freelancer.id

        async def load():
            stmt = select(MeetingRequest).where(criterion)
            if status != ALL_FILTER:
                stmt = stmt.where(MeetingRequest.status == status)
            stmt = stmt.order_by(MeetingRequest.created_at.desc())
            return await self._page(stmt, page, limit, meeting_request_dict)
        return await self._cached_page(shape, actor.user_id, page, limit, load, status)

    async def project_meetings(
        self, actor: Actor, project_id: UUID, status: str | None, page: int, limit: int,
    ) -> CachedRead:
        status = parse_filter(status, MeetingStatus)
        project = await self._project_or_404(project_id)
        is_client = actor.client is not None and project.client_id == actor.client.id
        is_freelancer = (
            actor.freelancer is not None and project.assigned_to == actor.freelancer.id
        )
        if not (is_client or is_freelancer):
            raise ResourceNotFoundError("Project", str(project_id))

        async def load():
            stmt = select(Meeting).where(Meeting.project_id == project_id)
            if status != ALL_FILTER:
                stmt = stmt.where(Meeting.status == status)
            stmt = stmt.order_by(Meeting.scheduled_at.asc())
            return await self._page(stmt, page, limit, meeting_dict)
        return await self._cached_page(
            ck.PROJECT_MEETINGS, project_id, page, limit, load, status,
        )

    async def project_detail(self, project_id: UUID) -> CachedRead:
        """Public project page. Projects under review or cancelled read as NOT_FOUND."""
        async def load():
            project = await self._public_project_or_404(project_id)
            data = project_dict(project)
            del data["rejected_reason"]
            data["application_count"] = await self._count(
                Application, Application.project_id == project_id,
            )
            ratings = await self._all(
                select(Rating).where(Rating.project_id == project_id),
            )
            data["ratings"] = [rating_dict(r) for r in ratings]
            return data
        await self._public_project_or_404(project_id)
        return await self._cached(ck.PROJECT_DETAIL, project_id, load)

    # ─── Public ──────────────────────────────────────────────────

    def _open_projects(self):
        return (
            select(Project)
            .join(Client, Project.client_id == Client.id)
            .join(User, Client.user_id == User.id)
            .where(Project.status == ProjectStatus.OPEN.value, User.is_active.is_(True))
        )

    async def available_projects(self, page: int, limit: int) -> CachedRead:
        async def load():
            stmt = self._open_projects().order_by(
                Project.is_featured.desc(), Project.created_at.desc(),
            )
            return await self._page(stmt, page, limit, project_dict)
        return await self._cached_page(
            ck.PUBLIC_AVAILABLE_PROJECTS, ck.SHARED_IDENT, page, limit, load,
        )

    async def recent_projects(self) -> CachedRead:
        async def load():
            projects = await self._all(
                self._open_projects().order_by(Project.created_at.desc()).limit(RECENT_LIMIT),
            )
            return [project_dict(p) for p in projects]
        return await self._cached(ck.PUBLIC_RECENT_PROJECTS, ck.SHARED_IDENT, load)

    async def featured_projects(self) -> CachedRead:
        async def load():
            projects = await self._all(
                self._open_projects()
                .where(Project.is_featured.is_(True))
                .order_by(Project.created_at.desc())
                .limit(FEATURED_LIMIT),
            )
            return [project_dict(p) for p in projects]
        return await self._cached(ck.PUBLIC_FEATURED_PROJECTS, ck.SHARED_IDENT, load)

    async def featured_freelancers(self) -> CachedRead:
        async def load():
            freelancers = await self._all(
                select(Freelancer)
                .join(User, Freelancer.user_id == User.id)
                .where(Freelancer.is_featured.is_(True), User.is_active.is_(True))
                .order_by(Freelancer.ratings.desc(), Freelancer.projects_completed.desc())
                .limit(FEATURED_LIMIT),
            )
            return [freelancer_dict(f) for f in freelancers]
        return await self._cached(ck.PUBLIC_FEATURED_FREELANCERS, ck.SHARED_IDENT, load)

    async def featured_clients(self) -> CachedRead:
        async def load():
            clients = await self._all(
                select(Client)
                .join(User, Client.user_id == User.id)
                .where(Client.is_featured.is_(True), User.is_active.is_(True))
                .order_by(Client.ratings.desc(), Client.projects_posted.desc())
                .limit(FEATURED_LIMIT),
            )
            return [client_dict(c) for c in clients]
        return await self._cached(ck.PUBLIC_FEATURED_CLIENTS, ck.SHARED_IDENT, load)

    async def platform_stats(self) -> CachedRead:
        async def load():
            return {
                "freelancers": await self._count(
                    Freelancer, Freelancer.user_id.in_(
                        select(User.id).where(User.is_active.is_(True)),
                    ),
                ),
                "clients": await self._count(
                    Client, Client.user_id.in_(
                        select(User.id).where(User.is_active.is_(True)),
                    ),
                ),
                "open_projects": await self._count(
                    Project, Project.status == ProjectStatus.OPEN.value,
                ),
                "completed_projects": await self._count(
                    Project, Project.status == ProjectStatus.COMPLETED.value,
                ),
            }
        return await self._cached(ck.PUBLIC_STATS, ck.SHARED_IDENT, load)

    async def user_ratings(self, user_id: UUID, page: int, limit: int) -> CachedRead:
        """Ratings a user received, newest first."""
        await self._active_user_or_404(user_id)

        async def load():
            stmt = (
                select(Rating, User.name)
                .join(User, Rating.rater_id == User.id)
                .where(Rating.rated_id == user_id)
                .order_by(Rating.created_at.desc())
            )
            return await self._page(stmt, page, limit, rating_dict)
        return await self._cached_page(ck.PUBLIC_USER_RATINGS, user_id, page, limit, load)

    async def user_rating_summary(self, user_id: UUID) -> CachedRead:
        user = await self._active_user_or_404(user_id)
        direction = (
            RatingDirection.CLIENT_TO_FREELANCER
            if user.role == UserRole.FREELANCER.value
            else RatingDirection.FREELANCER_TO_CLIENT
        )

        async def load():
            result = await self.db.execute(
                select(func.count(), func.avg(Rating.rating)).where(
                    Rating.rated_id == user_id, Rating.rater_type == direction.value,
                ),
            )
            total, average = result.one()
            return {
                "user_id": str(user_id),
                "total": int(total or 0),
                "average": round(float(average), 2) if average is not None else 0.0,
            }
        return await self._cached(ck.PUBLIC_USER_RATING_SUMMARY, user_id, load)

    async def public_freelancer_profile(self, user_id: UUID) -> CachedRead:
        await self._active_user_or_404(user_id)

        async def load():
            freelancer = await self.db.scalar(
                select(Freelancer)
                .where(Freelancer.user_id == user_id)
                .execution_options(populate_existing=True),
            )
            if freelancer is None:
                raise ResourceNotFoundError("Freelancer", str(user_id))
            return freelancer_dict(freelancer)
        return await self._cached(ck.PUBLIC_FREELANCER_PROFILE, user_id, load)

    async def public_client_profile(self, user_id: UUID) -> CachedRead:
        await self._active_user_or_404(user_id)

        async def load():
            client = await self.db.scalar(
                select(Client)
                .where(Client.user_id == user_id)
                .execution_options(populate_existing=True),
            )
            if client is None:
                raise ResourceNotFoundError("Client", str(user_id))
            return client_dict(client)
        return await self._cached(ck.PUBLIC_CLIENT_PROFILE, user_id, load)

    # ─── Admin ───────────────────────────────────────────────────

    async def admin_dashboard_stats(self) -> CachedRead:
        async def load():
            total_projects = await self._count(Project)
            completed = await self._count(
                Project, Project.status == ProjectStatus.COMPLETED.value,
            )
            recent_users = await self._all(
                select(User).order_by(User.created_at.desc()).limit(5),
            )
            recent_projects = await self._all(
                select(Project).order_by(Project.created_at.desc()).limit(5),
            )
            return {
                "total_users": await self._count(User),
                "total_freelancers": await self._count(Freelancer),
                "total_clients": await self._count(Client),
                "total_projects": total_projects,
                "completed_projects": completed,
                "open_projects": await self._count(
                    Project, Project.status == ProjectStatus.OPEN.value,
                ),
                "pending_review": await self._count(
                    Project, Project.status == ProjectStatus.ADMIN_VERIFICATION.value,
                ),
                "active_users": await self._count(User, User.is_active.is_(True)),
                "success_rate": (
                    round(completed / total_projects * 100, 2) if total_projects else 0.0
                ),
                "recent_users": [user_dict(u) for u in recent_users],
                "recent_projects": [
                    project_dict(p) for p in recent_projects
                ],
                "generated_at": datetime.now(timezone.utc).isoformat(),
            }
        return await self._cached(ck.ADMIN_DASHBOARD_STATS, ck.SHARED_IDENT, load)

    async def pending_projects(self, page: int, limit: int) -> CachedRead:
        async def load():
            stmt = (
                select(Project)
                .where(Project.status == ProjectStatus.ADMIN_VERIFICATION.value)
                .order_by(Project.created_at.asc())
            )
            return await self._page(stmt, page, limit, project_dict)
        return await self._cached_page(
            ck.ADMIN_PENDING_PROJECTS, ck.SHARED_IDENT, page, limit, load,
        )

    async def admin_users(
        self,
        role: str | None,
        is_active: bool | None,
        search: str | None,
        page: int,
        limit: int,
    ) -> CachedRead:
        """Uncached: the free-text search makes the key space open-ended."""
        role = parse_filter(role, UserRole, "role")
        stmt = select(User).order_by(User.created_at.desc())
        if role != ALL_FILTER:
            stmt = stmt.where(User.role == role)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(or_(
                func.lower(User.name).like(pattern), func.lower(User.email).like(pattern),
            ))
        data = await self._page(stmt, page, limit, lambda user: user)
        data["items"] = [await self._admin_user_dict(user) for user in data["items"]]
        return CachedRead(data=data, cached=False)

    async def project_review(self, project_id: UUID) -> CachedRead:
        project = await self._project_or_404(project_id)
        client = project.client
        history = await self._all(
            select(Project)
            .where(Project.client_id == client.id, Project.id != project.id)
            .order_by(Project.created_at.desc())
            .limit(CLIENT_HISTORY_LIMIT),
        )
        counts = await self._status_counts(Project.status, Project.client_id == client.id)
        wait = waiting_time(project.created_at)
        cancelled = sum(1 for p in history if p.status == ProjectStatus.CANCELLED.value)
        data = project_dict(project)
        data.update({
            "applications_count": await self._count(
                Application, Application.project_id == project.id,
            ),
            "client": {
                **client_dict(client),
                "email": client.user.email,
                "is_active": client.user.is_active,
                "member_since": _iso(client.user.created_at),
            },
            "client_history": {
                "total_projects": len(history) + 1,
                "projects_by_status": counts,
                "recent_projects": [
                    {
                        "id": str(p.id),
                        "title": p.title,
                        "status": p.status,
                        "budget_min": p.budget_min,
                        "budget_max": p.budget_max,
                        "rejected_reason": p.rejected_reason,
                        "created_at": _iso(p.created_at),
                    }
                    for p in history
                ],
                "rejected_count": cancelled,
                "approved_count": len(history) - cancelled,
            },
            "waiting_time": {
                "days": wait.days, "display": wait.display, "urgency": wait.urgency,
            },
            "review_flags": review_flags(
                wait, counts, project.budget_max, client.company_name, client.industry,
            ),
        })
        return CachedRead(data=data, cached=False)

    async def project_activity(self, project_id: UUID) -> CachedRead:
        """Timeline rebuilt from the project row; most recent entry first."""
        project = await self._project_or_404(project_id)
        activities = [{
            "type": "CREATED",
            "description": "Project created and submitted for admin verification",
            "timestamp": _iso(project.created_at),
            "actor": "System",
            "status": ProjectStatus.ADMIN_VERIFICATION.value,
        }]
        if project.status != ProjectStatus.ADMIN_VERIFICATION.value:
            rejected = (
                project.status == ProjectStatus.CANCELLED.value and project.rejected_reason
            )
            activities.append({
                "type": "REJECTED" if rejected else "APPROVED",
                "description": (
                    f"Project rejected by admin: {project.rejected_reason}" if rejected
                    else "Project approved by admin and made public"
                ),
                "timestamp": _iso(project.updated_at),
                "actor": "Admin",
                "status": project.status,
            })
        return CachedRead(
            data={
                "project_id": str(project.id),
                "title": project.title,
                "current_status": project.status,
                "activities": activities[::-1],
            },
            cached=False,
        )

    # ─── Search ──────────────────────────────────────────────────

    async def search_profiles(
        self,
        query: str | None = None,
        profile_type: str = "all",
        skills: list[str] | None = None,
        location: str | None = None,
        min_rating: float | None = None,
        page: int = 1,
        limit: int = SEARCH_PAGE_SIZE,
    ) -> CachedRead:
        """Active freelancers and clients matching every given filter, best rated first.

        Uncached. With profile_type "all" each group is cut to SEARCH_PREVIEW_SIZE and
        page is ignored; a single type is paginated.
        """
        if profile_type not in SEARCH_TYPES:
            raise InputValidationError(
                f"type must be one of: {', '.join(SEARCH_TYPES)}", "type",
            )
        if min_rating is not None and not 0 <= min_rating <= 5:
            raise InputValidationError("min_rating must be between 0 and 5", "min_rating")
        text = f"%{query.strip().lower()}%" if query and query.strip() else None
        place = f"%{location.strip().lower()}%" if location and location.strip() else None
        wanted = {s.strip().lower() for s in skills or [] if s and s.strip()}

        def user_filters(stmt, model):
            stmt = stmt.join(User, model.user_id == User.id).where(User.is_active.is_(True))
            if place:
                stmt = stmt.where(func.lower(User.location).like(place))
            if min_rating is not None:
                stmt = stmt.where(model.ratings >= min_rating)
            return stmt

        if profile_type == "all":
            offset, size = 0, SEARCH_PREVIEW_SIZE
        else:
            offset, size = (page - 1) * limit, limit
        results = {}
        if profile_type in ("all", "freelancer"):
            stmt = user_filters(select(Freelancer), Freelancer)
            if text:
                stmt = stmt.where(or_(
                    func.lower(User.name).like(text),
                    func.lower(User.bio).like(text),
                    func.lower(Freelancer.title).like(text),
                ))
            stmt = stmt.order_by(
                Freelancer.ratings.desc(), Freelancer.projects_completed.desc(),
            )
            # skills live in a JSON array, matched here rather than in SQL
            found = [
                f for f in await self._all(stmt)
                if not wanted or wanted & {s.lower() for s in f.skills or []}
            ]
            results["freelancers"] = {
                "items": [freelancer_dict(f) for f in found[offset:offset + size]],
                "total": len(found),
            }
        if profile_type in ("all", "client"):
            stmt = user_filters(select(Client), Client)
            if text:
                stmt = stmt.where(or_(
                    func.lower(User.name).like(text),
                    func.lower(User.bio).like(text),
                    func.lower(Client.company_name).like(text),
                    func.lower(Client.industry).like(text),
                ))
            stmt = stmt.order_by(Client.ratings.desc(), Client.projects_posted.desc())
            found = await self._all(stmt)
            results["clients"] = {
                "items": [client_dict(c) for c in found[offset:offset + size]],
                "total": len(found),
            }
        results.update({"page": page if profile_type != "all" else 1, "limit": size})
        return CachedRead(data=results, cached=False)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _admin_user_dict(self, user: User) -> dict:
        data = user_dict(user)
        if user.role == UserRole.FREELANCER.value:
            freelancer = await self.db.scalar(
                select(Freelancer).where(Freelancer.user_id == user.id),
            )
            if freelancer is not None:
                data["freelancer"] = {
                    "projects_completed": freelancer.projects_completed,
                    "ratings": freelancer.ratings,
                }
        elif user.role == UserRole.CLIENT.value:
            client = await self.db.scalar(select(Client).where(Client.user_id == user.id))
            if client is not None:
                data["client"] = {
                    "projects_posted": client.projects_posted,
                    "company_name": client.company_name,
                }
        elif user.role == UserRole.ADMIN.value:
            admin = await self.db.scalar(select(Admin).where(Admin.user_id == user.id))
            if admin is not None:
                data["admin"] = {"permissions": list(admin.permissions or [])}
        return data

    async def _project_or_404(self, project_id: UUID) -> Project:
        project = await self.db.scalar(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True),
        )
        if project is None:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _public_project_or_404(self, project_id: UUID) -> Project:
        project = await self._project_or_404(project_id)
        if ProjectStatus(project.status) not in PUBLIC_PROJECT_STATUSES:
            raise ResourceNotFoundError("Project", str(project_id))
        return project

    async def _active_user_or_404(self, user_id: UUID) -> User:
        user = await self.db.scalar(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True),
        )
        if user is None or not user.is_active:
            raise ResourceNotFoundError("User", str(user_id))
        return user
