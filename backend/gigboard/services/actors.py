"""Actors — the authenticated user behind a request, with their role profile.

Invariants:
    - load_actor never returns an inactive user (AccountInactiveError)
    - An Actor carries exactly the profile matching its role
    - require_* helpers raise PermissionDeniedError for the wrong role
"""

from dataclasses import dataclass
from uuid import UUID

from gigboard.core.domain_types import UserRole
from gigboard.core.errors import (
    AccountInactiveError, InvalidCredentialsError, PermissionDeniedError,
    ResourceNotFoundError,
)
from gigboard.infrastructure.repository import EntityRepository
from gigboard.models import Admin, Client, Freelancer, User


@dataclass(frozen=True)
class Actor:
    user: User
    role: UserRole
    client: Client | None = None
    freelancer: Freelancer | None = None
    admin: Admin | None = None

    @property
    def user_id(self) -> UUID:
        return self.user.id


async def load_actor(repo: EntityRepository, user_id: UUID) -> Actor:
    user = await repo.find_user(user_id)
    if user is None:
        raise InvalidCredentialsError("User not found")
    if not user.is_active:
        raise AccountInactiveError()
    role = UserRole(user.role)
    if role == UserRole.CLIENT:
        profile = await repo.find_client_by_user(user.id)
        field = "client"
    elif role == UserRole.FREELANCER:
        profile = await repo.find_freelancer_by_user(user.id)
        field = "freelancer"
    else:
        profile = await repo.find_admin_by_user(user.id)
        field = "admin"
    if profile is None:
        raise ResourceNotFoundError(f"{role.value.title()} profile", str(user.id))
    return Actor(user=user, role=role, **{field: profile})


def require_client(actor: Actor) -> Client:
    if actor.client is None:
        raise PermissionDeniedError("Access denied. Client role required.")
    return actor.client


def require_freelancer(actor: Actor) -> Freelancer:
    if actor.freelancer is None:
        raise PermissionDeniedError("Access denied. Freelancer role required.")
    return actor.freelancer


def require_admin(actor: Actor) -> Admin:
    if actor.admin is None:
        raise PermissionDeniedError("Access denied. Admin role required.")
    return actor.admin
