"""Request Dependencies — actor resolution and service wiring for the routes.

Invariants:
    - Every authenticated route resolves its Actor from a Bearer token, then from the
      database; a token for a suspended or deleted user is rejected on every request
    - Services are built per request around the request's AsyncSession
    - The PaginationGrid comes from settings; read views and the invalidator share it
"""

from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.config import get_settings
from gigboard.core.cache_keys import PaginationGrid
from gigboard.core.errors import InvalidCredentialsError
from gigboard.core.repository_protocols import Mailer
from gigboard.infrastructure.cache_store import RedisCacheStore, get_cache_store
from gigboard.infrastructure.database import get_db
from gigboard.infrastructure.mailer import get_mailer
from gigboard.infrastructure.repository import EntityRepository
from gigboard.infrastructure.security import ArgonPasswordHasher, JwtTokenIssuer
from gigboard.models import Admin, Client, Freelancer
from gigboard.services.account_recovery import AccountRecoveryService
from gigboard.services.accounts import AccountService
from gigboard.services.actors import (
    Actor, load_actor, require_admin, require_client, require_freelancer,
)
from gigboard.services.application_service import ApplicationService
from gigboard.services.cache_invalidator import CacheInvalidator
from gigboard.services.meetings import MeetingService
from gigboard.services.notifications import MailOutbox
from gigboard.services.otp_ledger import OtpLedger
from gigboard.services.profiles import ProfileService
from gigboard.services.project_service import ProjectService
from gigboard.services.rating_aggregator import RecomputingRatingAggregator
from gigboard.services.rating_service import RatingService
from gigboard.services.read_views import ReadViews
from gigboard.services.user_admin import UserAdminService

_bearer = HTTPBearer(auto_error=False)


def get_grid() -> PaginationGrid:
    settings = get_settings()
    return PaginationGrid(
        pages=settings.cache_pages, page_sizes=tuple(settings.cache_page_sizes),
    )


def get_token_issuer() -> JwtTokenIssuer:
    settings = get_settings()
    return JwtTokenIssuer(
        settings.jwt_secret,
        settings.jwt_algorithm,
        settings.access_token_expire_minutes,
    )


# ─── Actor ───────────────────────────────────────────────────────

async def get_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
    tokens: JwtTokenIssuer = Depends(get_token_issuer),
) -> Actor:
    if credentials is None:
        raise InvalidCredentialsError("Access denied. No token provided.")
    claims = tokens.verify(credentials.credentials)
    try:
        user_id = UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidCredentialsError()
    return await load_actor(EntityRepository(db), user_id)


async def get_client(actor: Actor = Depends(get_actor)) -> Client:
    return require_client(actor)


async def get_freelancer(actor: Actor = Depends(get_actor)) -> Freelancer:
    return require_freelancer(actor)


async def get_admin(actor: Actor = Depends(get_actor)) -> Admin:
    return require_admin(actor)


# ─── Services ────────────────────────────────────────────────────

def get_invalidator(
    store: RedisCacheStore = Depends(get_cache_store),
    grid: PaginationGrid = Depends(get_grid),
) -> CacheInvalidator:
    return CacheInvalidator(store, grid)


def get_project_service(
    db: AsyncSession = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
) -> ProjectService:
    return ProjectService(db, invalidator)


def get_application_service(
    db: AsyncSession = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
) -> ApplicationService:
    return ApplicationService(db, invalidator)


def get_rating_service(
    db: AsyncSession = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
) -> RatingService:
    return RatingService(db, invalidator, RecomputingRatingAggregator())


def get_meeting_service(
    db: AsyncSession = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
) -> MeetingService:
    return MeetingService(db, invalidator)


def get_user_admin_service(
    db: AsyncSession = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
) -> UserAdminService:
    return UserAdminService(db, invalidator)


def get_account_recovery_service(
    db: AsyncSession = Depends(get_db),
    store: RedisCacheStore = Depends(get_cache_store),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    tokens: JwtTokenIssuer = Depends(get_token_issuer),
    mailer: Mailer = Depends(get_mailer),
) -> AccountRecoveryService:
    return AccountRecoveryService(
        db,
        OtpLedger.from_settings(store, get_settings()),
        MailOutbox(mailer),
        ArgonPasswordHasher(),
        tokens,
        invalidator,
    )


def get_account_service(
    db: AsyncSession = Depends(get_db),
    store: RedisCacheStore = Depends(get_cache_store),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    tokens: JwtTokenIssuer = Depends(get_token_issuer),
) -> AccountService:
    return AccountService(
        db,
        OtpLedger.from_settings(store, get_settings()),
        ArgonPasswordHasher(),
        tokens,
        invalidator,
    )


def get_profile_service(
    db: AsyncSession = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
) -> ProfileService:
    return ProfileService(db, invalidator)


def get_read_views(
    db: AsyncSession = Depends(get_db),
    store: RedisCacheStore = Depends(get_cache_store),
    grid: PaginationGrid = Depends(get_grid),
) -> ReadViews:
    return ReadViews(db, store, grid)
