"""Cache Key Grammar — one typed, versioned builder per cached query shape.

Key layout:
    v1:{scope}:{kind}:{id}[:{filter_dim}:{value}][:page:{n}:limit:{size}]

Invariants:
    - Every key that is ever written to the cache is produced by a CacheKeyShape below
    - A shape fixes its dimensions: a filter dimension (or none) and pagination (or none);
      key() rejects a call that does not match the shape
    - KEY_VERSION prefixes every key; bumping it orphans all previous entries at once
    - Each shape carries the TTL for its data volatility
"""

from dataclasses import dataclass
from uuid import UUID

from gigboard.core.domain_types import ALL_FILTER, OtpPurpose

KEY_VERSION = "v1"
SHARED_IDENT = "all"


@dataclass(frozen=True)
class PaginationGrid:
    """Bounded (page, limit) grid enumerated by the invalidation planner."""
    pages: int = 10
    page_sizes: tuple[int, ...] = (10, 20, 50)

    def cells(self) -> list[tuple[int, int]]:
        return [
            (page, size)
            for page in range(1, self.pages + 1)
            for size in self.page_sizes
        ]

    def contains(self, page: int, limit: int) -> bool:
        return 1 <= page <= self.pages and limit in self.page_sizes


@dataclass(frozen=True)
class CacheKeyShape:
    scope: str
    kind: str
    ttl: int
    filter_dim: str | None = None
    paginated: bool = False

    def key(
        self,
        ident: UUID | str = SHARED_IDENT,
        *,
        filter_value: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> str:
        parts = [KEY_VERSION, self.scope, self.kind, str(ident)]
        if self.filter_dim is not None:
            parts += [self.filter_dim, _filter_token(filter_value)]
        elif filter_value is not None:
            raise ValueError(f"{self.name} has no filter dimension")
        if self.paginated:
            if page is None or limit is None:
                raise ValueError(f"{self.name} requires page and limit")
            parts += ["page", str(page), "limit", str(limit)]
        elif page is not None or limit is not None:
            raise ValueError(f"{self.name} is not paginated")
        return ":".join(parts)

    @property
    def name(self) -> str:
        return f"{self.scope}:{self.kind}"


def _filter_token(value: object) -> str:
    if value is None:
        return ALL_FILTER
    return getattr(value, "value", value)


# ─── TTLs (seconds) by volatility ────────────────────────────────

TTL_APPLICATIONS = 120
TTL_DASHBOARD = 120
TTL_PROJECT_LIST = 180
TTL_MEETINGS = 180
TTL_ADMIN_STATS = 300
TTL_PROFILE = 600
TTL_FEATURED = 900
TTL_RATING_LIST = 900
TTL_AGGREGATE = 1800


# ─── Per-user views (ident = user id) ────────────────────────────

USER_ACCOUNT = CacheKeyShape("user", "account", TTL_PROFILE)

CLIENT_PROFILE = CacheKeyShape("client", "profile", TTL_PROFILE)
CLIENT_DASHBOARD = CacheKeyShape("client", "dashboard", TTL_DASHBOARD)
CLIENT_PROJECTS = CacheKeyShape(
    "client", "projects", TTL_PROJECT_LIST, filter_dim="status", paginated=True,
)
CLIENT_APPLICATIONS = CacheKeyShape(
    "client", "applications", TTL_APPLICATIONS, filter_dim="status", paginated=True,
)
CLIENT_RATINGS = CacheKeyShape(
    "client", "ratings", TTL_RATING_LIST, filter_dim="type", paginated=True,
)
CLIENT_MEETINGS = CacheKeyShape(
    "client", "meetings", TTL_MEETINGS, filter_dim="status", paginated=True,
)
CLIENT_MEETING_REQUESTS = CacheKeyShape(
    "client", "meeting-requests", TTL_MEETINGS, filter_dim="status", paginated=True,
)

FREELANCER_PROFILE = CacheKeyShape("freelancer", "profile", TTL_PROFILE)
FREELANCER_DASHBOARD = CacheKeyShape("freelancer", "dashboard", TTL_DASHBOARD)
FREELANCER_PROJECTS = CacheKeyShape(
    "freelancer", "projects", TTL_PROJECT_LIST, filter_dim="status", paginated=True,
)
FREELANCER_APPLICATIONS = CacheKeyShape(
    "freelancer", "applications", TTL_APPLICATIONS, filter_dim="status", paginated=True,
)
FREELANCER_RATINGS = CacheKeyShape(
    "freelancer", "ratings", TTL_RATING_LIST, filter_dim="type", paginated=True,
)
FREELANCER_RATING_STATS = CacheKeyShape("freelancer", "rating-stats", TTL_AGGREGATE)
FREELANCER_MEETINGS = CacheKeyShape(
    "freelancer", "meetings", TTL_MEETINGS, filter_dim="status", paginated=True,
)
FREELANCER_MEETING_REQUESTS = CacheKeyShape(
    "freelancer", "meeting-requests", TTL_MEETINGS, filter_dim="status", paginated=True,
)

# ─── Per-project views (ident = project id) ──────────────────────

PROJECT_DETAIL = CacheKeyShape("project", "detail", TTL_PROJECT_LIST)
PROJECT_APPLICATIONS = CacheKeyShape(
    "project", "applications", TTL_APPLICATIONS, filter_dim="status", paginated=True,
)
PROJECT_MEETINGS = CacheKeyShape(
    "project", "meetings", TTL_MEETINGS, filter_dim="status", paginated=True,
)

# ─── Public and admin aggregates (ident = "all" or a user id) ────

PUBLIC_AVAILABLE_PROJECTS = CacheKeyShape(
    "public", "available-projects", TTL_PROJECT_LIST, paginated=True,
)
PUBLIC_RECENT_PROJECTS = CacheKeyShape("public", "recent-projects", TTL_PROJECT_LIST)
PUBLIC_FEATURED_PROJECTS = CacheKeyShape("public", "featured-projects", TTL_FEATURED)
PUBLIC_FEATURED_FREELANCERS = CacheKeyShape("public", "featured-freelancers", TTL_FEATURED)
PUBLIC_FEATURED_CLIENTS = CacheKeyShape("public", "featured-clients", TTL_FEATURED)
PUBLIC_STATS = CacheKeyShape("public", "stats", TTL_AGGREGATE)
PUBLIC_USER_RATINGS = CacheKeyShape(
    "public", "user-ratings", TTL_RATING_LIST, paginated=True,
)
PUBLIC_USER_RATING_SUMMARY = CacheKeyShape("public", "user-rating-summary", TTL_AGGREGATE)
PUBLIC_FREELANCER_PROFILE = CacheKeyShape("public", "freelancer-profile", TTL_AGGREGATE)
PUBLIC_CLIENT_PROFILE = CacheKeyShape("public", "client-profile", TTL_AGGREGATE)

ADMIN_DASHBOARD_STATS = CacheKeyShape("admin", "dashboard-stats", TTL_ADMIN_STATS)
ADMIN_PENDING_PROJECTS = CacheKeyShape(
    "admin", "pending-projects", TTL_ADMIN_STATS, paginated=True,
)


# ─── OTP ledger keys (not views; never touched by the planner) ───

def otp_entry_key(purpose: OtpPurpose, subject: str) -> str:
    return f"{KEY_VERSION}:otp:{purpose.value}:{subject.lower()}"


def otp_rate_limit_key(purpose: OtpPurpose, subject: str) -> str:
    return f"{KEY_VERSION}:otp-rate:{purpose.value}:{subject.lower()}"


def otp_attempts_key(purpose: OtpPurpose, subject: str) -> str:
    return f"{KEY_VERSION}:otp-attempts:{purpose.value}:{subject.lower()}"
