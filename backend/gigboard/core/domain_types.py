"""Domain Types — identity NewTypes and the closed enums of the marketplace.

Invariants:
    - Every status column maps to exactly one Enum below — no raw string matching
    - Enum values equal the persisted column values
    - UserRole is fixed at signup and never changes

Design Decisions:
    - str Enums: serialize to JSON and cache payloads without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
ClientId = NewType("ClientId", UUID)
FreelancerId = NewType("FreelancerId", UUID)
ProjectId = NewType("ProjectId", UUID)
ApplicationId = NewType("ApplicationId", UUID)
RatingId = NewType("RatingId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class UserRole(str, Enum):
    CLIENT = "CLIENT"
    FREELANCER = "FREELANCER"
    ADMIN = "ADMIN"


class ProjectStatus(str, Enum):
    """Project lifecycle states — see core/project_lifecycle.py for edges."""
    ADMIN_VERIFICATION = "ADMIN_VERIFICATION"
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    PENDING_COMPLETION = "PENDING_COMPLETION"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RatingDirection(str, Enum):
    """Who rated whom — the aggregate for a user only reads one direction."""
    CLIENT_TO_FREELANCER = "CLIENT_TO_FREELANCER"
    FREELANCER_TO_CLIENT = "FREELANCER_TO_CLIENT"


class MeetingStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    RESCHEDULED = "RESCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MeetingRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AdminPermission(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    MODERATOR = "MODERATOR"
    SUPPORT = "SUPPORT"


class OtpPurpose(str, Enum):
    PASSWORD_RESET = "password-reset"
    EMAIL_VERIFICATION = "email-verification"


class ReviewAction(str, Enum):
    """Admin verdict on a project awaiting verification."""
    APPROVE = "approve"
    REJECT = "reject"


class RatingListKind(str, Enum):
    """Filter values of a user's rating list views."""
    ALL = "all"
    GIVEN = "given"
    RECEIVED = "received"


# Filter value meaning "no status filter" in list views and cache keys.
ALL_FILTER = "all"
