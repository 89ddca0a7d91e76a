"""Error Hierarchy — typed, categorized exceptions for every marketplace failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Categories map one-to-one onto the taxonomy surfaced to callers:
      NOT_FOUND, CONFLICT, VALIDATION, UNAUTHORIZED, RATE_LIMITED, INTERNAL
    - Guard errors are raised before any write; infrastructure errors are 500-level
    - to_response() never includes internal details (SQL, stack traces)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entity: str | None = None
    entity_id: str | None = None
    current_status: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_seconds: int | None = None


class MarketplaceError(Exception):
    """Base exception for all Gigboard errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "entity": self.context.entity,
                    "entity_id": self.context.entity_id,
                    "current_status": self.context.current_status,
                    "retry_after_seconds": self.context.retry_after_seconds,
                },
            }
        }


# ─── NOT_FOUND ──────────────────────────────────────────────────

class ResourceNotFoundError(MarketplaceError):
    """Entity does not exist, or the caller does not own it."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity = ctx.entity or resource_type
        ctx.entity_id = ctx.entity_id or resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


# ─── CONFLICT ───────────────────────────────────────────────────

class TransitionConflictError(MarketplaceError):
    """State-machine guard failed: the entity is not in a status that allows the action."""
    def __init__(
        self,
        entity: str,
        current_status: str,
        action: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity = entity
        ctx.current_status = current_status
        super().__init__(
            f"Cannot {action}: {entity} is currently {current_status}",
            "INVALID_TRANSITION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.action = action


class BusinessRuleError(MarketplaceError):
    """A precondition other than the current status is not met."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class DuplicateApplicationError(MarketplaceError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "You have already applied for this project",
            "DUPLICATE_APPLICATION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class DuplicateRatingError(MarketplaceError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "You have already rated this user for this project",
            "DUPLICATE_RATING", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class AlreadyRegisteredError(MarketplaceError):
    def __init__(self, role: str, context: ErrorContext | None = None):
        super().__init__(
            f"Email is already registered as {role.lower()}",
            "EMAIL_ALREADY_REGISTERED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


# ─── OTP (400-level) ────────────────────────────────────────────

class OtpExpiredError(MarketplaceError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "OTP expired or invalid", "OTP_EXPIRED", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class OtpInvalidError(MarketplaceError):
    def __init__(self, attempts_left: int, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid OTP ({attempts_left} attempt(s) left)", "OTP_INVALID",
            ErrorCategory.VALIDATION, ErrorSeverity.WARNING, context, 400,
        )
        self.attempts_left = attempts_left


class OtpAttemptsExhaustedError(MarketplaceError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Too many failed attempts. Please request a new OTP.",
            "OTP_ATTEMPTS_EXHAUSTED", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class OtpRateLimitedError(MarketplaceError):
    def __init__(self, retry_after_seconds: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.retry_after_seconds = retry_after_seconds
        super().__init__(
            "OTP already sent. Please wait before requesting again.",
            "OTP_RATE_LIMITED", ErrorCategory.RATE_LIMITED,
            ErrorSeverity.WARNING, ctx, 429,
        )


# ─── VALIDATION ─────────────────────────────────────────────────

class InputValidationError(MarketplaceError):
    """Malformed input that passed the HTTP schema (or arrived without one)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


# ─── UNAUTHORIZED ───────────────────────────────────────────────

class AccountInactiveError(MarketplaceError):
    """The acting (or counterpart) account is suspended."""
    def __init__(self, message: str = "Account suspended. Contact support.",
                 context: ErrorContext | None = None):
        super().__init__(
            message, "ACCOUNT_INACTIVE", ErrorCategory.UNAUTHORIZED,
            ErrorSeverity.WARNING, context, 403,
        )


class PermissionDeniedError(MarketplaceError):
    def __init__(self, message: str = "Insufficient permissions",
                 context: ErrorContext | None = None):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.UNAUTHORIZED,
            ErrorSeverity.WARNING, context, 403,
        )


class InvalidCredentialsError(MarketplaceError):
    """Missing, malformed or expired credential."""
    def __init__(self, message: str = "Invalid or expired token",
                 context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_CREDENTIALS", ErrorCategory.UNAUTHORIZED,
            ErrorSeverity.WARNING, context, 401,
        )


# ─── INTERNAL ───────────────────────────────────────────────────

class DatabaseError(MarketplaceError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
