"""Rating Aggregate — mean computation and rating-input rules.

Invariants:
    - A user's stored rating is the arithmetic mean of every rating addressed to them in
      one direction, rounded to 2 decimals; 0.0 when there are none
    - Rating values are integers 1..5
    - The direction is derived from the rater's role, never supplied by the caller
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol
from uuid import UUID

from gigboard.core.domain_types import RatingDirection, UserRole
from gigboard.core.errors import InputValidationError, PermissionDeniedError

MIN_RATING = 1
MAX_RATING = 5


def mean_rating(values: Iterable[int]) -> float:
    """Mean rounded half-up to 2 decimals (1.005 -> 1.01, not binary-float 1.0)."""
    values = list(values)
    if not values:
        return 0.0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def validate_rating_value(rating: int | None) -> int:
    if rating is None or isinstance(rating, bool) or not isinstance(rating, int):
        raise InputValidationError("Rating must be a whole number of stars", "rating")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InputValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING} stars", "rating",
        )
    return rating


def direction_for_rater(role: UserRole | str) -> RatingDirection:
    role = UserRole(role)
    if role == UserRole.CLIENT:
        return RatingDirection.CLIENT_TO_FREELANCER
    if role == UserRole.FREELANCER:
        return RatingDirection.FREELANCER_TO_CLIENT
    raise PermissionDeniedError("Only project participants can rate")


class RatingAggregator(Protocol):
    """Recomputes and stores the aggregate for one rated user.

    Called inside the transaction that wrote the rating row; implementations must
    read the row set after that write and hold the target profile lock.
    """
    async def refresh(
        self, db, rated_user_id: UUID, direction: RatingDirection,
    ) -> float: ...
