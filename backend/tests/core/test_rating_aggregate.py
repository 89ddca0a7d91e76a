"""Rating Aggregate — mean rounding, value range and direction."""

import pytest

from gigboard.core.domain_types import RatingDirection, UserRole
from gigboard.core.errors import InputValidationError, PermissionDeniedError
from gigboard.core.rating_aggregate import (
    direction_for_rater, mean_rating, validate_rating_value,
)


def test_mean_of_no_ratings_is_zero():
    assert mean_rating([]) == 0.0


def test_mean_rounds_to_two_decimals():
    assert mean_rating([5, 4, 4]) == 4.33
    assert mean_rating([5, 5, 4]) == 4.67
    assert mean_rating([3]) == 3.0


def test_mean_rounds_half_up():
    # 1.125 -> 1.13 (binary-float round() would give 1.12)
    assert mean_rating([1] * 7 + [2]) == 1.13


@pytest.mark.parametrize("value", [0, 6, -1])
def test_out_of_range_values_rejected(value):
    with pytest.raises(InputValidationError):
        validate_rating_value(value)


@pytest.mark.parametrize("value", [None, True, 4.5, "5"])
def test_non_integer_values_rejected(value):
    with pytest.raises(InputValidationError):
        validate_rating_value(value)


def test_direction_follows_rater_role():
    assert direction_for_rater(UserRole.CLIENT) == RatingDirection.CLIENT_TO_FREELANCER
    assert direction_for_rater("FREELANCER") == RatingDirection.FREELANCER_TO_CLIENT
    with pytest.raises(PermissionDeniedError):
        direction_for_rater(UserRole.ADMIN)
