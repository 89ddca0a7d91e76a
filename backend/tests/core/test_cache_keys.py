"""Cache Keys — grammar, shape dimensions and the pagination grid."""

from uuid import UUID

import pytest

from gigboard.core import cache_keys as ck
from gigboard.core.domain_types import OtpPurpose, ProjectStatus

USER = UUID("11111111-1111-1111-1111-111111111111")


def test_unfiltered_key_layout():
    assert ck.CLIENT_DASHBOARD.key(USER) == f"v1:client:dashboard:{USER}"


def test_filtered_paginated_key_layout():
    key = ck.CLIENT_PROJECTS.key(
        USER, filter_value=ProjectStatus.OPEN, page=2, limit=20,
    )
    assert key == f"v1:client:projects:{USER}:status:OPEN:page:2:limit:20"


def test_missing_filter_means_all():
    key = ck.FREELANCER_APPLICATIONS.key(USER, page=1, limit=10)
    assert ":status:all:" in key


def test_shared_views_use_all_ident():
    assert ck.PUBLIC_STATS.key() == "v1:public:stats:all"


def test_paginated_shape_requires_page_and_limit():
    with pytest.raises(ValueError):
        ck.CLIENT_PROJECTS.key(USER, filter_value="all")


def test_unpaginated_shape_rejects_page():
    with pytest.raises(ValueError):
        ck.CLIENT_DASHBOARD.key(USER, page=1, limit=10)


def test_unfiltered_shape_rejects_filter():
    with pytest.raises(ValueError):
        ck.PUBLIC_AVAILABLE_PROJECTS.key(filter_value="OPEN", page=1, limit=10)


def test_default_grid_is_ten_pages_by_three_sizes():
    grid = ck.PaginationGrid()
    assert len(grid.cells()) == 30
    assert grid.contains(10, 50)
    assert not grid.contains(11, 10)
    assert not grid.contains(1, 25)
    assert not grid.contains(0, 10)


def test_otp_keys_are_lowercased_and_versioned():
    assert ck.otp_entry_key(OtpPurpose.EMAIL_VERIFICATION, "A@B.io") == (
        "v1:otp:email-verification:a@b.io"
    )
    assert ck.otp_rate_limit_key(OtpPurpose.PASSWORD_RESET, "CLIENT:a@b.io") == (
        "v1:otp-rate:password-reset:client:a@b.io"
    )
