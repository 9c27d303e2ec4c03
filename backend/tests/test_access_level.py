import pytest

from campaign_admin.admin.access_level import compute_access_level
from campaign_admin.admin.permissions import (
    ALL_PERMISSIONS,
    AdminRole,
    default_permissions_for,
)


def test_regular_admin_without_permissions_is_base_level() -> None:
    assert compute_access_level(AdminRole.REGULAR_ADMIN, []) == 20


def test_regular_admin_climbs_to_full_level_with_whole_catalog() -> None:
    levels = [
        compute_access_level(AdminRole.REGULAR_ADMIN, ALL_PERMISSIONS[:count])
        for count in range(len(ALL_PERMISSIONS) + 1)
    ]
    assert levels[0] == 20
    assert levels[-1] == 100
    assert levels == sorted(levels)


@pytest.mark.parametrize(
    "count, expected",
    [(1, 25), (2, 29), (5, 44), (16, 95)],
)
def test_regular_admin_level_rounds_half_up(count, expected) -> None:
    assert compute_access_level(AdminRole.REGULAR_ADMIN, ALL_PERMISSIONS[:count]) == expected


def test_default_regular_admin_grant_level() -> None:
    defaults = default_permissions_for(AdminRole.REGULAR_ADMIN)
    assert compute_access_level(AdminRole.REGULAR_ADMIN, defaults) == 44


def test_unknown_and_duplicate_tokens_do_not_count() -> None:
    noisy = ["view_donors", "view_donors", "not_a_permission"]
    assert compute_access_level(AdminRole.REGULAR_ADMIN, noisy) == 25


@pytest.mark.parametrize(
    "permissions",
    [[], ["view_donors"], list(ALL_PERMISSIONS), ["garbage"]],
)
def test_super_admin_is_always_100(permissions) -> None:
    assert compute_access_level(AdminRole.SUPER_ADMIN, permissions) == 100


def test_same_inputs_give_same_level() -> None:
    permissions = ["edit_admin", "view_admins", "manage_categories"]
    first = compute_access_level(AdminRole.REGULAR_ADMIN, permissions)
    second = compute_access_level(AdminRole.REGULAR_ADMIN, list(permissions))
    assert first == second
    assert 0 <= first <= 100
