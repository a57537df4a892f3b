"""Tests for viewer roles and role requirements"""

from typing import Optional

import pytest

from app.models.role import ViewerRole, parse_role, role_rank, role_satisfies


class TestRoleSatisfies:
    """Rule-based role requirement checks"""

    @pytest.mark.parametrize(
        "actual", [None, ViewerRole.FREE, ViewerRole.PREMIUM, ViewerRole.ADMIN]
    )
    def test_no_requirement_is_open(self, actual: Optional[ViewerRole]) -> None:
        assert role_satisfies(None, actual) is True

    @pytest.mark.parametrize(
        "required", [ViewerRole.FREE, ViewerRole.PREMIUM, ViewerRole.ADMIN]
    )
    def test_anonymous_never_satisfies(self, required: ViewerRole) -> None:
        assert role_satisfies(required, None) is False

    @pytest.mark.parametrize(
        "required,actual,expected",
        [
            (ViewerRole.PREMIUM, ViewerRole.FREE, False),
            (ViewerRole.PREMIUM, ViewerRole.PREMIUM, True),
            (ViewerRole.PREMIUM, ViewerRole.ADMIN, True),
            (ViewerRole.ADMIN, ViewerRole.PREMIUM, False),
            (ViewerRole.FREE, ViewerRole.FREE, True),
        ],
    )
    def test_requirements(
        self, required: ViewerRole, actual: ViewerRole, expected: bool
    ) -> None:
        assert role_satisfies(required, actual) is expected


class TestRoleRank:
    def test_display_order(self) -> None:
        roles = (None, ViewerRole.FREE, ViewerRole.PREMIUM, ViewerRole.ADMIN)
        ranks = [role_rank(role) for role in roles]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4


class TestParseRole:
    """Role strings from the identity layer"""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_is_anonymous(self, value: Optional[str]) -> None:
        assert parse_role(value) is None

    def test_known_roles(self) -> None:
        assert parse_role("premium") == ViewerRole.PREMIUM
        assert parse_role(" Admin ") == ViewerRole.ADMIN

    def test_unknown_role_is_free(self) -> None:
        """An authenticated user with an unrecognized role gets the free tier"""
        assert parse_role("gold") == ViewerRole.FREE
