"""Viewer role model.

Roles are resolved by the identity layer and passed into the core as values.
An anonymous viewer is represented by ``None`` rather than a role member.

Access decisions are rule based: ``role_satisfies`` answers "does this role
meet that requirement". ``role_rank`` exists only for display ordering and
must not be used to decide access.
"""

from enum import Enum
from typing import Dict, Optional


class ViewerRole(str, Enum):
    """Authenticated viewer roles."""

    FREE = "free"
    PREMIUM = "premium"
    ADMIN = "admin"


# Roles that satisfy each requirement. ``None`` (no requirement) is open to all.
_SATISFIED_BY: Dict[ViewerRole, frozenset] = {
    ViewerRole.FREE: frozenset({ViewerRole.FREE, ViewerRole.PREMIUM, ViewerRole.ADMIN}),
    ViewerRole.PREMIUM: frozenset({ViewerRole.PREMIUM, ViewerRole.ADMIN}),
    ViewerRole.ADMIN: frozenset({ViewerRole.ADMIN}),
}

_DISPLAY_RANK: Dict[Optional[ViewerRole], int] = {
    None: 0,
    ViewerRole.FREE: 1,
    ViewerRole.PREMIUM: 2,
    ViewerRole.ADMIN: 3,
}


def role_satisfies(required: Optional[ViewerRole], actual: Optional[ViewerRole]) -> bool:
    """Check whether ``actual`` meets the ``required`` role.

    Args:
        required: Role demanded by the resource, or None for no requirement.
        actual: Viewer role, or None for an anonymous viewer.

    Returns:
        True if the requirement is met.
    """
    if required is None:
        return True
    if actual is None:
        return False
    return actual in _SATISFIED_BY[required]


def role_rank(role: Optional[ViewerRole]) -> int:
    """Display ordering: anonymous < free < premium < admin."""
    return _DISPLAY_RANK[role]


def parse_role(value: Optional[str]) -> Optional[ViewerRole]:
    """Parse a role string coming from the identity layer.

    Empty values mean anonymous. An authenticated user carrying an unknown
    role string is treated as ``free``.

    Args:
        value: Raw role string from token claims or user metadata.

    Returns:
        Parsed ViewerRole, or None for anonymous.
    """
    if value is None:
        return None
    normalized = value.strip().lower()
    if not normalized:
        return None
    try:
        return ViewerRole(normalized)
    except ValueError:
        return ViewerRole.FREE
