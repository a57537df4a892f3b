"""Access verdict and playable URL value objects."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from app.models.role import ViewerRole


class DenialReason(str, Enum):
    """Why a viewer was refused playback."""

    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"
    NOT_PUBLISHED = "NOT_PUBLISHED"
    ARCHIVED = "ARCHIVED"


@dataclass(frozen=True)
class AccessVerdict:
    """Result of an access check. Recomputed on every check, never stored."""

    has_access: bool
    reason: Optional[DenialReason] = None
    required_role: Optional[ViewerRole] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"has_access": self.has_access}
        if self.reason is not None:
            result["reason"] = self.reason.value
        if self.required_role is not None:
            result["required_role"] = self.required_role.value
        return result


GRANTED = AccessVerdict(has_access=True)


@dataclass(frozen=True)
class PlayableUrl:
    """A URL the player can load.

    Free-tier URLs carry no expiry. Signed premium URLs expire at
    ``expires_at`` and must be regenerated afterwards.
    """

    url: str
    expires_at: Optional[datetime] = None

    @property
    def is_signed(self) -> bool:
        return self.expires_at is not None

    def is_expired(self, now: datetime) -> bool:
        """Check whether the URL is past its expiry at ``now``."""
        return self.expires_at is not None and now >= self.expires_at
