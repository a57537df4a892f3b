"""Validated catalog query specification."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.models.video import VideoCategory, VideoLevel, VideoStatus

DEFAULT_LIMIT = 50
MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_OFFSET = 0


class SortField(str, Enum):
    CREATED_AT = "created_at"
    TITLE = "title"
    DURATION = "duration"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class QuerySpec:
    """A bounded, sorted, paginated catalog query.

    Instances are only produced by the query builder, so every field is
    already inside its allowed set or range.
    """

    category: Optional[VideoCategory] = None
    level: Optional[VideoLevel] = None
    is_premium: Optional[bool] = None
    status: Optional[VideoStatus] = VideoStatus.PUBLISHED
    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET
    sort: SortField = SortField.CREATED_AT
    order: SortOrder = SortOrder.DESC
