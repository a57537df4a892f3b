"""In-memory video repository.

Backs the service in test mode and in the test suite. Filtering, sorting
and pagination follow the same semantics a SQL backend would apply for a
``QuerySpec``. Outages and row-level security refusals can be simulated.
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple
from uuid import uuid4

import structlog

from app.models.query import QuerySpec, SortField, SortOrder
from app.providers.base import Row, VideoRepository
from app.providers.exceptions import (
    BackendForbiddenError,
    DuplicateVideoError,
    StorageUnavailableError,
)

logger = structlog.get_logger(__name__)


def _sort_key(field: SortField) -> Callable[[Row], Any]:
    if field == SortField.TITLE:
        return lambda row: (str(row["title"]).lower(), row["id"])
    if field == SortField.DURATION:
        return lambda row: (int(row["duration"]), row["id"])
    return lambda row: (_as_datetime(row.get("created_at")), row["id"])


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class InMemoryVideoRepository(VideoRepository):
    """Video rows kept in a dictionary keyed by id."""

    def __init__(
        self,
        rows: Optional[Iterable[Row]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the repository.

        Args:
            rows: Initial rows, each with an ``id``.
            clock: Time source for generated timestamps.
        """
        self._rows: Dict[str, Row] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.available = True
        self.forbidden_ids: Set[str] = set()

        for row in rows or []:
            self._rows[str(row["id"]).lower()] = dict(row)

    def __len__(self) -> int:
        return len(self._rows)

    async def fetch_video_row(self, video_id: str) -> Optional[Row]:
        self._check_available()
        key = video_id.lower()
        if key in self.forbidden_ids:
            raise BackendForbiddenError(f"Row-level security denied read of {key}")
        row = self._rows.get(key)
        return copy.deepcopy(row) if row is not None else None

    async def fetch_video_rows(self, spec: QuerySpec) -> Tuple[List[Row], int]:
        self._check_available()
        matching = [row for row in self._rows.values() if self._matches(row, spec)]
        matching.sort(key=_sort_key(spec.sort), reverse=spec.order == SortOrder.DESC)
        page = matching[spec.offset : spec.offset + spec.limit]
        return [copy.deepcopy(row) for row in page], len(matching)

    async def insert_video_row(self, values: Row) -> Row:
        self._check_available()
        async with self._lock:
            self._check_unique(values, exclude_id=None)
            now = self._clock()
            row = dict(values)
            row["id"] = str(uuid4())
            row["created_at"] = now
            row["updated_at"] = now
            self._rows[row["id"]] = row
            logger.debug("row_inserted", video_id=row["id"])
            return copy.deepcopy(row)

    async def update_video_row(self, video_id: str, values: Row) -> Optional[Row]:
        self._check_available()
        key = video_id.lower()
        async with self._lock:
            row = self._rows.get(key)
            if row is None:
                return None
            self._check_unique(values, exclude_id=key)
            row.update(values)
            row["updated_at"] = self._clock()
            return copy.deepcopy(row)

    async def delete_video_row(self, video_id: str) -> bool:
        self._check_available()
        async with self._lock:
            return self._rows.pop(video_id.lower(), None) is not None

    async def ping(self) -> bool:
        return self.available

    def _check_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("Video repository is unavailable")

    def _check_unique(self, values: Row, exclude_id: Optional[str]) -> None:
        # One row per primary asset
        video_url = values.get("video_url")
        if video_url is None:
            return
        for key, row in self._rows.items():
            if key != exclude_id and row.get("video_url") == video_url:
                raise DuplicateVideoError(f"A video already uses asset '{video_url}'")

    @staticmethod
    def _matches(row: Row, spec: QuerySpec) -> bool:
        if spec.category is not None and row.get("category") != spec.category.value:
            return False
        if spec.level is not None and row.get("level") != spec.level.value:
            return False
        if spec.is_premium is not None and bool(row.get("is_premium")) != spec.is_premium:
            return False
        if spec.status is not None and row.get("status") != spec.status.value:
            return False
        return True
