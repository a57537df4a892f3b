"""Tests for the in-memory video repository."""

from datetime import datetime, timezone

import pytest

from app.models.query import QuerySpec, SortField, SortOrder
from app.models.video import VideoCategory, VideoStatus
from app.providers.exceptions import (
    BackendForbiddenError,
    DuplicateVideoError,
    StorageUnavailableError,
)
from app.providers.memory import InMemoryVideoRepository
from app.testing.fixtures import (
    FREE_PUBLISHED_ID,
    HANDSTAND_PROGRESSION,
    PREMIUM_PUBLISHED_ID,
    demo_catalog,
)

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository() -> InMemoryVideoRepository:
    return InMemoryVideoRepository(demo_catalog(), clock=lambda: FIXED_NOW)


def new_row(**overrides) -> dict:
    row = {
        "title": "Shoulder Opener",
        "category": "mobility",
        "level": "beginner",
        "duration": 600,
        "video_url": "videos-free/shoulder-opener.mp4",
        "thumbnail_url": "thumbnails/shoulder-opener.jpg",
        "is_premium": False,
        "status": "draft",
        "description": None,
    }
    row.update(overrides)
    return row


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_is_case_insensitive(self, repository: InMemoryVideoRepository) -> None:
        row = await repository.fetch_video_row(FREE_PUBLISHED_ID.upper())
        assert row is not None
        assert row["id"] == FREE_PUBLISHED_ID

    @pytest.mark.asyncio
    async def test_fetch_missing(self, repository: InMemoryVideoRepository) -> None:
        assert await repository.fetch_video_row("00000000-0000-4000-8000-000000000000") is None

    @pytest.mark.asyncio
    async def test_fetch_returns_copies(self, repository: InMemoryVideoRepository) -> None:
        row = await repository.fetch_video_row(FREE_PUBLISHED_ID)
        row["title"] = "Changed"

        again = await repository.fetch_video_row(FREE_PUBLISHED_ID)
        assert again["title"] != "Changed"

    @pytest.mark.asyncio
    async def test_forbidden_ids(self, repository: InMemoryVideoRepository) -> None:
        repository.forbidden_ids.add(PREMIUM_PUBLISHED_ID)

        with pytest.raises(BackendForbiddenError):
            await repository.fetch_video_row(PREMIUM_PUBLISHED_ID)

    @pytest.mark.asyncio
    async def test_unavailable(self, repository: InMemoryVideoRepository) -> None:
        repository.available = False

        with pytest.raises(StorageUnavailableError):
            await repository.fetch_video_row(FREE_PUBLISHED_ID)
        with pytest.raises(StorageUnavailableError):
            await repository.fetch_video_rows(QuerySpec())
        assert await repository.ping() is False


class TestFetchRows:
    @pytest.mark.asyncio
    async def test_default_spec_lists_published_newest_first(
        self, repository: InMemoryVideoRepository
    ) -> None:
        rows, total = await repository.fetch_video_rows(QuerySpec())

        assert total == 2
        assert [row["id"] for row in rows] == [PREMIUM_PUBLISHED_ID, FREE_PUBLISHED_ID]

    @pytest.mark.asyncio
    async def test_no_status_filter_lists_all(self, repository: InMemoryVideoRepository) -> None:
        rows, total = await repository.fetch_video_rows(QuerySpec(status=None))
        assert total == len(repository) == 5

    @pytest.mark.asyncio
    async def test_filters_combine(self, repository: InMemoryVideoRepository) -> None:
        spec = QuerySpec(
            status=VideoStatus.ARCHIVED, category=VideoCategory.CALISTHENICS, is_premium=True
        )
        rows, total = await repository.fetch_video_rows(spec)

        assert total == 1
        assert rows[0]["id"] == HANDSTAND_PROGRESSION["id"]

    @pytest.mark.asyncio
    async def test_sort_by_title_ascending(self, repository: InMemoryVideoRepository) -> None:
        spec = QuerySpec(status=None, sort=SortField.TITLE, order=SortOrder.ASC)
        rows, _ = await repository.fetch_video_rows(spec)

        titles = [row["title"] for row in rows]
        assert titles == sorted(titles, key=str.lower)

    @pytest.mark.asyncio
    async def test_sort_by_duration_descending(self, repository: InMemoryVideoRepository) -> None:
        spec = QuerySpec(status=None, sort=SortField.DURATION, order=SortOrder.DESC)
        rows, _ = await repository.fetch_video_rows(spec)

        durations = [row["duration"] for row in rows]
        assert durations == sorted(durations, reverse=True)

    @pytest.mark.asyncio
    async def test_pagination_keeps_total(self, repository: InMemoryVideoRepository) -> None:
        spec = QuerySpec(status=None, limit=2, offset=4)
        rows, total = await repository.fetch_video_rows(spec)

        assert len(rows) == 1
        assert total == 5

    @pytest.mark.asyncio
    async def test_offset_past_end(self, repository: InMemoryVideoRepository) -> None:
        rows, total = await repository.fetch_video_rows(QuerySpec(offset=50))
        assert rows == []
        assert total == 2


class TestWrites:
    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamps(
        self, repository: InMemoryVideoRepository
    ) -> None:
        row = await repository.insert_video_row(new_row())

        assert row["id"]
        assert row["created_at"] == FIXED_NOW
        assert row["updated_at"] == FIXED_NOW
        assert len(repository) == 6

    @pytest.mark.asyncio
    async def test_insert_duplicate_asset(self, repository: InMemoryVideoRepository) -> None:
        with pytest.raises(DuplicateVideoError):
            await repository.insert_video_row(
                new_row(video_url="videos-free/morning-flow.mp4")
            )

    @pytest.mark.asyncio
    async def test_update_merges_values(self, repository: InMemoryVideoRepository) -> None:
        row = await repository.update_video_row(FREE_PUBLISHED_ID, {"title": "Renamed"})

        assert row["title"] == "Renamed"
        assert row["category"] == "yoga"
        assert row["updated_at"] == FIXED_NOW

    @pytest.mark.asyncio
    async def test_update_own_asset_is_not_duplicate(
        self, repository: InMemoryVideoRepository
    ) -> None:
        row = await repository.update_video_row(
            FREE_PUBLISHED_ID, {"video_url": "videos-free/morning-flow.mp4"}
        )
        assert row is not None

    @pytest.mark.asyncio
    async def test_update_missing(self, repository: InMemoryVideoRepository) -> None:
        assert (
            await repository.update_video_row("00000000-0000-4000-8000-000000000000", {})
            is None
        )

    @pytest.mark.asyncio
    async def test_delete(self, repository: InMemoryVideoRepository) -> None:
        assert await repository.delete_video_row(FREE_PUBLISHED_ID) is True
        assert await repository.delete_video_row(FREE_PUBLISHED_ID) is False
        assert await repository.fetch_video_row(FREE_PUBLISHED_ID) is None
