"""Playback URL resolution.

Turns a video whose access has already been granted into a playable URL:

- free tier: a permanent public URL under the free bucket. Idempotent and
  cached, so repeated calls return byte-identical URLs.
- premium tier: a signed URL under the premium bucket with a fixed
  lifetime. Every call issues a new token; an expired URL is replaced by
  calling again, never refreshed in place.

Resolution trusts the verdict it is handed and never re-derives it.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Tuple

import structlog
from cachetools import LRUCache

from app.core.metrics import MetricsCollector
from app.core.validation import (
    FREE_VIDEO_BUCKET,
    PREMIUM_VIDEO_BUCKET,
    storage_reference_validator,
)
from app.models.access import AccessVerdict, PlayableUrl
from app.models.role import ViewerRole
from app.models.video import Video
from app.providers.base import StorageGateway
from app.providers.exceptions import InvalidStorageReferenceError, StorageUnavailableError
from app.services.access import check_access

logger = structlog.get_logger(__name__)

SIGNED_URL_TTL_SECONDS = 3600


class ResolutionErrorType(str, Enum):
    """Failure classes of URL resolution."""

    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_URL = "INVALID_URL"


class AccessDeniedError(Exception):
    """Raised when resolution is attempted with a denying verdict."""

    def __init__(self, verdict: AccessVerdict):
        self.verdict = verdict
        reason = verdict.reason.value if verdict.reason else "UNKNOWN"
        super().__init__(f"Access denied: {reason}")


class UrlResolutionError(Exception):
    """Raised when a playable URL cannot be produced."""

    def __init__(self, error_type: ResolutionErrorType, message: str, video_id: str):
        self.error_type = error_type
        self.video_id = video_id
        super().__init__(message)


class UrlResolutionService:
    """Produces playable URLs for granted videos."""

    def __init__(
        self,
        gateway: StorageGateway,
        signed_url_ttl: int = SIGNED_URL_TTL_SECONDS,
        free_bucket: str = FREE_VIDEO_BUCKET,
        premium_bucket: str = PREMIUM_VIDEO_BUCKET,
        cache_size: int = 1024,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            gateway: Storage gateway issuing public and signed URLs.
            signed_url_ttl: Lifetime of premium URLs in seconds.
            free_bucket: Bucket holding free-tier assets.
            premium_bucket: Bucket holding premium assets.
            cache_size: Maximum number of cached public URLs.
            clock: Time source, injectable for tests.
        """
        self._gateway = gateway
        self.signed_url_ttl = signed_url_ttl
        self._buckets = {False: free_bucket, True: premium_bucket}
        self._public_cache: LRUCache = LRUCache(maxsize=cache_size)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def resolve_playable_url(self, video: Video, verdict: AccessVerdict) -> PlayableUrl:
        """
        Resolve the playable URL of a video.

        Args:
            video: The video to play
            verdict: Result of a prior access check for the viewer

        Returns:
            PlayableUrl, with ``expires_at`` set for premium assets

        Raises:
            AccessDeniedError: If the verdict denies access
            UrlResolutionError: If the reference is malformed or storage is unreachable
        """
        if not verdict.has_access:
            logger.warning(
                "url_resolution_refused",
                video_id=video.id,
                reason=verdict.reason.value if verdict.reason else None,
            )
            raise AccessDeniedError(verdict)

        bucket, path = self._split_reference(video)

        if not video.is_premium:
            return self._public_url(video, bucket, path)

        return await self._signed_url(video, bucket, path)

    async def resolve_for_viewer(
        self, video: Video, viewer_role: Optional[ViewerRole]
    ) -> PlayableUrl:
        """Check access for ``viewer_role`` and resolve in one step."""
        verdict = check_access(video, viewer_role)
        MetricsCollector.record_access_decision(
            verdict.has_access, verdict.reason.value if verdict.reason else "none"
        )
        return await self.resolve_playable_url(video, verdict)

    def _split_reference(self, video: Video) -> Tuple[str, str]:
        result = storage_reference_validator.resolve_video_reference(
            video.video_url, video.is_premium
        )
        if not result.is_valid:
            reason = result.error_message or "Invalid storage reference"
            raise self._invalid_reference(video, reason)

        # The reference prefix already agrees with the tier; map it to the configured bucket
        return self._buckets[video.is_premium], result.value.path

    def _invalid_reference(self, video: Video, reason: str) -> UrlResolutionError:
        # Malformed references are data bugs, never expected in steady state
        logger.error(
            "invalid_storage_reference",
            video_id=video.id,
            reference=video.video_url,
            is_premium=video.is_premium,
            error=reason,
        )
        MetricsCollector.record_resolution_failure(ResolutionErrorType.INVALID_URL.value)
        return UrlResolutionError(ResolutionErrorType.INVALID_URL, reason, video.id)

    def _public_url(self, video: Video, bucket: str, path: str) -> PlayableUrl:
        key = (bucket, path)
        url = self._public_cache.get(key)
        if url is None:
            try:
                url = self._gateway.public_url(bucket, path)
            except InvalidStorageReferenceError as e:
                raise self._invalid_reference(video, e.reason) from e
            self._public_cache[key] = url
        MetricsCollector.record_playback_url("free")
        return PlayableUrl(url=url)

    async def _signed_url(self, video: Video, bucket: str, path: str) -> PlayableUrl:
        issued_at = self._clock()
        try:
            url = await self._gateway.signed_url(bucket, path, self.signed_url_ttl)
        except InvalidStorageReferenceError as e:
            raise self._invalid_reference(video, e.reason) from e
        except StorageUnavailableError as e:
            logger.warning("signed_url_failed", video_id=video.id, error=str(e))
            MetricsCollector.record_resolution_failure(ResolutionErrorType.NETWORK_ERROR.value)
            raise UrlResolutionError(
                ResolutionErrorType.NETWORK_ERROR, "Storage backend unavailable", video.id
            ) from e

        MetricsCollector.record_playback_url("premium")
        logger.info("signed_url_issued", video_id=video.id, ttl=self.signed_url_ttl)
        return PlayableUrl(url=url, expires_at=issued_at + timedelta(seconds=self.signed_url_ttl))
