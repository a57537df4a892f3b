"""Abstract contracts for the system of record and object storage.

These are the only I/O boundaries the core talks to. Implementations live
next to this module (in-memory repository, HMAC-signing storage gateway)
and can be swapped for a hosted backend at startup.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from app.models.query import QuerySpec

Row = Dict[str, Any]


class VideoRepository(ABC):
    """Access to stored video rows."""

    @abstractmethod
    async def fetch_video_row(self, video_id: str) -> Optional[Row]:
        """
        Fetch a single video row.

        Args:
            video_id: Video UUID

        Returns:
            The row, or None when no row is visible

        Raises:
            StorageUnavailableError: If the store cannot be reached
            BackendForbiddenError: If row-level security refused the read
        """
        pass

    @abstractmethod
    async def fetch_video_rows(self, spec: QuerySpec) -> Tuple[List[Row], int]:
        """
        Fetch a filtered, sorted page of rows.

        Args:
            spec: Validated query specification

        Returns:
            Tuple of (rows in the page, total matching rows)

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def insert_video_row(self, values: Row) -> Row:
        """
        Insert a new row and return it with generated columns.

        Raises:
            DuplicateVideoError: If a uniqueness constraint is violated
        """
        pass

    @abstractmethod
    async def update_video_row(self, video_id: str, values: Row) -> Optional[Row]:
        """Update the given columns of a row. Returns None if the row is absent."""
        pass

    @abstractmethod
    async def delete_video_row(self, video_id: str) -> bool:
        """Delete a row. Returns True if a row was removed."""
        pass

    async def ping(self) -> bool:
        """Lightweight connectivity check used by health probes."""
        return True


class StorageGateway(ABC):
    """Object storage URL issuance."""

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        """
        Build a permanent public URL.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket (no bucket prefix)

        Returns:
            Absolute URL

        Raises:
            InvalidStorageReferenceError: If the object path is malformed
        """
        pass

    @abstractmethod
    async def signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """
        Issue a new time-limited signed URL. Every call issues a new token.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket (no bucket prefix)
            ttl_seconds: Lifetime of the URL from issuance

        Returns:
            Absolute signed URL

        Raises:
            StorageUnavailableError: If the storage backend cannot be reached
            InvalidStorageReferenceError: If the object path is malformed
        """
        pass

    async def ping(self) -> bool:
        """Lightweight connectivity check used by health probes."""
        return True
