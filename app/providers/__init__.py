"""Catalog repository and object storage backends."""

from app.providers.base import StorageGateway, VideoRepository
from app.providers.exceptions import (
    BackendForbiddenError,
    DatabaseError,
    DuplicateVideoError,
    InvalidStorageReferenceError,
    MalformedRowError,
    ProviderError,
    StorageUnavailableError,
)
from app.providers.memory import InMemoryVideoRepository
from app.providers.signing import HmacStorageGateway

__all__ = [
    "VideoRepository",
    "StorageGateway",
    "InMemoryVideoRepository",
    "HmacStorageGateway",
    "ProviderError",
    "StorageUnavailableError",
    "BackendForbiddenError",
    "InvalidStorageReferenceError",
    "MalformedRowError",
    "DuplicateVideoError",
    "DatabaseError",
]
