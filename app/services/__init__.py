"""Service layer implementations."""

from app.services.access import check_access
from app.services.identity import IdentityProvider, StaticIdentityProvider
from app.services.messages import PlayerErrorType, denial_message, error_message
from app.services.player_session import (
    PlaybackFailed,
    PlayerSession,
    PlayerSnapshot,
    PlayerState,
    ReadyPhase,
    Regenerate,
    Retry,
    RoleChanged,
    Start,
)
from app.services.query_builder import QueryValidationError, build_query
from app.services.url_resolver import (
    AccessDeniedError,
    ResolutionErrorType,
    UrlResolutionError,
    UrlResolutionService,
)
from app.services.video_lookup import (
    InvalidInputError,
    VideoLookupService,
    VideoNotFoundError,
    VideoValidationError,
)

__all__ = [
    # Access policy
    "check_access",
    # Identity
    "IdentityProvider",
    "StaticIdentityProvider",
    # Player messages
    "PlayerErrorType",
    "denial_message",
    "error_message",
    # Player session
    "PlaybackFailed",
    "PlayerSession",
    "PlayerSnapshot",
    "PlayerState",
    "ReadyPhase",
    "Regenerate",
    "Retry",
    "RoleChanged",
    "Start",
    # Catalog queries
    "QueryValidationError",
    "build_query",
    # URL resolution
    "AccessDeniedError",
    "ResolutionErrorType",
    "UrlResolutionError",
    "UrlResolutionService",
    # Video lookup
    "InvalidInputError",
    "VideoLookupService",
    "VideoNotFoundError",
    "VideoValidationError",
]
