"""Player session controller.

A framework-independent state machine driving one viewer's playback of one
video::

    idle --Start--> loading --granted--> ready(url_loading) --> ready(url_loaded)
                       |                        |                     |
                       +--denied--> denied      +--failure--> error   +--Regenerate--> url_loading
                       +--failure-> error <-----------------------------PlaybackFailed
    error --Retry--> loading

Every Start, Retry and role change bumps a generation counter and cancels
the in-flight task, so only the latest request can move the machine.
Regeneration is de-duplicated: a Regenerate while a resolution is pending
is ignored.

The session performs no I/O itself; it awaits the injected lookup and
resolution services. ``dispatch`` must be called from a running event loop.
"""

import asyncio
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Union

import structlog

from app.models.access import AccessVerdict, PlayableUrl
from app.models.role import ViewerRole
from app.models.video import Video
from app.providers.exceptions import InvalidStorageReferenceError, StorageUnavailableError
from app.services.access import check_access
from app.services.identity import IdentityProvider
from app.services.messages import (
    DEFAULT_LOCALE,
    PlayerErrorType,
    denial_message,
    error_message,
)
from app.services.url_resolver import (
    AccessDeniedError,
    UrlResolutionError,
    UrlResolutionService,
)
from app.services.video_lookup import InvalidInputError, VideoLookupService

logger = structlog.get_logger(__name__)

DEFAULT_LOOKUP_TIMEOUT = 10.0  # seconds


class PlayerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    DENIED = "denied"
    ERROR = "error"
    READY = "ready"


class ReadyPhase(str, Enum):
    """Sub-state of READY."""

    URL_LOADING = "url_loading"
    URL_LOADED = "url_loaded"


@dataclass(frozen=True)
class PlayerError:
    type: PlayerErrorType
    message: str
    details: Optional[str] = None


@dataclass(frozen=True)
class PlayerSnapshot:
    """Immutable view of the session at one point in time."""

    state: PlayerState = PlayerState.IDLE
    phase: Optional[ReadyPhase] = None
    video_id: Optional[str] = None
    role: Optional[ViewerRole] = None
    video: Optional[Video] = None
    verdict: Optional[AccessVerdict] = None
    playable_url: Optional[PlayableUrl] = None
    error: Optional[PlayerError] = None
    denial_message: Optional[str] = None


# Events


@dataclass(frozen=True)
class Start:
    """Begin playback of ``video_id``.

    When the session has an identity provider the role is taken from it and
    ``role`` is ignored.
    """

    video_id: str
    role: Optional[ViewerRole] = None


@dataclass(frozen=True)
class Retry:
    pass


@dataclass(frozen=True)
class Regenerate:
    """Request a fresh playable URL, e.g. after a signed URL expired."""

    pass


@dataclass(frozen=True)
class PlaybackFailed:
    """The media element could not play the loaded URL."""

    details: Optional[str] = None


@dataclass(frozen=True)
class RoleChanged:
    role: Optional[ViewerRole]


PlayerEvent = Union[Start, Retry, Regenerate, PlaybackFailed, RoleChanged]
SnapshotListener = Callable[[PlayerSnapshot], None]


class PlayerSession:
    """Playback state machine for one viewer and one video."""

    def __init__(
        self,
        lookup: VideoLookupService,
        resolver: UrlResolutionService,
        identity: Optional[IdentityProvider] = None,
        lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
        locale: str = DEFAULT_LOCALE,
    ) -> None:
        """Initialize the session.

        Args:
            lookup: Service fetching video metadata.
            resolver: Service producing playable URLs.
            identity: Optional role source; role changes restart the pipeline.
            lookup_timeout: Seconds before a lookup fails with TIMEOUT.
            locale: Message locale ("en" or "pl").
        """
        self._lookup = lookup
        self._resolver = resolver
        self._identity = identity
        self.lookup_timeout = lookup_timeout
        self.locale = locale

        self._snapshot = PlayerSnapshot()
        self._listeners: List[SnapshotListener] = []
        self._generation = 0
        self._pipeline: Optional[asyncio.Task] = None
        self._resolution: Optional[asyncio.Task] = None
        self._unsubscribe_identity: Optional[Callable[[], None]] = None

        if identity is not None:
            self._unsubscribe_identity = identity.on_role_change(
                lambda role: self.dispatch(RoleChanged(role))
            )

    def snapshot(self) -> PlayerSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a listener called with every new snapshot.

        Returns:
            A function removing the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: PlayerEvent) -> None:
        """
        Feed an event to the machine.

        Events that make no sense in the current state are ignored.

        Args:
            event: One of Start, Retry, Regenerate, PlaybackFailed, RoleChanged
        """
        state = self._snapshot.state

        if isinstance(event, Start):
            role = self._identity.current_role if self._identity is not None else event.role
            self._restart(event.video_id, role)

        elif isinstance(event, Retry):
            if state != PlayerState.ERROR:
                logger.debug("player_event_ignored", event="retry", state=state.value)
                return
            logger.info("player_retry", video_id=self._snapshot.video_id)
            self._restart(self._snapshot.video_id, self._snapshot.role)

        elif isinstance(event, RoleChanged):
            if state == PlayerState.IDLE:
                return
            self._restart(self._snapshot.video_id, event.role)

        elif isinstance(event, Regenerate):
            if state != PlayerState.READY or self._snapshot.phase != ReadyPhase.URL_LOADED:
                logger.debug(
                    "player_event_ignored",
                    event="regenerate",
                    state=state.value,
                    phase=self._snapshot.phase.value if self._snapshot.phase else None,
                )
                return
            self._transition(phase=ReadyPhase.URL_LOADING, playable_url=None)
            self._resolution = asyncio.get_running_loop().create_task(
                self._resolve(self._generation)
            )

        elif isinstance(event, PlaybackFailed):
            # Only a loaded URL can fail to play
            if state != PlayerState.READY or self._snapshot.phase != ReadyPhase.URL_LOADED:
                logger.debug("player_event_ignored", event="playback_failed", state=state.value)
                return
            self._fail(self._generation, PlayerErrorType.PLAYBACK_ERROR, event.details)

        else:
            raise TypeError(f"Unknown player event: {event!r}")

    async def settle(self) -> PlayerSnapshot:
        """Wait until no lookup or resolution is in flight."""
        while True:
            pending = [
                task for task in (self._pipeline, self._resolution) if task and not task.done()
            ]
            if not pending:
                return self._snapshot
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        """Cancel in-flight work and detach from the identity provider."""
        self._generation += 1
        self._cancel_tasks()
        if self._unsubscribe_identity is not None:
            self._unsubscribe_identity()
            self._unsubscribe_identity = None
        self._listeners.clear()

    def _restart(self, video_id: Optional[str], role: Optional[ViewerRole]) -> None:
        self._generation += 1
        self._cancel_tasks()
        self._set(PlayerSnapshot(state=PlayerState.LOADING, video_id=video_id, role=role))
        self._pipeline = asyncio.get_running_loop().create_task(self._run(self._generation))

    def _cancel_tasks(self) -> None:
        for task in (self._pipeline, self._resolution):
            if task is not None and not task.done():
                task.cancel()
        self._pipeline = None
        self._resolution = None

    async def _run(self, generation: int) -> None:
        video_id = self._snapshot.video_id
        role = self._snapshot.role

        try:
            video = await asyncio.wait_for(
                self._lookup.get_video(video_id), timeout=self.lookup_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("player_lookup_timeout", video_id=video_id, timeout=self.lookup_timeout)
            self._fail(generation, PlayerErrorType.TIMEOUT)
            return
        except (InvalidInputError, InvalidStorageReferenceError) as e:
            self._fail(generation, PlayerErrorType.INVALID_URL, str(e))
            return
        except StorageUnavailableError as e:
            self._fail(generation, PlayerErrorType.NETWORK_ERROR, str(e))
            return
        except Exception as e:
            logger.error("player_lookup_failed", video_id=video_id, error=str(e), exc_info=True)
            self._fail(generation, PlayerErrorType.UNKNOWN, str(e))
            return

        if generation != self._generation:
            return

        if video is None:
            self._fail(generation, PlayerErrorType.NOT_FOUND)
            return

        verdict = check_access(video, role)
        if not verdict.has_access:
            self._deny(video, verdict)
            return

        self._transition(
            state=PlayerState.READY,
            phase=ReadyPhase.URL_LOADING,
            video=video,
            verdict=verdict,
        )
        await self._resolve(generation)

    async def _resolve(self, generation: int) -> None:
        video = self._snapshot.video
        verdict = self._snapshot.verdict
        if video is None or verdict is None:
            return

        try:
            playable_url = await self._resolver.resolve_playable_url(video, verdict)
        except UrlResolutionError as e:
            self._fail(generation, PlayerErrorType(e.error_type.value), str(e))
            return
        except AccessDeniedError as e:
            if generation == self._generation:
                self._deny(video, e.verdict)
            return
        except Exception as e:
            logger.error("player_resolution_failed", video_id=video.id, error=str(e), exc_info=True)
            self._fail(generation, PlayerErrorType.UNKNOWN, str(e))
            return

        if generation != self._generation or self._snapshot.state != PlayerState.READY:
            return

        self._transition(phase=ReadyPhase.URL_LOADED, playable_url=playable_url)

    def _deny(self, video: Video, verdict: AccessVerdict) -> None:
        logger.info(
            "access_denied",
            video_id=video.id,
            reason=verdict.reason.value if verdict.reason else None,
        )
        self._transition(
            state=PlayerState.DENIED,
            phase=None,
            video=video,
            verdict=verdict,
            playable_url=None,
            denial_message=denial_message(verdict.reason, self.locale) if verdict.reason else None,
        )

    def _fail(
        self, generation: int, error_type: PlayerErrorType, details: Optional[str] = None
    ) -> None:
        if generation != self._generation:
            return
        self._transition(
            state=PlayerState.ERROR,
            phase=None,
            playable_url=None,
            error=PlayerError(
                type=error_type,
                message=error_message(error_type, self.locale),
                details=details,
            ),
        )

    def _transition(self, **changes) -> None:
        self._set(replace(self._snapshot, **changes))

    def _set(self, snapshot: PlayerSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
