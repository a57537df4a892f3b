"""Identity provider contract.

The player session never reads global auth state. It is handed an
``IdentityProvider`` and subscribes to role changes, which restart its
pipeline with the new role.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import structlog

from app.models.role import ViewerRole

logger = structlog.get_logger(__name__)

RoleListener = Callable[[Optional[ViewerRole]], None]
Unsubscribe = Callable[[], None]


class IdentityProvider(ABC):
    """Source of the current viewer role."""

    @property
    @abstractmethod
    def current_role(self) -> Optional[ViewerRole]:
        """Current role, or None for an anonymous viewer."""
        pass

    @abstractmethod
    def on_role_change(self, callback: RoleListener) -> Unsubscribe:
        """
        Register a callback invoked with the new role on every change.

        Returns:
            A function removing the callback. Calling it twice is harmless.
        """
        pass


class StaticIdentityProvider(IdentityProvider):
    """In-process identity provider whose role is set explicitly.

    Used by the HTTP layer (one instance per resolved bearer token) and by
    tests to simulate sign-in, sign-out and upgrades.
    """

    def __init__(self, role: Optional[ViewerRole] = None) -> None:
        self._role = role
        self._listeners: List[RoleListener] = []

    @property
    def current_role(self) -> Optional[ViewerRole]:
        return self._role

    def set_role(self, role: Optional[ViewerRole]) -> None:
        """Change the role and notify listeners. No-op if unchanged."""
        if role == self._role:
            return
        previous = self._role
        self._role = role
        logger.info(
            "viewer_role_changed",
            previous=previous.value if previous else None,
            current=role.value if role else None,
        )
        for listener in list(self._listeners):
            listener(role)

    def on_role_change(self, callback: RoleListener) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe
