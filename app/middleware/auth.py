"""Bearer token authentication and viewer role resolution.

Each configured token maps to a viewer role. Requests without a token are
served as anonymous viewers; a token that is not configured is rejected.
"""

from typing import Dict, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import APIError, ErrorCode
from app.core.logging import ANONYMOUS_ROLE, bind_viewer_context, hash_token
from app.models.role import ViewerRole

logger = structlog.get_logger(__name__)

ANONYMOUS_CALLER = "anonymous"

# FastAPI security scheme for OpenAPI docs
bearer_scheme = HTTPBearer(auto_error=False)


class TokenAuth:
    """Maps bearer tokens to viewer roles."""

    def __init__(self, tokens: Optional[Dict[str, ViewerRole]] = None):
        """
        Initialize token authentication.

        Args:
            tokens: Token to role mapping. Empty means only anonymous access.
        """
        self._tokens: Dict[str, ViewerRole] = dict(tokens or {})
        logger.info(
            "token_auth_initialized",
            num_tokens=len(self._tokens),
            roles=sorted({role.value for role in self._tokens.values()}),
        )

    @property
    def num_tokens(self) -> int:
        return len(self._tokens)

    def resolve_role(self, token: Optional[str]) -> Optional[ViewerRole]:
        """
        Resolve the viewer role of a token.

        Args:
            token: Bearer token, or None when the request carried none

        Returns:
            The mapped role, or None for anonymous

        Raises:
            APIError: UNAUTHORIZED if the token is not configured
        """
        if not token:
            return None

        role = self._tokens.get(token)
        if role is None:
            logger.warning("token_rejected", token_hash=hash_token(token))
            raise APIError(ErrorCode.UNAUTHORIZED, "Invalid bearer token")
        return role


# Global auth instance (configured at startup)
_auth_instance: Optional[TokenAuth] = None


def configure_auth(tokens: Optional[Dict[str, ViewerRole]] = None) -> TokenAuth:
    global _auth_instance
    _auth_instance = TokenAuth(tokens=tokens)
    return _auth_instance


def get_auth() -> TokenAuth:
    """Get the global auth instance, or an anonymous-only one if unconfigured."""
    if _auth_instance is None:
        return TokenAuth()
    return _auth_instance


def caller_key(request: Request) -> str:
    """
    Key identifying the caller for rate limiting.

    Tokens are never used raw; anonymous callers share one key.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return hash_token(token.strip())
    return ANONYMOUS_CALLER


async def get_viewer_role(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),  # noqa: B008
) -> Optional[ViewerRole]:
    """Resolve the caller's role from the Authorization header.

    Returns:
        The viewer role, or None for anonymous callers

    Raises:
        APIError: UNAUTHORIZED if the token is not configured
    """
    token = credentials.credentials if credentials else None
    role = get_auth().resolve_role(token)
    bind_viewer_context(role=role.value if role else ANONYMOUS_ROLE)
    return role


async def require_admin(
    role: Optional[ViewerRole] = Depends(get_viewer_role),  # noqa: B008
) -> ViewerRole:
    """Require an admin caller.

    Raises:
        APIError: UNAUTHORIZED for anonymous callers, FORBIDDEN for other roles
    """
    if role is None:
        raise APIError(ErrorCode.UNAUTHORIZED, "Authentication required")
    if role != ViewerRole.ADMIN:
        logger.warning("admin_required", role=role.value)
        raise APIError(ErrorCode.FORBIDDEN, "Admin role required")
    return role
