"""HMAC-signing object storage gateway.

Public objects are served from ``{base_url}/object/public/{bucket}/{path}``.
Signed objects are served from ``{base_url}/object/sign/{bucket}/{path}``
with ``exp``, ``nonce`` and ``sig`` query parameters, where::

    sig = HMAC-SHA256(secret, "/{bucket}/{path}|{exp}|{nonce}")

A fresh nonce per call makes every signed URL distinct, even within the
same second. Verification happens at the storage edge; ``verify`` exists
for that edge and for tests.
"""

import base64
import hashlib
import hmac
import secrets
import time
from typing import Callable, Optional
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

import structlog

from app.providers.base import StorageGateway
from app.providers.exceptions import InvalidStorageReferenceError, StorageUnavailableError

logger = structlog.get_logger(__name__)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _check_object_path(bucket: str, path: str) -> None:
    reference = f"{bucket}/{path}"
    if not bucket or not path:
        raise InvalidStorageReferenceError(reference, "bucket and path are required")
    if path.startswith("/") or ".." in path.split("/"):
        raise InvalidStorageReferenceError(reference, "path must be relative to the bucket")


class HmacStorageGateway(StorageGateway):
    """Storage gateway issuing HMAC-signed time-limited URLs."""

    def __init__(
        self,
        base_url: str,
        secret: str,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            base_url: Storage API root, e.g. ``https://cdn.example.com/storage/v1``.
            secret: Shared signing secret.
            clock: Epoch-seconds time source, injectable for tests.
        """
        self.base_url = base_url.rstrip("/")
        self._secret = secret.encode("utf-8")
        self._clock = clock or time.time
        self.available = True

    def public_url(self, bucket: str, path: str) -> str:
        _check_object_path(bucket, path)
        return f"{self.base_url}/object/public/{bucket}/{quote(path)}"

    async def signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """
        Issue a signed URL valid for ``ttl_seconds``.

        Raises:
            StorageUnavailableError: If the gateway is marked unavailable
            InvalidStorageReferenceError: If the object path is malformed
        """
        if not self.available:
            raise StorageUnavailableError("Object storage is unavailable")
        _check_object_path(bucket, path)

        expires_at = int(self._clock()) + ttl_seconds
        nonce = secrets.token_urlsafe(12)
        params = {
            "exp": str(expires_at),
            "nonce": nonce,
            "sig": self._sign(bucket, path, expires_at, nonce),
        }
        return f"{self.base_url}/object/sign/{bucket}/{quote(path)}?{urlencode(params)}"

    def verify(self, url: str, now: Optional[float] = None) -> bool:
        """
        Check a signed URL's signature and expiry.

        Args:
            url: URL previously returned by ``signed_url``
            now: Epoch seconds to check against, defaults to the clock

        Returns:
            True if the signature matches and the URL has not expired
        """
        parts = urlsplit(url)
        prefix = urlsplit(self.base_url).path + "/object/sign/"
        if not parts.path.startswith(prefix):
            return False

        bucket, _, quoted_path = parts.path[len(prefix) :].partition("/")
        query = parse_qs(parts.query)
        try:
            expires_at = int(query["exp"][0])
            nonce = query["nonce"][0]
            signature = query["sig"][0]
        except (KeyError, IndexError, ValueError):
            return False

        expected = self._sign(bucket, unquote(quoted_path), expires_at, nonce)
        if not hmac.compare_digest(expected, signature):
            logger.debug("signed_url_signature_mismatch", bucket=bucket)
            return False

        current = self._clock() if now is None else now
        return current < expires_at

    async def ping(self) -> bool:
        return self.available

    def _sign(self, bucket: str, path: str, expires_at: int, nonce: str) -> str:
        message = f"/{bucket}/{path}|{expires_at}|{nonce}".encode("utf-8")
        return _b64url(hmac.new(self._secret, message, hashlib.sha256).digest())
