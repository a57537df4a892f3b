"""Repository and storage gateway exceptions."""

from typing import Optional


class ProviderError(Exception):
    """Base exception for backing store and storage errors."""

    pass


class StorageUnavailableError(ProviderError):
    """Raised when the repository or object storage cannot be reached."""

    pass


class BackendForbiddenError(ProviderError):
    """Raised when row-level security refuses a read.

    Callers collapse this into "not found" for the viewer but keep the raw
    error in the logs so a misconfigured policy stays diagnosable.
    """

    pass


class InvalidStorageReferenceError(ProviderError):
    """Raised when a stored asset reference does not match its bucket layout."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Invalid storage reference '{reference}': {reason}")


class MalformedRowError(ProviderError):
    """Raised when the backing store returns a row of unexpected shape."""

    pass


class DatabaseError(ProviderError):
    """Raised when the backing store reports an error with a SQL state code.

    ``code`` carries the backend code (e.g. ``23505`` for a unique
    violation, ``PGRST116`` for "no rows") so the HTTP layer can map it.
    """

    def __init__(self, message: str, code: str = "", hint: Optional[str] = None):
        self.code = code
        self.hint = hint
        super().__init__(message)


class DuplicateVideoError(DatabaseError):
    """Raised when a write violates a uniqueness constraint."""

    def __init__(self, message: str):
        super().__init__(message, code="23505")
