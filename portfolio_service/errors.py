"""Exception types raised by the cache, upstream client and access checks."""
from typing import Optional


class CacheError(Exception):
    """Base class for failures of the on-disk response cache."""
    status_code = 503

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"{detail} ({path})")


class CacheNotFoundError(CacheError):
    """Raised when no cache file exists at the requested path."""
    status_code = 404


class CacheDeserializationError(CacheError):
    """Raised when a cache file is not a JSON object."""


class CacheWriteError(CacheError):
    """Raised when directory creation or the file write fails."""


class CachePermissionError(CacheError):
    """Raised when the filesystem denies access to a cache file."""
    status_code = 403


class FinClubTransportError(Exception):
    """Raised when the FinClub API cannot be reached."""
    def __init__(self, operation: str, detail: str, error_type: Optional[str] = None):
        self.operation = operation
        self.detail = detail
        self.error_type = error_type or "connection_error"
        super().__init__(f"FinClub {operation} request failed: {detail}")


class InvalidTokenError(Exception):
    """Raised when the cached authentication token is missing or blank."""
    status_code = 403


class InvalidAccessError(Exception):
    """Raised when a request originates from a host outside the allow-list."""
    status_code = 403

    def __init__(self, client_host: Optional[str]):
        self.client_host = client_host
        super().__init__(f"Access denied for origin {client_host!r}")
