"""Freshness classification for cache files."""
import os
from enum import Enum
from pathlib import Path
from typing import Union

from portfolio_service.errors import CachePermissionError

DEFAULT_TTL_SECONDS = 3600


class CacheValidity(Enum):
    FRESH = "fresh"
    EXPIRED = "expired"
    ABSENT = "absent"


def classify(
    path: Union[str, Path],
    now: float,
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
) -> CacheValidity:
    """
    Classify the cache file at `path` relative to the epoch time `now`.

    A file is fresh while `now <= mtime + ttl_seconds`; the boundary itself
    counts as fresh.

    Raises:
        CachePermissionError: If the filesystem denies access to the file's
            attributes. This is reported separately from ABSENT.
    """
    try:
        last_modified = os.stat(path).st_mtime
    except FileNotFoundError:
        return CacheValidity.ABSENT
    except NotADirectoryError:
        return CacheValidity.ABSENT
    except PermissionError as e:
        raise CachePermissionError(str(path), "Cache file attributes are not accessible") from e

    if now - last_modified > ttl_seconds:
        return CacheValidity.EXPIRED
    return CacheValidity.FRESH
