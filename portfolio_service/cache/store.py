"""JSON file store for cached FinClub responses."""
import json
from enum import IntEnum
from pathlib import Path
from typing import Any, Union

from portfolio_service.errors import (
    CacheDeserializationError,
    CacheNotFoundError,
    CachePermissionError,
    CacheWriteError,
)
from portfolio_service.logging import get_logger
from portfolio_service import metrics

logger = get_logger(__name__)

PathLike = Union[str, Path]


class WriteOutcome(IntEnum):
    """Result of a successful cache write, expressed as an HTTP-style code."""
    OVERWRITTEN = 200
    CREATED = 201

    @property
    def label(self) -> str:
        return self.name.lower()


class CacheStore:
    """
    Reads and writes JSON objects to files on local disk.

    Each cache entry is a single pretty-printed JSON file; its modification
    time is the only timestamp the cache keeps.
    """

    def write(self, path: PathLike, payload: dict[str, Any]) -> WriteOutcome:
        """
        Persist `payload` to `path`, creating missing parent directories.

        Args:
            path: Target file path
            payload: JSON-serializable mapping

        Returns:
            WriteOutcome.CREATED if no file existed before the write,
            WriteOutcome.OVERWRITTEN otherwise

        Raises:
            CacheWriteError: If the directory or the file cannot be written
        """
        target = Path(path)

        try:
            content = json.dumps(payload, indent=2)
        except (TypeError, ValueError) as e:
            metrics.record_cache_write("failed")
            logger.error("cache_write_failed", path=str(target), error=str(e))
            raise CacheWriteError(str(target), f"Payload is not JSON-serializable: {e}") from e

        try:
            existed = target.exists()
            if not target.parent.exists():
                target.parent.mkdir(parents=True, exist_ok=True)
                logger.info("cache_directory_created", path=str(target.parent))
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            metrics.record_cache_write("failed")
            logger.error("cache_write_failed", path=str(target), error=str(e))
            raise CacheWriteError(str(target), f"Unable to write cache file: {e}") from e

        outcome = WriteOutcome.OVERWRITTEN if existed else WriteOutcome.CREATED
        metrics.record_cache_write(outcome.label)
        logger.info("cache_write_completed", path=str(target), outcome=outcome.label)
        return outcome

    def read(self, path: PathLike) -> dict[str, Any]:
        """
        Load the JSON object stored at `path`.

        Raises:
            CacheNotFoundError: If no file exists at `path`
            CachePermissionError: If the file cannot be opened
            CacheDeserializationError: If the content is not a JSON object
        """
        target = Path(path)

        try:
            content = target.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise CacheNotFoundError(str(target), "Cache file does not exist") from e
        except PermissionError as e:
            raise CachePermissionError(str(target), "Cache file is not readable") from e
        except IsADirectoryError as e:
            raise CacheDeserializationError(str(target), "Cache path is a directory") from e

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("cache_read_invalid_json", path=str(target), error=str(e))
            raise CacheDeserializationError(str(target), f"Invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            logger.warning(
                "cache_read_unexpected_shape",
                path=str(target),
                payload_type=type(payload).__name__,
            )
            raise CacheDeserializationError(str(target), "Cached payload is not a JSON object")

        return payload
