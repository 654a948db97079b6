"""Authentication session orchestration: serve the cached sign-in or refresh it."""
import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

from portfolio_service.cache import CacheStore, CacheValidity, WriteOutcome, classify
from portfolio_service.cache.validator import DEFAULT_TTL_SECONDS
from portfolio_service.errors import (
    CacheDeserializationError,
    CacheNotFoundError,
    CachePermissionError,
    CacheWriteError,
    FinClubTransportError,
)
from portfolio_service.logging import get_logger, log_envelope
from portfolio_service.schemas import StatusEnvelope
from portfolio_service.services.finclub_client import FinClubClient, build_login_payload
from portfolio_service import metrics

logger = get_logger(__name__)

AUTHENTICATION_CACHE_DIRECTORY = "authentication"
RESPONSE_FILE_NAME = "response.json"

AUTHENTICATION_FAILED = "The user authentication has failed.  Please try again later."
CACHE_ACCESS_DENIED = "Access to the authentication cache was denied."
UNEXPECTED_ERROR = "An unexpected error occurred."

# One lock per cache file; guards the check-then-act sequence within a process
_path_locks: dict[str, asyncio.Lock] = {}


def authentication_cache_file(cache_root: Union[str, Path]) -> Path:
    """Path of the cached authentication response under `cache_root`."""
    return Path(cache_root) / AUTHENTICATION_CACHE_DIRECTORY / RESPONSE_FILE_NAME


def _lock_for(path: Path) -> asyncio.Lock:
    key = str(path.resolve())
    lock = _path_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _path_locks[key] = lock
    return lock


# Results of a single pass through the session flow

@dataclass
class CacheHit:
    payload: dict[str, Any]


@dataclass
class Authenticated:
    payload: dict[str, Any]
    outcome: WriteOutcome


@dataclass
class UpstreamError:
    status_code: int
    reason: str


@dataclass
class AccessDenied:
    reason: str


SessionResult = Union[CacheHit, Authenticated, UpstreamError, AccessDenied]


def extract_session(body: Any) -> Optional[dict[str, Any]]:
    """
    Pull the user identity fields and token out of a sign-in response.

    The expected body has the shape ``{"data": {"user": {...}, "token": "..."}}``.
    Returns the user's fields merged with ``token``, or None if the structure
    is missing or malformed.
    """
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if not isinstance(data, dict):
        return None
    user = data.get("user")
    token = data.get("token")
    if not isinstance(user, dict) or not isinstance(token, str) or not token.strip():
        return None

    session = dict(user)
    session["token"] = token
    return session


class SessionOrchestrator:
    """
    Serves the investor's authentication session.

    The flow:
    1. Classify the cached sign-in response as fresh, expired or absent
    2. Serve a fresh cache as-is
    3. Otherwise sign in against FinClub and extract user + token
    4. Persist the extracted session and report the envelope
    """

    operation = "login"

    def __init__(
        self,
        client: FinClubClient,
        store: CacheStore,
        cache_root: Union[str, Path],
        mail_address: str,
        password: str,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: FinClub API client
            store: JSON cache store
            cache_root: Root directory of the response cache
            mail_address: Investor account e-mail
            password: Investor account password
            ttl_seconds: How long a cached sign-in stays fresh
            clock: Source of the current epoch time
        """
        self.client = client
        self.store = store
        self.cache_file = authentication_cache_file(cache_root)
        self.mail_address = mail_address
        self.password = password
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def login(self) -> StatusEnvelope:
        """Return the cached session if fresh, otherwise sign in and cache it."""
        start_time = time.perf_counter()

        try:
            async with _lock_for(self.cache_file):
                result = await self._resolve()
        except Exception as e:
            logger.exception("login_unexpected_error", error=str(e))
            result = UpstreamError(500, UNEXPECTED_ERROR)

        envelope = self._to_envelope(result)
        log_envelope(
            logger,
            operation=self.operation,
            status=envelope.status,
            cache=envelope.cache,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            error=envelope.error,
        )
        metrics.record_envelope(self.operation, envelope.status)
        return envelope

    async def _resolve(self) -> SessionResult:
        try:
            validity = classify(self.cache_file, self.clock(), self.ttl_seconds)
        except CachePermissionError as e:
            metrics.record_cache_lookup("denied")
            logger.error("authentication_cache_denied", path=str(self.cache_file), error=str(e))
            return AccessDenied(CACHE_ACCESS_DENIED)

        metrics.record_cache_lookup(validity.value)
        logger.info("authentication_cache_checked", path=str(self.cache_file), validity=validity.value)

        if validity is CacheValidity.FRESH:
            try:
                return CacheHit(self.store.read(self.cache_file))
            except (CacheNotFoundError, CacheDeserializationError, CachePermissionError) as e:
                # Unreadable cache falls back to a fresh sign-in
                logger.warning("authentication_cache_unusable", path=str(self.cache_file), error=str(e))

        return await self._refresh()

    async def _refresh(self) -> SessionResult:
        try:
            response = await self.client.login(build_login_payload(self.mail_address, self.password))
        except FinClubTransportError as e:
            return UpstreamError(503, str(e))

        if response.body is None:
            logger.warning("finclub_login_empty_body", status_code=response.status_code)
            return UpstreamError(503, "FinClub returned no body")

        if response.status_code != 200:
            logger.warning("finclub_login_rejected", status_code=response.status_code)
            return UpstreamError(503, f"FinClub returned status {response.status_code}")

        session = extract_session(response.body)
        if session is None:
            logger.warning("finclub_login_malformed_body", status_code=response.status_code)
            return UpstreamError(503, "FinClub response has no user or token")

        try:
            outcome = self.store.write(self.cache_file, session)
        except CacheWriteError as e:
            return UpstreamError(503, str(e))

        return Authenticated(session, outcome)

    @staticmethod
    def _to_envelope(result: SessionResult) -> StatusEnvelope:
        if isinstance(result, CacheHit):
            return StatusEnvelope(status=200, data=result.payload, cache="hit")
        if isinstance(result, Authenticated):
            return StatusEnvelope(status=200, data=result.payload, cache=result.outcome.label)
        if isinstance(result, AccessDenied):
            return StatusEnvelope.failure(403, result.reason)
        if result.status_code == 500:
            return StatusEnvelope.failure(500, result.reason)
        return StatusEnvelope.failure(result.status_code, AUTHENTICATION_FAILED)
